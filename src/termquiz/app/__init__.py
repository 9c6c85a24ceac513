"""
App Package

Owned application state, the controller that applies actions and
background events to it, and the quiz countdown thread.
"""

from .controller import AppState, Dialog, QuizController, Screen, initial_screen, screen_for_pipeline
from .timer import QuizTimer, TimerEvent, TimerEventKind

__all__ = [
    "AppState",
    "Dialog",
    "QuizController",
    "Screen",
    "initial_screen",
    "screen_for_pipeline",
    "QuizTimer",
    "TimerEvent",
    "TimerEventKind",
]
