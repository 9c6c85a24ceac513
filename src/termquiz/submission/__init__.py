"""
Submission Package

Freezes a session into ``response/answers.yaml`` and publishes it through
git with bounded retry.
"""

from .document import build_commit_message, build_submission_document, dump_yaml
from .git import GitCommandError, GitRepository
from .pipeline import PipelineState, SubmissionPipeline
from .publisher import PublishEvent, PublishEventKind, push_with_retry, start_publish
from .response import write_response

__all__ = [
    "build_commit_message",
    "build_submission_document",
    "dump_yaml",
    "GitCommandError",
    "GitRepository",
    "PipelineState",
    "SubmissionPipeline",
    "PublishEvent",
    "PublishEventKind",
    "push_with_retry",
    "start_publish",
    "write_response",
]
