"""Top-level package for termquiz.

Provides subpackages:
- termquiz.core – immutable quiz/answer models, errors, snapshot schemas
- termquiz.document – markdown quiz parser
- termquiz.session – answer/session state and crash-safe persistence
- termquiz.submission – submission document, git collaborator, publish pipeline
- termquiz.app – event-loop controller and quiz timer
"""

def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    # In dev mode, read directly from pyproject.toml
    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"

    if pyproject.exists():
        try:
            content = pyproject.read_text()
            for line in content.splitlines():
                if line.strip().startswith("version"):
                    # Parse: version = "0.4.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
        except OSError:
            pass

    # Fallback to importlib.metadata for installed package
    try:
        from importlib.metadata import version as pkg_version
        return pkg_version("termquiz")
    except Exception:
        return "0.0.0"

__version__ = _get_version()
__all__: list[str] = ["__version__"]
