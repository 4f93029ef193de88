import os

# set to "1" to silence progress logging regardless of ``enable_progress``
PROGRESS_ENV_VAR = "PIECETOK_DISABLE_PROGRESS"

_enabled: bool = True


def enable_progress() -> None:
    """Enable progress logging for long-running piecetok operations."""
    global _enabled
    _enabled = True


def disable_progress() -> None:
    """Disable progress logging for long-running piecetok operations."""
    global _enabled
    _enabled = False


def _is_enabled() -> bool:
    """Check if progress is enabled (the environment variable wins)."""
    if os.environ.get(PROGRESS_ENV_VAR, "").strip() == "1":
        return False
    return _enabled
