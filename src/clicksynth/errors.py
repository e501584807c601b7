"""Custom exceptions for clicksynth with structured error information."""


class ClickSynthError(Exception):
    """Base exception for all clicksynth errors.

    Provides structured error information with actionable messages.
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class ReplayFileNotFoundError(ClickSynthError):
    """Raised when a replay file cannot be found."""

    def __init__(self, path: str):
        message = f"Replay file not found: {path}"
        details = {
            "path": path,
            "suggested_action": "Verify the file path exists and is accessible",
        }
        super().__init__(message, details)


class FileTooLargeError(ClickSynthError):
    """Raised when a replay file exceeds the size bound."""

    def __init__(self, size_bytes: int, max_size_bytes: int, path: str = None):
        size_mb = size_bytes / (1024 * 1024)
        max_size_mb = max_size_bytes / (1024 * 1024)
        message = (
            f"File too large: {size_mb:.1f} MB exceeds maximum "
            f"of {max_size_mb:.1f} MB"
        )
        details = {
            "size_bytes": size_bytes,
            "max_size_bytes": max_size_bytes,
            "path": path,
            "suggested_action": "Check if the file is really a replay",
        }
        super().__init__(message, details)


class ReplayIOError(ClickSynthError):
    """Raised when there's an I/O error reading a replay file."""

    def __init__(self, path: str, original_error: Exception):
        message = f"I/O error reading replay: {path} ({str(original_error)})"
        details = {
            "path": path,
            "original_error": str(original_error),
            "error_type": type(original_error).__name__,
            "suggested_action": "Check file permissions",
        }
        super().__init__(message, details)


class TimelineError(ClickSynthError):
    """Raised when decoded events cannot form a valid action timeline."""

    def __init__(self, reason: str, event_index: int | None = None):
        if event_index is not None:
            message = f"Invalid replay timeline at event {event_index}: {reason}"
        else:
            message = f"Invalid replay timeline: {reason}"
        details = {
            "reason": reason,
            "event_index": event_index,
            "suggested_action": (
                "The replay may be corrupted; try overriding the FPS or "
                "re-exporting it from the bot"
            ),
        }
        super().__init__(message, details)


class SampleDecodeError(ClickSynthError):
    """Raised when a clickpack audio file cannot be decoded."""

    def __init__(self, path: str, reason: str):
        message = f"Failed to decode sample: {path} ({reason})"
        details = {
            "path": path,
            "reason": reason,
            "suggested_action": "Convert the file to WAV, FLAC or OGG",
        }
        super().__init__(message, details)


class RenderError(ClickSynthError):
    """Raised when rendering aborts."""

    def __init__(
        self,
        reason: str,
        stage: str = "render",
        action_index: int | None = None,
    ):
        if action_index is not None:
            message = f"Render failed during {stage} at action {action_index}: {reason}"
        else:
            message = f"Render failed during {stage}: {reason}"
        details = {
            "reason": reason,
            "stage": stage,
            "action_index": action_index,
        }
        super().__init__(message, details)


class EmptyTimelineError(RenderError):
    """Raised when the timeline has no actions to render."""

    def __init__(self):
        super().__init__("timeline has no actions", stage="setup")
        self.details["suggested_action"] = (
            "Check that the replay contains inputs (and that discard-deaths "
            "did not remove all of them)"
        )


class SampleResampleError(RenderError):
    """Raised when a decoded sample cannot be resampled."""

    def __init__(self, sample_name: str, reason: str, action_index: int | None = None):
        super().__init__(
            f"cannot resample '{sample_name}': {reason}",
            stage="resample",
            action_index=action_index,
        )
        self.details["sample"] = sample_name


class RenderCancelledError(RenderError):
    """Raised when a render job is cancelled between actions."""

    def __init__(self, action_index: int):
        super().__init__("cancelled", stage="mix", action_index=action_index)


class OutputWriteError(ClickSynthError):
    """Raised when the rendered audio cannot be written."""

    def __init__(self, path: str, original_error: Exception):
        message = f"Failed to write output audio: {path} ({original_error})"
        details = {
            "path": path,
            "original_error": str(original_error),
            "error_type": type(original_error).__name__,
            "suggested_action": "Check the output directory and disk space",
        }
        super().__init__(message, details)


class ExpressionError(ClickSynthError):
    """Raised when a volume expression cannot be compiled or evaluated."""

    def __init__(self, expression: str, reason: str):
        message = f"Invalid expression {expression!r}: {reason}"
        details = {
            "expression": expression,
            "reason": reason,
            "suggested_action": (
                "Use arithmetic over frame, fps, time, x, y, p, player2, rot, "
                "accel, down, frames, level_time and rand"
            ),
        }
        super().__init__(message, details)


class ClickpackNotFoundError(ClickSynthError):
    """Raised when a clickpack directory does not exist."""

    def __init__(self, path: str):
        message = f"Clickpack directory not found: {path}"
        details = {
            "path": path,
            "suggested_action": (
                "Point --clicks at a folder containing clicks/, releases/ "
                "(optionally under player1/ and player2/)"
            ),
        }
        super().__init__(message, details)
