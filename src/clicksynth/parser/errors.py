"""Custom exceptions for the replay parser layer."""

from ..errors import ClickSynthError


class FormatError(ClickSynthError):
    """Base exception for unrecognized or corrupt replay payloads."""

    def __init__(self, message: str, format_name: str = None, details: dict = None):
        base_details = {"format": format_name} if format_name else {}
        if details:
            base_details.update(details)
        super().__init__(message, base_details)
        self.format_name = format_name


class UnknownFormatError(FormatError):
    """Raised when a replay's format cannot be detected."""

    def __init__(self, filename: str = None, reason: str = None):
        if filename:
            message = f"Unknown replay format: {filename}"
        else:
            message = "Unknown replay format"
        if reason:
            message = f"{message} ({reason})"

        details = {
            "filename": filename,
            "reason": reason,
            "suggested_action": (
                "Pass the format explicitly or check the file extension "
                "against the supported formats list"
            ),
        }
        super().__init__(message, details=details)


class FormatNotFoundError(FormatError):
    """Raised when a requested replay decoder is not registered."""

    def __init__(self, format_name: str, available_formats: list = None):
        available = available_formats or []
        if available:
            available_list = ", ".join(available)
            message = (
                f"Replay format not found: {format_name}. "
                f"Available: {available_list}"
            )
        else:
            message = f"Replay format not found: {format_name}"

        details = {
            "requested": format_name,
            "available_formats": available,
            "suggested_action": f"Use one of the available formats: {available}",
        }
        super().__init__(message, details=details)


class BadMagicError(FormatError):
    """Raised when a binary replay does not start with the expected magic."""

    def __init__(self, format_name: str, expected: bytes, found: bytes):
        message = (
            f"Invalid {format_name} magic: expected {expected!r}, found {found!r}"
        )
        details = {
            "expected": expected.hex(),
            "found": found.hex(),
            "suggested_action": "The file may belong to another bot or be corrupted",
        }
        super().__init__(message, format_name, details)


class TruncatedReplayError(FormatError):
    """Raised when a replay payload ends before a complete structure."""

    def __init__(self, format_name: str, offset: int, needed: int, available: int):
        message = (
            f"Truncated {format_name} replay: needed {needed} bytes at offset "
            f"{offset}, found {available}"
        )
        details = {
            "offset": offset,
            "needed": needed,
            "available": available,
            "suggested_action": "Check if the file is corrupted or incomplete",
        }
        super().__init__(message, format_name, details)


class UnsupportedVersionError(FormatError):
    """Raised when a replay declares a version or mode this decoder cannot read."""

    def __init__(self, format_name: str, version, supported=None):
        message = f"Unsupported {format_name} version: {version}"
        if supported is not None:
            message = f"{message} (supported: {supported})"
        details = {
            "version": version,
            "supported": supported,
            "suggested_action": "Re-save the replay with a supported bot version",
        }
        super().__init__(message, format_name, details)


class InvalidPayloadError(FormatError):
    """Raised when text/JSON content is malformed or has the wrong structure."""

    def __init__(self, format_name: str, reason: str):
        message = f"Invalid {format_name} replay: {reason}"
        details = {
            "reason": reason,
            "suggested_action": (
                "Check that the file is a valid replay and was not edited by hand"
            ),
        }
        super().__init__(message, format_name, details)
