from typing import Optional

from .constants import ZCAN_ERROR_NAMES


def error_message(operation: str, error_code: Optional[int] = None) -> str:
    """Build the text of an error raised for a failed operation."""
    if error_code is not None and error_code in ZCAN_ERROR_NAMES:
        return "%s failed: %s (0x%x)" % (
            operation,
            ZCAN_ERROR_NAMES[error_code],
            error_code,
        )
    if error_code is not None:
        return "%s failed (0x%x)" % (operation, error_code)
    return "%s failed" % operation


class ZlgCanError(Exception):
    """
    Base class of every error raised by the driver.

    :param operation: name of the failing operation (e.g. ``"open"``, ``"transmit"``)
    :param error_code: numeric status or ZCAN error code, when the library reported one
    :param message: overrides the generated message text
    """

    def __init__(
        self,
        operation: str,
        error_code: Optional[int] = None,
        message: Optional[str] = None,
    ):
        self.operation = operation
        self.error_code = error_code
        super().__init__(message or error_message(operation, error_code))


class DeviceNotOpenError(ZlgCanError):
    def __init__(self, operation: str):
        super().__init__(operation, message="%s: device not open" % operation)


class OpenFailedError(ZlgCanError):
    """Raised when a step of the open sequence fails; ``step`` names that step."""

    def __init__(self, step: str, cause: Optional[BaseException] = None):
        self.step = step
        self.cause = cause
        error_code = getattr(cause, "error_code", None)
        text = "open failed at %s" % step
        if cause is not None:
            text += ": %s" % cause
        super().__init__("open", error_code, text)


class TransmitFailedError(ZlgCanError):
    def __init__(self, kind: str, sent: int, expected: int = 1):
        self.kind = kind
        self.sent = sent
        self.expected = expected
        super().__init__(
            "transmit",
            message="transmit failed: %s frame accepted %d of %d"
            % (kind, sent, expected),
        )


class PropertyError(ZlgCanError):
    def __init__(self, operation: str, path: str, error_code: Optional[int] = None):
        self.path = path
        text = "%s failed for '%s'" % (operation, path)
        if error_code is not None:
            text += " (0x%x)" % error_code
        super().__init__(operation, error_code, text)


class UnsupportedValueError(ZlgCanError, TypeError):
    def __init__(self, value):
        super().__init__(
            "set_property",
            message="set_property: no wire encoding for %s"
            % type(value).__name__,
        )
