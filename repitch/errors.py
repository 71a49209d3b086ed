from __future__ import annotations


class CaptureUnavailable(RuntimeError):
    """The capture device could not be opened (missing device, permission denied)."""


class InvalidRateError(ValueError):
    """Requested output rate cannot be produced by block-average decimation."""


class LengthMismatchError(ValueError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected {int(expected)} samples, got {int(actual)}")
        self.expected = int(expected)
        self.actual = int(actual)


class SessionStateError(RuntimeError):
    pass
