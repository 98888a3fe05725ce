"""Failures raised while decoding a conductor file.

All of them derive from ``ValueError`` so callers that only care about
"this file is malformed" can catch that alone.
"""

from __future__ import annotations


class ConductorError(ValueError):
    """Base class for structural decode failures."""


class TruncatedInput(ConductorError):
    """Fewer bytes were available than a field or skip requires."""

    def __init__(self, what: str, needed: int, available: int, offset: int | None = None):
        self.what = what
        self.needed = needed
        self.available = available
        self.offset = offset
        where = f" at offset 0x{offset:X}" if offset is not None else ""
        super().__init__(
            f"truncated input{where}: {what} needs {needed} bytes, only {available} available"
        )


class InvalidTrackCount(ConductorError):
    def __init__(self, value: int):
        self.value = value
        super().__init__(f"invalid track count {value}; a conductor needs at least one track")


class InvalidBank(ConductorError):
    """Bank byte outside 0-5.  ``track_number`` is 1-based."""

    def __init__(self, track_number: int, value: int):
        self.track_number = track_number
        self.value = value
        super().__init__(f"error parsing bank for track {track_number}: unknown bank byte 0x{value:02X}")
