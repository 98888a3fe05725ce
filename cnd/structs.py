from __future__ import annotations

import enum
import logging
import struct
from dataclasses import dataclass, field

from .errors import InvalidBank, TruncatedInput

logger = logging.getLogger(__name__)


TRACK_BODY_SIZE = 36
TRACK_TRAILER_SIZE = 24
DESCRIPTION_SIZE = 8
DESCRIPTION_SENTINEL = 0xCD
DESCRIPTION_PLACEHOLDER = "!!Description string is corrupted!!"
PANNING_CENTER = 64

# Body layout, one byte per field except the description.  Pad bytes ("x")
# are present in the file but never interpreted.
#   0 pad | 1 init_delay | 2 b_offset | 3..10 description | 11 track_copy
#   12 echo | 13..20 pad | 21 ordered | 22 bank | 23 program | 24 pad
#   25 gesture_set | 26 pad | 27 timing | 28 gesture_count | 29 silent_count
#   30 pad | 31 transposition | 32 volume | 33 panning | 34 q_offset | 35 pad
TRACK_BODY_FORMAT = "<xBB8sBB8xBBBxBxBBBxbBBBx"

assert struct.calcsize(TRACK_BODY_FORMAT) == TRACK_BODY_SIZE


class Bank(enum.IntEnum):
    PIKMIN1_SFX = 0
    WATANABE_SFX = 1
    TOTAKA_SFX = 2
    HIKINO_SFX = 3
    WAKAI_INSTRUMENTS = 4
    TOTAKA_INSTRUMENTS = 5

    @property
    def label(self) -> str:
        return BANK_LABELS[self]

    @classmethod
    def from_byte(cls, value: int, track_index: int) -> "Bank":
        """Map a raw bank byte; ``track_index`` is 0-based and only used for the error."""

        try:
            return cls(value)
        except ValueError:
            raise InvalidBank(track_number=track_index + 1, value=value) from None


BANK_LABELS = {
    Bank.PIKMIN1_SFX: "Pikmin 1 SFX",
    Bank.WATANABE_SFX: "Watanabe SFX",
    Bank.TOTAKA_SFX: "Totaka SFX",
    Bank.HIKINO_SFX: "Hikino SFX",
    Bank.WAKAI_INSTRUMENTS: "Wakai Instruments",
    Bank.TOTAKA_INSTRUMENTS: "Totaka Instruments",
}


def to_signed8(value: int) -> int:
    """Reinterpret the low 8 bits of `value` as a two's-complement byte."""

    value &= 0xFF
    return value - 0x100 if value & 0x80 else value


def decode_panning(raw: int) -> int:
    """Decode the offset-encoded panning byte.

    The raw byte is widened to 16 bits, 64 is added with wraparound and the
    low byte of the sum is read back as signed.  0x00 -> 64, 0xFF -> 63,
    0xC0 -> 0 (center).
    """

    widened = (raw + PANNING_CENTER) & 0xFFFF
    return to_signed8(widened)


def decode_description(raw: bytes) -> str:
    """Return the display text of an 8-byte description buffer.

    Text ends at the first 0xCD sentinel (or runs the whole buffer when there
    is none).  Invalid UTF-8 yields DESCRIPTION_PLACEHOLDER.
    """

    end = raw.find(DESCRIPTION_SENTINEL)
    text = raw if end == -1 else raw[:end]
    try:
        return text.decode("utf-8")
    except UnicodeDecodeError:
        return DESCRIPTION_PLACEHOLDER


@dataclass(frozen=True)
class Track:
    init_delay: int
    b_offset_flag: bool
    q_offset_flag: bool
    raw_description: bytes = field(repr=False)
    track_copy: int
    echo: int
    ordered: bool
    bank: Bank
    program: int
    gesture_set: int
    timing: int
    gesture_count: int
    silent_count: int
    transposition: int
    volume: int
    panning: int

    @classmethod
    def from_bytes(cls, data: bytes, index: int) -> "Track":
        """Decode one 36-byte track body.  `index` is the 0-based track position."""

        if len(data) < TRACK_BODY_SIZE:
            raise TruncatedInput(
                f"track {index + 1} body", TRACK_BODY_SIZE, len(data)
            )
        (
            init_delay,
            b_offset_flag,
            description,
            track_copy,
            echo,
            ordered,
            bank_byte,
            program,
            gesture_set,
            timing,
            gesture_count,
            silent_count,
            transposition,
            volume,
            panning_raw,
            q_offset_flag,
        ) = struct.unpack_from(TRACK_BODY_FORMAT, data)

        track = cls(
            init_delay=init_delay,
            b_offset_flag=b_offset_flag == 1,
            q_offset_flag=q_offset_flag == 1,
            raw_description=description,
            track_copy=track_copy,
            echo=echo,
            ordered=ordered == 1,
            bank=Bank.from_byte(bank_byte, index),
            program=program,
            gesture_set=gesture_set,
            timing=timing,
            gesture_count=gesture_count,
            silent_count=silent_count,
            transposition=transposition,
            volume=volume,
            panning=decode_panning(panning_raw),
        )
        logger.debug("track %d: bank=%s program=%d", index + 1, track.bank.name, program)
        return track

    @property
    def description(self) -> str:
        return decode_description(self.raw_description)
