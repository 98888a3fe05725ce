from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Tuple

from .errors import InvalidTrackCount, TruncatedInput
from .structs import TRACK_BODY_SIZE, TRACK_TRAILER_SIZE, Track

logger = logging.getLogger(__name__)


HEADER_SIZE = 3
RESERVED_SIZE = 21  # Bytes 0x03-0x17, never interpreted
FIRST_TRACK_OFFSET = HEADER_SIZE + RESERVED_SIZE
TRACK_RECORD_SIZE = TRACK_BODY_SIZE + TRACK_TRAILER_SIZE

# Louie swing values the game uses, from the original viewer.
SWING_HINTS = {
    30: "1/16th note",
    60: "1/8th note",
    120: "1/4th note",
}


class ByteReader:
    """Sequential reader over a binary stream that reports short reads."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.offset = 0

    def read_exact(self, count: int, what: str) -> bytes:
        data = self.stream.read(count)
        if len(data) < count:
            raise TruncatedInput(what, count, len(data), offset=self.offset)
        self.offset += count
        return data

    def _advance(self, count: int) -> int:
        remaining = count
        while remaining > 0:
            chunk = self.stream.read(remaining)
            if not chunk:
                break
            remaining -= len(chunk)
        skipped = count - remaining
        self.offset += skipped
        return skipped

    def skip(self, count: int, what: str) -> None:
        start = self.offset
        skipped = self._advance(count)
        if skipped < count:
            raise TruncatedInput(what, count, skipped, offset=start)

    def try_skip(self, count: int) -> bool:
        """Advance `count` bytes; return False if the stream ran out first."""

        return self._advance(count) == count


@dataclass(frozen=True)
class ConductorHeader:
    louie_swing: int
    bpm: int
    track_count: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "ConductorHeader":
        if len(data) < HEADER_SIZE:
            raise TruncatedInput("header", HEADER_SIZE, len(data), offset=0)
        louie_swing, bpm, track_count = data[0], data[1], data[2]
        if track_count == 0:
            raise InvalidTrackCount(track_count)
        return cls(louie_swing=louie_swing, bpm=bpm, track_count=track_count)

    @property
    def swing_hint(self) -> str:
        return SWING_HINTS.get(self.louie_swing, "Custom")


def read_header(reader: ByteReader) -> ConductorHeader:
    """Decode the 3-byte header and step over the reserved region after it."""

    header = ConductorHeader.from_bytes(reader.read_exact(HEADER_SIZE, "header"))
    reader.skip(RESERVED_SIZE, "reserved header region")
    logger.debug(
        "header: louie_swing=%d bpm=%d track_count=%d",
        header.louie_swing,
        header.bpm,
        header.track_count,
    )
    return header


@dataclass(frozen=True)
class Conductor:
    """A decoded conductor file.

    ``tracks`` holds at most ``track_count`` entries.  It is shorter only when
    the file ends inside the trailer that follows a track body, which is
    accepted as a normal end of file.
    """

    louie_swing: int
    bpm: int
    track_count: int
    tracks: Tuple[Track, ...]

    @classmethod
    def from_stream(cls, stream: BinaryIO) -> "Conductor":
        reader = ByteReader(stream)
        header = read_header(reader)

        tracks: List[Track] = []
        for index in range(header.track_count):
            body = reader.read_exact(TRACK_BODY_SIZE, f"track {index + 1} body")
            tracks.append(Track.from_bytes(body, index))
            if not reader.try_skip(TRACK_TRAILER_SIZE):
                logger.info(
                    "stream ended in the trailer of track %d; keeping %d of %d tracks",
                    index + 1,
                    len(tracks),
                    header.track_count,
                )
                break

        return cls(
            louie_swing=header.louie_swing,
            bpm=header.bpm,
            track_count=header.track_count,
            tracks=tuple(tracks),
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "Conductor":
        return cls.from_stream(io.BytesIO(data))

    @classmethod
    def from_file(cls, path: str | Path) -> "Conductor":
        path = Path(path)
        logger.debug("decoding %s", path)
        with path.open("rb") as handle:
            return cls.from_stream(handle)

    @property
    def header(self) -> ConductorHeader:
        return ConductorHeader(
            louie_swing=self.louie_swing, bpm=self.bpm, track_count=self.track_count
        )

    @property
    def is_truncated(self) -> bool:
        return len(self.tracks) < self.track_count
