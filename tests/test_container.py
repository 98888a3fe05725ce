from io import BytesIO
import logging
from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from cnd.container import (  # noqa: E402
    FIRST_TRACK_OFFSET,
    TRACK_RECORD_SIZE,
    ByteReader,
    Conductor,
    ConductorHeader,
    read_header,
)
from cnd.errors import (  # noqa: E402
    ConductorError,
    InvalidBank,
    InvalidTrackCount,
    TruncatedInput,
)
from cnd.structs import TRACK_BODY_SIZE, TRACK_TRAILER_SIZE, Bank  # noqa: E402


def make_body(name: bytes, *, bank: int = 0, volume: int = 100) -> bytes:
    body = bytearray(TRACK_BODY_SIZE)
    description = (name + b"\xcd").ljust(8, b"\x00")[:8]
    body[3:11] = description
    body[22] = bank
    body[32] = volume
    body[33] = 0xC0
    return bytes(body)


def make_conductor(
    track_count: int,
    bodies: list[bytes] | None = None,
    *,
    louie_swing: int = 60,
    bpm: int = 120,
) -> bytes:
    if bodies is None:
        bodies = [make_body(f"T{i:03d}".encode()) for i in range(track_count)]
    parts = [bytes([louie_swing, bpm, track_count]), b"\xee" * 21]
    for body in bodies:
        parts.append(body)
        parts.append(b"\x55" * TRACK_TRAILER_SIZE)
    return b"".join(parts)


@pytest.mark.parametrize("count", [1, 2, 16, 255])
def test_decodes_declared_tracks_in_order(count: int) -> None:
    conductor = Conductor.from_bytes(make_conductor(count))
    assert conductor.louie_swing == 60
    assert conductor.bpm == 120
    assert conductor.track_count == count
    assert len(conductor.tracks) == count
    assert [t.description for t in conductor.tracks] == [f"T{i:03d}" for i in range(count)]
    assert conductor.is_truncated is False


def test_layout_offsets() -> None:
    assert FIRST_TRACK_OFFSET == 24
    assert TRACK_RECORD_SIZE == 60
    assert len(make_conductor(3)) == 24 + 3 * 60


def test_trailing_bytes_after_last_record_are_ignored() -> None:
    data = make_conductor(2) + b"\x00" * 100
    assert len(Conductor.from_bytes(data).tracks) == 2


def test_zero_track_count_is_rejected() -> None:
    data = bytearray(make_conductor(2))
    data[2] = 0
    with pytest.raises(InvalidTrackCount):
        Conductor.from_bytes(bytes(data))


def test_zero_track_count_is_rejected_before_reserved_skip() -> None:
    with pytest.raises(InvalidTrackCount):
        Conductor.from_bytes(b"\x3c\x78\x00")


@pytest.mark.parametrize("length", [0, 1, 2])
def test_short_header_is_truncated(length: int) -> None:
    with pytest.raises(TruncatedInput, match="header"):
        Conductor.from_bytes(make_conductor(1)[:length])


@pytest.mark.parametrize("length", range(3, FIRST_TRACK_OFFSET))
def test_truncation_in_reserved_region(length: int) -> None:
    with pytest.raises(TruncatedInput, match="reserved"):
        Conductor.from_bytes(make_conductor(2)[:length])


@pytest.mark.parametrize("into_body", [0, 1, 17, TRACK_BODY_SIZE - 1])
@pytest.mark.parametrize("track", [0, 1, 2])
def test_truncation_inside_body(track: int, into_body: int) -> None:
    cut = FIRST_TRACK_OFFSET + track * TRACK_RECORD_SIZE + into_body
    with pytest.raises(TruncatedInput, match=f"track {track + 1} body"):
        Conductor.from_bytes(make_conductor(3)[:cut])


@pytest.mark.parametrize("into_trailer", range(TRACK_TRAILER_SIZE))
def test_truncation_in_middle_trailer_keeps_parsed_tracks(into_trailer: int) -> None:
    cut = FIRST_TRACK_OFFSET + TRACK_RECORD_SIZE + TRACK_BODY_SIZE + into_trailer
    conductor = Conductor.from_bytes(make_conductor(3)[:cut])
    assert conductor.track_count == 3
    assert [t.description for t in conductor.tracks] == ["T000", "T001"]
    assert conductor.is_truncated is True


@pytest.mark.parametrize("into_trailer", [0, 1, TRACK_TRAILER_SIZE - 1])
def test_truncation_in_final_trailer_keeps_all_tracks(into_trailer: int) -> None:
    cut = FIRST_TRACK_OFFSET + 2 * TRACK_RECORD_SIZE + TRACK_BODY_SIZE + into_trailer
    conductor = Conductor.from_bytes(make_conductor(3)[:cut])
    assert len(conductor.tracks) == 3
    assert conductor.is_truncated is False


def test_trailer_truncation_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    data = make_conductor(2)[: FIRST_TRACK_OFFSET + TRACK_BODY_SIZE + 5]
    with caplog.at_level(logging.INFO, logger="cnd.container"):
        Conductor.from_bytes(data)
    assert "trailer of track 1" in caplog.text


@pytest.mark.parametrize("bank", [6, 0x7F, 0xFF])
def test_invalid_bank_aborts_decode(bank: int) -> None:
    bodies = [make_body(b"A"), make_body(b"B", bank=bank), make_body(b"C")]
    with pytest.raises(InvalidBank, match="track 2"):
        Conductor.from_bytes(make_conductor(3, bodies))


def test_errors_are_value_errors() -> None:
    for exc in (TruncatedInput, InvalidTrackCount, InvalidBank):
        assert issubclass(exc, ConductorError)
        assert issubclass(exc, ValueError)


def test_decode_is_repeatable() -> None:
    bodies = [make_body(b"DRUM", bank=2), make_body(b"PAD", bank=5, volume=80)]
    data = make_conductor(2, bodies, louie_swing=30, bpm=96)
    first = Conductor.from_bytes(data)
    second = Conductor.from_bytes(data)
    assert first == second
    assert first.tracks[1].bank is Bank.TOTAKA_INSTRUMENTS


def test_conductor_is_immutable() -> None:
    conductor = Conductor.from_bytes(make_conductor(1))
    assert isinstance(conductor.tracks, tuple)
    with pytest.raises(AttributeError):
        conductor.bpm = 1  # type: ignore[misc]


def test_from_stream_and_from_file_agree(tmp_path: Path) -> None:
    data = make_conductor(4)
    path = tmp_path / "song.cnd"
    path.write_bytes(data)
    assert Conductor.from_file(path) == Conductor.from_stream(BytesIO(data))
    assert Conductor.from_file(str(path)) == Conductor.from_bytes(data)


def test_from_file_missing_path_raises_oserror(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        Conductor.from_file(tmp_path / "missing.cnd")


@pytest.mark.parametrize(
    "swing, hint",
    [(30, "1/16th note"), (60, "1/8th note"), (120, "1/4th note"), (45, "Custom")],
)
def test_swing_hint(swing: int, hint: str) -> None:
    assert ConductorHeader(louie_swing=swing, bpm=120, track_count=1).swing_hint == hint


def test_header_property_matches_fields() -> None:
    conductor = Conductor.from_bytes(make_conductor(2, louie_swing=120, bpm=90))
    assert conductor.header == ConductorHeader(louie_swing=120, bpm=90, track_count=2)


def test_read_header_leaves_reader_at_first_track() -> None:
    reader = ByteReader(BytesIO(make_conductor(1)))
    header = read_header(reader)
    assert header.track_count == 1
    assert reader.offset == FIRST_TRACK_OFFSET


def test_byte_reader_skip_reports_offset() -> None:
    reader = ByteReader(BytesIO(b"\x00" * 10))
    reader.read_exact(4, "lead")
    with pytest.raises(TruncatedInput, match="offset 0x4") as excinfo:
        reader.skip(8, "gap")
    assert excinfo.value.needed == 8
    assert excinfo.value.available == 6


def test_byte_reader_try_skip() -> None:
    reader = ByteReader(BytesIO(b"\x00" * 10))
    assert reader.try_skip(6) is True
    assert reader.try_skip(6) is False
    assert reader.offset == 10
