#!/usr/bin/env python3
"""Print the tempo metadata and per-track settings of conductor files.

Each file is decoded independently; a malformed file is reported and the
remaining files are still processed.
"""

from __future__ import annotations

import argparse
import glob
import logging
from pathlib import Path
import sys
from typing import Iterable, List

import mido

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from cnd.container import Conductor  # noqa: E402
from cnd.errors import ConductorError  # noqa: E402
from cnd.structs import Track  # noqa: E402

logger = logging.getLogger("inspect_cnd")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def collect_paths(patterns: Iterable[str]) -> List[Path]:
    paths: List[Path] = []
    for pattern in patterns:
        matches = sorted(Path(p) for p in glob.glob(pattern, recursive=True))
        if matches:
            paths.extend(matches)
        else:
            # Literal path; a missing file is reported when it is opened.
            paths.append(Path(pattern))
    seen: set[Path] = set()
    unique_paths: List[Path] = []
    for path in paths:
        resolved = path.resolve()
        if resolved not in seen:
            seen.add(resolved)
            unique_paths.append(path)
    return unique_paths


def format_tempo(bpm: int) -> str:
    if bpm == 0:
        return "0"
    return f"{bpm} ({mido.bpm2tempo(bpm)} us/beat)"


def track_rows(track: Track) -> list[tuple[str, str]]:
    """Label/value pairs in the order the viewer has always shown them."""

    return [
        ("Volume", str(track.volume)),
        ("Panning", str(track.panning)),
        ("Track copy", str(track.track_copy)),
        ("Initial Delay", str(track.init_delay)),
        ("Echo", str(track.echo)),
        ("Ordered", str(track.ordered).lower()),
        ("Bank", track.bank.label),
        ("Program", str(track.program)),
        ("Gesture set", str(track.gesture_set)),
        ("Timing ruleset", str(track.timing)),
        ("Gesture count", str(track.gesture_count)),
        ("Silent count", str(track.silent_count)),
        ("Transposition", str(track.transposition)),
        ("B offset flag", str(track.b_offset_flag).lower()),
        ("Q offset flag", str(track.q_offset_flag).lower()),
    ]


def format_conductor(path: Path, conductor: Conductor) -> str:
    header = conductor.header
    lines = [
        path.name,
        f"  File Path:    {path}",
        f"  Louie swing:  {header.louie_swing} ({header.swing_hint})",
        f"  Bpm:          {format_tempo(header.bpm)}",
        f"  Track count:  {header.track_count}",
    ]
    if conductor.is_truncated:
        lines.append(
            f"  (file ends early: {len(conductor.tracks)} of {header.track_count} tracks present)"
        )
    lines.append("  Tracks")
    for index, track in enumerate(conductor.tracks, start=1):
        lines.append(f"    [{index}] {track.description}")
        rows = track_rows(track)
        width = max(len(label) for label, _ in rows) + 1
        for label, value in rows:
            lines.append(f"        {(label + ':').ljust(width)} {value}")
    return "\n".join(lines)


def summary_table(results: list[tuple[Path, Conductor | str]]) -> str:
    header = ["File", "Swing", "Bpm", "Tracks", "Parsed", "Banks"]
    rows: list[list[str]] = []
    for path, result in results:
        if isinstance(result, str):
            rows.append([str(path), "ERR", result, "", "", ""])
            continue
        banks = sorted({track.bank for track in result.tracks})
        rows.append(
            [
                str(path),
                str(result.louie_swing),
                str(result.bpm),
                str(result.track_count),
                str(len(result.tracks)),
                ",".join(bank.label for bank in banks),
            ]
        )

    widths = [
        max(len(row[i]) for row in ([header] + rows))
        for i in range(len(header))
    ]

    def fmt_row(row: list[str]) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip()

    out = [fmt_row(header), "  ".join("-" * w for w in widths)]
    out.extend(fmt_row(row) for row in rows)
    return "\n".join(out)


def decode(path: Path) -> Conductor | str:
    """Decode `path`, returning the failure message instead of raising."""

    try:
        return Conductor.from_file(path)
    except ConductorError as err:
        logger.warning("%s: %s", path, err)
        return str(err)
    except OSError as err:
        logger.warning("%s: %s", path, err)
        return err.strerror or str(err)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Show tempo metadata and track settings of Pikmin 2 conductor (.cnd) files."
    )
    parser.add_argument(
        "paths",
        nargs="+",
        help="File paths or glob patterns (quotes recommended for wildcards).",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print one row per file instead of the full track listing.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log decoder progress (-v info, -vv debug).",
    )
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)

    targets = collect_paths(args.paths)
    results = [(path, decode(path)) for path in targets]
    failed = sum(1 for _, result in results if isinstance(result, str))

    if args.summary:
        print(summary_table(results))
    else:
        blocks = []
        for path, result in results:
            if isinstance(result, str):
                blocks.append(f"{path}\n  ERR: {result}")
            else:
                blocks.append(format_conductor(path, result))
        print("\n\n".join(blocks))

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
