"""Band Stage - Channel list runner.

Resolves the stage channel list from the equipment database and prints it
as a fixed-width table or as the channel list JSON document
(specs/channel_list.schema.json). With --output the rendering is written
atomically to a file instead.

Run with:
    python -m services.channel_list.run --format table
    python -m services.channel_list.run --format json --output data/exports/channels.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from bandstage.channel_list import ChannelEntry, channel_list_document, generate_channel_list
from bandstage.store import EquipmentStore
from bandstage.utils.atomic_io import atomic_write_text

logger = logging.getLogger(__name__)

TABLE_COLUMNS = (
    ("Ch", "channel_number"),
    ("Name", "name"),
    ("M/S", "mono_stereo"),
    ("48V", "phantom_power"),
    ("Mic / DI", "mic_model"),
    ("Type", "mic_type"),
    ("Pattern", "polar_pattern"),
    ("Notes", "notes"),
)


def _cell(entry: ChannelEntry, field: str) -> str:
    value = getattr(entry, field)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else ""
    return str(value)


def format_table(entries: Sequence[ChannelEntry]) -> str:
    """Render entries as a fixed-width text table (one line per channel)."""
    rows = [[_cell(e, field) for _, field in TABLE_COLUMNS] for e in entries]
    headers = [title for title, _ in TABLE_COLUMNS]
    widths = [len(h) for h in headers]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row, strict=True)]

    def line(cells: Sequence[str]) -> str:
        return "  ".join(c.ljust(w) for c, w in zip(cells, widths, strict=True)).rstrip()

    out = [line(headers), line(["-" * w for w in widths])]
    out.extend(line(row) for row in rows)
    return "\n".join(out) + "\n"


def format_json(entries: Sequence[ChannelEntry]) -> str:
    """Render the channel list document as pretty JSON."""
    return json.dumps(channel_list_document(entries), indent=2, ensure_ascii=False) + "\n"


def run_channel_list(db_path: str | Path | None = None) -> list[ChannelEntry]:
    """Open the equipment store and resolve the channel list.

    Args:
        db_path: Optional database path override.

    Returns:
        Numbered channel entries.
    """
    store = EquipmentStore.open(db_path)
    try:
        return generate_channel_list(store)
    finally:
        store.close()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Print the stage channel list")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Equipment database path (default: BANDSTAGE_DB_PATH or data/bandstage.db)",
    )
    parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write to this file (atomically) instead of stdout",
    )
    args = parser.parse_args(argv)

    # Opening a missing file would create an empty inventory
    if args.db is not None and not args.db.exists():
        print(f"Database not found: {args.db}", file=sys.stderr)
        return 1

    entries = run_channel_list(args.db)
    rendered = format_json(entries) if args.format == "json" else format_table(entries)

    if args.output is None:
        sys.stdout.write(rendered)
        return 0

    try:
        atomic_write_text(args.output, rendered)
    except OSError as exc:
        print(f"Failed to write {args.output}: {exc}", file=sys.stderr)
        return 1
    logger.info("Wrote %d channels to %s", len(entries), args.output)
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())
