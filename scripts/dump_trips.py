#!/usr/bin/env python3
"""Dump every trip stored in the remote table.

Loads all rows, runs them through the sanitizer exactly like the client
does, and prints a per-trip summary together with what the sanitizer
dropped, so malformed rows are easy to spot.

Usage
-----
Set environment variables and run::

    export TRIPSYNC_BASE_URL="https://project.example.co/rest/v1"
    export TRIPSYNC_API_KEY="..."
    python scripts/dump_trips.py

Options::

    --trip ID            Only dump this trip
    --json               Output sanitized trips as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    -v, --verbose        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from tripsync import RestTripRepository, TripSyncClient, TripSyncConfig  # noqa: E402
from tripsync.budget import remaining_budget, total_spent  # noqa: E402
from tripsync.ingestion.feed import extract_trip_payload, row_updated_at  # noqa: E402
from tripsync.ingestion.sanitize import parse_trip, sanitize_trip_payload  # noqa: E402
from tripsync.models.trip import Trip  # noqa: E402


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _count_dropped(raw: dict[str, Any], clean: dict[str, Any]) -> dict[str, int]:
    dropped: dict[str, int] = {}
    for key in ("members", "bookings", "expenses", "plans"):
        before = raw.get(key)
        after = clean.get(key) or []
        if isinstance(before, list) and len(before) != len(after):
            dropped[key] = len(before) - len(after)
    raw_days = raw.get("dailyItinerary", raw.get("daily_itinerary"))
    if isinstance(raw_days, list):
        before = sum(len(day.get("activities") or []) for day in raw_days if isinstance(day, dict))
        after = sum(len(day.get("activities") or []) for day in clean.get("dailyItinerary") or [])
        if before != after:
            dropped["activities"] = before - after
    return dropped


def _format_updated(row: dict[str, Any]) -> str:
    stamp = row_updated_at(row)
    if stamp is None:
        return "-"
    return datetime.fromtimestamp(stamp, tz=UTC).isoformat()


def _format_trip(trip: Trip, row: dict[str, Any], dropped: dict[str, int]) -> str:
    lines = [_section(f"{trip.title or '(untitled)'}  [{trip.id}]")]
    lines.append(f"  status:      {trip.status.value}")
    lines.append(f"  dates:       {trip.start_date} .. {trip.end_date}")
    lines.append(f"  updated_at:  {_format_updated(row)}")
    lines.append(f"  revision:    {trip.revision}")
    lines.append(f"  members:     {len(trip.members)}")
    lines.append(f"  bookings:    {len(trip.bookings)}")
    lines.append(f"  expenses:    {len(trip.expenses)}  spent={total_spent(trip):,.2f} left={remaining_budget(trip):,.2f}")
    lines.append(f"  plans:       {len(trip.plans)}")
    lines.append(f"  days:        {trip.day_count}")
    for day in trip.daily_itinerary:
        where = f"  @ {day.custom_location}" if day.custom_location else ""
        lines.append(f"    Day {day.day} {day.date}{where}")
        for activity in day.activities:
            lines.append(f"      {activity.time or '--:--'}  {activity.location}")
    if dropped:
        lines.append(f"  sanitizer dropped: {dropped}")
    return "\n".join(lines)


async def _run(args: argparse.Namespace) -> int:
    config = TripSyncConfig.from_env(feed={"enabled": False}, cache_path=None)
    if not config.base_url:
        print("TRIPSYNC_BASE_URL is not set", file=sys.stderr)
        return 2

    async with TripSyncClient(config) as client:
        repository = client.repository
        assert isinstance(repository, RestTripRepository)  # noqa: S101
        rows = await repository.load_rows()

    out: list[str] = []
    exported: list[dict[str, Any]] = []
    for row in rows:
        raw = extract_trip_payload(row)
        if raw is None:
            out.append(f"\n(skipped row without content: id={row.get('id')})")
            continue
        if args.trip and raw.get("id") != args.trip:
            continue
        clean = sanitize_trip_payload(raw)
        trip = parse_trip(clean)
        if trip is None:
            out.append(f"\n(unparseable trip row: id={row.get('id')})")
            continue
        exported.append(trip.to_payload())
        out.append(_format_trip(trip, row, _count_dropped(raw, clean)))

    text = json.dumps(exported, indent=2, ensure_ascii=False) if args.json else "\n".join(out)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
    else:
        print(text)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump all trips from the remote table")
    parser.add_argument("--trip", help="Only dump this trip id")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("--output", help="Write output to FILE")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
