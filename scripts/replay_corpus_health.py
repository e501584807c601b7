#!/usr/bin/env python3
"""Corpus health harness for replay decoder reliability diagnostics."""

from __future__ import annotations

import argparse
import json
from collections import Counter
from pathlib import Path
from typing import Any

from clicksynth.errors import ClickSynthError
from clicksynth.ingest import read_replay_bytes
from clicksynth.normalize import build_timeline
from clicksynth.parser import decode_replay, get_decoder, list_formats


def _parse_roots(raw_roots: str) -> list[Path]:
    roots: list[Path] = []
    for item in raw_roots.split(","):
        candidate = item.strip()
        if candidate:
            roots.append(Path(candidate))
    return roots


def _known_extensions() -> tuple[str, ...]:
    extensions = set()
    for name in list_formats():
        extensions.update(get_decoder(name).extensions)
    return tuple(sorted(extensions))


def _discover_replays(roots: list[Path]) -> list[Path]:
    extensions = _known_extensions()
    files: list[Path] = []
    for root in roots:
        if root.is_file() and root.name.lower().endswith(extensions):
            files.append(root)
            continue
        if not root.exists() or not root.is_dir():
            continue
        files.extend(
            p
            for p in root.rglob("*")
            if p.is_file() and p.name.lower().endswith(extensions)
        )
    return sorted(set(files))


def _evaluate_replay(path: Path, format_name: str | None) -> dict[str, Any]:
    detected: str | None = None
    decode_ok = False
    timeline_ok = False
    actions = 0
    warnings = 0
    error_type: str | None = None

    try:
        raw = decode_replay(
            read_replay_bytes(path), filename=path.name, format_name=format_name
        )
        detected = raw.format
        decode_ok = True
        warnings = len(raw.quality_warnings)
        timeline = build_timeline(raw)
        timeline_ok = True
        actions = len(timeline)
    except ClickSynthError as e:
        error_type = type(e).__name__

    return {
        "path": str(path),
        "format": detected or "unknown",
        "decode_ok": decode_ok,
        "timeline_ok": timeline_ok,
        "actions": actions,
        "warnings": warnings,
        "error_type": error_type,
    }


def _build_summary(records: list[dict[str, Any]], top_n: int = 5) -> dict[str, Any]:
    total = len(records)
    decode_success = sum(1 for record in records if record["decode_ok"])
    timeline_success = sum(1 for record in records if record["timeline_ok"])
    with_warnings = sum(1 for record in records if record["warnings"])

    error_counter = Counter(
        record["error_type"] for record in records if record["error_type"]
    )
    format_counter = Counter(record["format"] for record in records)

    return {
        "total": total,
        "decode_success_rate": (decode_success / total) if total else 0.0,
        "timeline_success_rate": (timeline_success / total) if total else 0.0,
        "with_warnings": with_warnings,
        "total_actions": sum(record["actions"] for record in records),
        "top_error_types": [
            {"error_type": name, "count": count}
            for name, count in error_counter.most_common(top_n)
        ],
        "format_buckets": dict(sorted(format_counter.items())),
    }


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Measure replay decoder corpus health and error rates."
    )
    parser.add_argument(
        "--roots",
        default="replays",
        help="Comma-separated replay roots/files (default: replays).",
    )
    parser.add_argument(
        "--format",
        default=None,
        help="Force a decoder instead of detecting each file's format.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Optional limit on replay count.",
    )
    parser.add_argument(
        "--top-errors",
        type=int,
        default=5,
        help="How many error types to include in top_error_types.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit JSON summary.",
    )
    args = parser.parse_args()

    roots = _parse_roots(args.roots)
    files = _discover_replays(roots)
    if args.limit is not None and args.limit >= 0:
        files = files[: args.limit]
    records = [_evaluate_replay(path, args.format) for path in files]

    summary = _build_summary(records, top_n=max(1, args.top_errors))
    if args.json:
        print(json.dumps(summary, indent=2, sort_keys=True))
    else:
        print(
            "total={total} decode_success_rate={decode:.3f} "
            "timeline_success_rate={timeline:.3f} with_warnings={warned}".format(
                total=summary["total"],
                decode=summary["decode_success_rate"],
                timeline=summary["timeline_success_rate"],
                warned=summary["with_warnings"],
            )
        )
        print(json.dumps(summary["format_buckets"], indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
