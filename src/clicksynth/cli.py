"""Command-line interface for clicksynth."""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .clickpack import load_clickpack
from .config import RenderConfig, load_config
from .errors import ClickSynthError
from .expression import ExprVariable
from .ingest import ingest_replay, read_replay_bytes
from .normalize import build_timeline
from .output import write_wav
from .parser import decode_replay, get_decoder, list_formats
from .pipeline import RenderStatus, default_output_path, render_batch
from .render import render_timeline
from .types import Player

# Flag destination -> (config section or None for top level, field name)
_CONFIG_FLAGS = {
    "sample_rate": (None, "sample_rate"),
    "cut_sounds": (None, "cut_sounds"),
    "normalize": (None, "normalize"),
    "seed": (None, "seed"),
    "workers": (None, "workers"),
    "hard": ("timings", "hard"),
    "regular": ("timings", "regular"),
    "soft": ("timings", "soft"),
    "pitch": ("pitch", "enabled"),
    "pitch_from": ("pitch", "from_"),
    "pitch_to": ("pitch", "to"),
    "pitch_step": ("pitch", "step"),
    "spam": ("volume", "spam_enabled"),
    "spam_time": ("volume", "spam_time"),
    "spam_vol_offset_factor": ("volume", "spam_vol_offset_factor"),
    "max_spam_vol_offset": ("volume", "max_spam_vol_offset"),
    "change_releases_volume": ("volume", "change_releases_volume"),
    "volume": ("volume", "global_volume"),
    "volume_var": ("volume", "volume_var"),
    "noise": ("noise", "enabled"),
    "noise_volume": ("noise", "volume"),
    "expr": ("expression", "text"),
    "expr_variable": ("expression", "variable"),
    "expr_negative": ("expression", "negative"),
    "sort_actions": ("replay", "sort_actions"),
    "discard_deaths": ("replay", "discard_deaths"),
    "swap_players": ("replay", "swap_players"),
    "fps": ("replay", "fps_override"),
    "implicit_player": ("replay", "implicit_player"),
}


def build_config(args) -> RenderConfig:
    """Load ``--config`` (or defaults) and apply command-line overrides.

    Only flags given on the command line override the file.

    Raises:
        ConfigError: If the file or the resulting configuration is invalid
    """
    config = load_config(Path(args.config)) if args.config else RenderConfig()

    top_level = {}
    sections: dict[str, dict] = {}
    for dest, (section, name) in _CONFIG_FLAGS.items():
        value = getattr(args, dest, None)
        if value is None:
            continue
        if dest == "expr_variable":
            value = ExprVariable(value)
        elif dest == "implicit_player":
            value = Player(value)
        if section is None:
            top_level[name] = value
        else:
            sections.setdefault(section, {})[name] = value

    for section, changes in sections.items():
        top_level[section] = dataclasses.replace(getattr(config, section), **changes)
    if top_level:
        config = dataclasses.replace(config, **top_level)
        config.validate()
    return config


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _report_error(e: Exception, as_json: bool) -> int:
    """Print an error the way every subcommand does and return exit code 1."""
    if isinstance(e, ClickSynthError):
        if as_json:
            error_result = {
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                    "details": getattr(e, "details", {}),
                },
                "status": "error",
            }
            print(json.dumps(error_result, indent=2, default=str))
        else:
            print(f"Error: {e}", file=sys.stderr)
            if hasattr(e, "details") and "suggested_action" in e.details:
                print(f"Suggestion: {e.details['suggested_action']}", file=sys.stderr)
        return 1

    if as_json:
        error_result = {
            "error": {
                "type": "UnexpectedError",
                "message": f"Unexpected error: {str(e)}",
                "details": {},
            },
            "status": "error",
        }
        print(json.dumps(error_result, indent=2))
    else:
        print(f"Unexpected error: {e}", file=sys.stderr)
    return 1


def _render_single(args, config: RenderConfig) -> int:
    replay_path = Path(args.replays[0])
    output = Path(args.output) if args.output else default_output_path(replay_path)

    data = read_replay_bytes(replay_path)
    raw = decode_replay(data, filename=replay_path.name, format_name=args.format)
    timeline = build_timeline(raw, config.replay)
    clickpack = load_clickpack(Path(args.clicks))
    result = render_timeline(timeline, clickpack, config)
    write_wav(result, output)

    warnings = list(raw.quality_warnings) + result.warnings
    if args.json:
        print(
            json.dumps(
                {
                    "status": "success",
                    "replay": str(replay_path),
                    "output": str(output),
                    "format": raw.format,
                    "duration_seconds": round(result.duration, 3),
                    "stats": dataclasses.asdict(result.stats),
                    "warnings": warnings,
                },
                indent=2,
            )
        )
    else:
        stats = result.stats
        print(f"Rendered {replay_path.name} ({raw.format}) -> {output}")
        print(
            f"Actions: {stats.rendered}/{stats.actions} rendered, "
            f"{stats.skipped} skipped, {stats.fallbacks} via fallback"
        )
        print(f"Duration: {result.duration:.2f}s at {result.sample_rate} Hz")
        if warnings:
            print("\nWarnings:")
            for warning in warnings:
                print(f"  - {warning}")
    return 0


def _render_many(args, config: RenderConfig) -> int:
    paths = [Path(p) for p in args.replays]
    output_dir = Path(args.output) if args.output else None

    def on_progress(index, total, result):
        if not args.json:
            print(f"[{index}/{total}] {result}")

    results = render_batch(
        paths,
        Path(args.clicks),
        output_dir,
        config,
        format_name=args.format,
        on_progress=on_progress,
    )
    failed = [r for r in results if r.status != RenderStatus.SUCCESS]
    if args.json:
        print(
            json.dumps(
                {
                    "status": "error" if failed else "success",
                    "results": [
                        {
                            "replay": str(r.path),
                            "status": r.status.value,
                            "output": str(r.output) if r.output else None,
                            "error": r.error,
                            "warnings": r.warnings,
                        }
                        for r in results
                    ],
                },
                indent=2,
            )
        )
    else:
        print(f"\n{len(results) - len(failed)}/{len(results)} replays rendered")
    return 1 if failed else 0


def handle_render_command(args) -> int:
    """Handle the render subcommand.

    One replay renders to ``--output`` (a file); several replays render
    into ``--output`` as a directory.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        config = build_config(args)
        if len(args.replays) == 1:
            return _render_single(args, config)
        return _render_many(args, config)
    except Exception as e:
        return _report_error(e, args.json)


def handle_inspect_command(args) -> int:
    """Handle the inspect subcommand.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    replay_path = Path(args.replay_file)

    try:
        result = ingest_replay(replay_path, format_name=args.format)

        if args.json:
            print(json.dumps(result, indent=2))
        else:
            counts = result["counts"]
            print(f"Inspection Results for: {result['file_path']}")
            print(f"SHA256: {result['sha256']}")
            print(f"Size: {result['size_human']} ({result['size_bytes']:,} bytes)")
            print(f"Format: {result['format']}")
            source = "replay" if result["fps_from_replay"] else "default"
            print(f"FPS: {result['fps']:g} ({source})")
            print(f"Duration: {result['duration_seconds']:.2f}s")
            print(
                f"Actions: {result['actions']} "
                f"(P1 {counts['p1_press']}/{counts['p1_release']}, "
                f"P2 {counts['p2_press']}/{counts['p2_release']} press/release)"
            )

            if result["warnings"]:
                print("\nWarnings:")
                for warning in result["warnings"]:
                    print(f"  - {warning}")

            print(f"\nStatus: {result['status'].upper()}")

        return 0

    except Exception as e:
        return _report_error(e, args.json)


def handle_formats_command(args) -> int:
    """Handle the formats subcommand."""
    decoders = [get_decoder(name) for name in list_formats()]
    if args.json:
        print(
            json.dumps(
                [
                    {
                        "name": d.name,
                        "extensions": list(d.extensions),
                        "description": d.description,
                    }
                    for d in decoders
                ],
                indent=2,
            )
        )
    else:
        width = max(len(d.name) for d in decoders)
        for d in decoders:
            extensions = ", ".join(d.extensions)
            print(f"{d.name:<{width}}  {extensions:<22}  {d.description}")
    return 0


def _add_render_flags(render_parser: argparse.ArgumentParser) -> None:
    bool_flag = argparse.BooleanOptionalAction

    output = render_parser.add_argument_group("output")
    output.add_argument("--sample-rate", type=int, help="Output sample rate (Hz)")
    output.add_argument(
        "--cut-sounds", action=bool_flag, help="Cut a sample when the next one starts"
    )
    output.add_argument(
        "--normalize", action=bool_flag, help="Normalize the output peak to 1.0"
    )
    output.add_argument("--seed", type=int, help="Random seed for reproducible output")
    output.add_argument("--workers", type=int, help="Mixing threads")

    timings = render_parser.add_argument_group("click timings (seconds)")
    timings.add_argument("--hard", type=float, help="Minimum gap for hard clicks")
    timings.add_argument("--regular", type=float, help="Minimum gap for clicks")
    timings.add_argument("--soft", type=float, help="Minimum gap for soft clicks")

    pitch = render_parser.add_argument_group("pitch")
    pitch.add_argument("--pitch", action=bool_flag, help="Random pitch variation")
    pitch.add_argument("--pitch-from", type=float, help="Lowest pitch factor")
    pitch.add_argument("--pitch-to", type=float, help="Highest pitch factor")
    pitch.add_argument("--pitch-step", type=float, help="Pitch quantization step")

    volume = render_parser.add_argument_group("volume")
    volume.add_argument(
        "--spam", action=bool_flag, help="Lower the volume of rapid inputs"
    )
    volume.add_argument("--spam-time", type=float, help="Spam window (seconds)")
    volume.add_argument(
        "--spam-vol-offset-factor", type=float, help="Volume drop per second of spam"
    )
    volume.add_argument(
        "--max-spam-vol-offset", type=float, help="Largest spam volume drop"
    )
    volume.add_argument(
        "--change-releases-volume",
        action=bool_flag,
        help="Apply volume variation to releases too",
    )
    volume.add_argument("--volume", type=float, help="Global volume factor")
    volume.add_argument("--volume-var", type=float, help="Random volume variation")

    noise = render_parser.add_argument_group("noise")
    noise.add_argument("--noise", action=bool_flag, help="Overlay background noise")
    noise.add_argument("--noise-volume", type=float, help="Noise volume factor")

    expression = render_parser.add_argument_group("expression")
    expression.add_argument("--expr", help="Per-action arithmetic expression")
    expression.add_argument(
        "--expr-variable",
        choices=[v.value for v in ExprVariable],
        help="What the expression controls",
    )
    expression.add_argument(
        "--expr-negative",
        action=bool_flag,
        help="Allow negative variation ranges",
    )

    replay = render_parser.add_argument_group("replay")
    replay.add_argument(
        "--sort-actions", action=bool_flag, help="Sort actions by time"
    )
    replay.add_argument(
        "--discard-deaths",
        action=bool_flag,
        help="Drop inputs before the last death",
    )
    replay.add_argument(
        "--swap-players", action=bool_flag, help="Swap player 1 and player 2"
    )
    replay.add_argument("--fps", type=float, help="Override the replay FPS")
    replay.add_argument(
        "--implicit-player",
        type=int,
        choices=[1, 2],
        help="Player for formats without player information",
    )
    render_parser.add_argument(
        "--format",
        choices=list_formats(),
        help="Replay format (detected from the file when omitted)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clicksynth",
        description="Render clicking audio from Geometry Dash bot replays",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"clicksynth {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Render subcommand
    render_parser = subparsers.add_parser(
        "render", help="Render replay inputs to a WAV file"
    )
    render_parser.add_argument("replays", nargs="+", help="Replay file(s) to render")
    render_parser.add_argument(
        "--clicks", required=True, help="Clickpack directory"
    )
    render_parser.add_argument(
        "-o",
        "--output",
        help="Output WAV (one replay) or output directory (several replays)",
    )
    render_parser.add_argument("--config", help="TOML render configuration")
    render_parser.add_argument(
        "--json",
        action="store_true",
        help="Output results in machine-readable JSON format",
    )
    _add_render_flags(render_parser)

    # Inspect subcommand
    inspect_parser = subparsers.add_parser(
        "inspect", help="Decode a replay and summarize its inputs"
    )
    inspect_parser.add_argument("replay_file", help="Replay file to inspect")
    inspect_parser.add_argument(
        "--format",
        choices=list_formats(),
        help="Replay format (detected from the file when omitted)",
    )
    inspect_parser.add_argument(
        "--json",
        action="store_true",
        help="Output results in machine-readable JSON format",
    )

    # Formats subcommand
    formats_parser = subparsers.add_parser(
        "formats", help="List supported replay formats"
    )
    formats_parser.add_argument(
        "--json",
        action="store_true",
        help="Output results in machine-readable JSON format",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    # Route to appropriate handler
    if args.command == "render":
        return handle_render_command(args)
    elif args.command == "inspect":
        return handle_inspect_command(args)
    elif args.command == "formats":
        return handle_formats_command(args)
    else:
        # No subcommand provided, show help
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
