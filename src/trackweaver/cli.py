"""
Command-line interface for track generation.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from trackweaver.game.autopilot import AvoidanceHeuristic
from trackweaver.game.controller import simulate
from trackweaver.pipeline import TrackPipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trackweaver",
        description="Generate a hazard track from an audio file",
    )

    parser.add_argument(
        "input",
        type=Path,
        help="Input audio file (wav, mp3, flac, ogg)",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output manifest file path (default: <input>_track.json)",
    )

    parser.add_argument(
        "-s", "--sample-rate",
        type=int,
        default=None,
        help="Decode sample rate (default: the file's native rate)",
    )

    parser.add_argument(
        "--format",
        choices=["json", "numpy"],
        default="json",
        help="Output format (default: json)",
    )

    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore and do not update the manifest cache",
    )

    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Play the track headlessly with the autopilot and report dodges",
    )

    parser.add_argument(
        "--fps",
        type=int,
        default=60,
        help="Simulation ticks per second (default: 60)",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the autopilot's score jitter",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress progress output",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print manifest summary to stdout",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if not args.input.exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        return 1

    output_path = args.output
    if output_path is None:
        suffix = ".npz" if args.format == "numpy" else ".json"
        output_path = args.input.with_name(f"{args.input.stem}_track{suffix}")

    pipeline = TrackPipeline(sample_rate=args.sample_rate)

    if not args.quiet:
        print(f"Processing: {args.input}")

    result = pipeline.process(
        args.input,
        output_path=output_path,
        format=args.format,
        use_cache=not args.no_cache,
    )

    if not args.quiet:
        print(f"Duration: {result['duration']:.2f}s")
        print(f"Track length: {result['length']:.1f}")
        print(f"Nodes: {result['n_nodes']}")
        print(f"Hazards: {result['n_pulses']}")
        print(f"Output: {result['output_path']}")

    if args.simulate:
        autopilot = AvoidanceHeuristic(config=pipeline.autopilot_config, seed=args.seed)
        report = simulate(
            result["track"],
            fps=args.fps,
            autopilot=autopilot,
            generator_config=pipeline.track_config,
        )
        print(f"Simulated frames: {report.frames}")
        print(f"Lane changes: {len(report.lane_changes)}")
        print(f"Collisions: {report.n_collisions} / {result['n_pulses']}")

    if args.summary:
        manifest = result["manifest"]
        print("\n--- Manifest Summary ---")
        print(json.dumps(manifest["metadata"], indent=2))

        pulses = manifest["track"]["treble_pulses"]
        if len(pulses) > 0:
            print(f"\nFirst hazard: {json.dumps(pulses[0], indent=2)}")
        jumps = [n for n in manifest["track"]["nodes"] if n["is_jump"]]
        print(f"\nJump stations: {len(jumps)}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
