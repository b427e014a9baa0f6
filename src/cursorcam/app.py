from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .core.decoder import MediaDecoder
from .core.errors import TransformError
from .io.exporter import PipelineSettings, run_transform
from .io.loaders import load_inputs


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cursorcam", description="Zoom a screen recording toward the mouse.")
    parser.add_argument("-v", "--verbose", action="store_true", help="log per-frame camera transitions")
    commands = parser.add_subparsers(dest="command", required=True)

    transform = commands.add_parser("transform", help="render a recording described by a config file")
    transform.add_argument("config", type=Path)
    transform.add_argument("--upscale", type=int, default=None, help="canvas upscale factor before cropping")

    probe = commands.add_parser("probe", help="print stream information for a video file")
    probe.add_argument("video", type=Path)
    return parser


def _transform(config_path: Path, upscale: Optional[int]) -> int:
    try:
        inputs = load_inputs(config_path)
    except TransformError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    base = config_path.parent
    settings = PipelineSettings()
    if upscale is not None:
        settings.upscale_factor = upscale
    outcome = run_transform(
        inputs.config,
        inputs.mouse_events,
        inputs.window,
        base / inputs.config.input_file,
        base / inputs.config.output_file,
        settings,
    )
    if not outcome.ok:
        print(f"error: {outcome.message}", file=sys.stderr)
        return 1
    print(outcome.message)
    return 0


def _probe(video: Path) -> int:
    try:
        info = MediaDecoder.probe(video)
    except TransformError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(info, indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.command == "probe":
        return _probe(args.video)
    return _transform(args.config, args.upscale)


if __name__ == "__main__":
    raise SystemExit(main())
