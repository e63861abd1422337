"""Main entry point for subsnip.

This module is executed when running:
- python -m subsnip
- subsnip (via pyproject.toml entry point)
"""

import argparse
import asyncio
import sys

import numpy as np
from numpy.typing import NDArray

from . import log
from .capture import ScreenCaptureAdapter
from .config import Config
from .history import HistorySink
from .models import CaptureError, CropRegion, NoticeKind, PipelineResult
from .pipeline import Pipeline
from .preprocess import crop
from .region import select_region

logger = log.get_logger()

DEFAULT_SOURCE = "screen:1"


class ConsoleSink(HistorySink):
    """History sink that also prints each result to the terminal."""

    def on_result(self, result: PipelineResult, history_worthy: bool) -> None:
        super().on_result(result, history_worthy)
        print(f"[OCR] {result.extracted_text}")
        if result.translated_text:
            print(f"[TR]  {result.translated_text}")
        print()

    def on_notice(self, kind: NoticeKind, message: str) -> None:
        super().on_notice(kind, message)
        print(f"[{kind.value.upper()}] {message}")


def list_sources() -> None:
    """List all capturable screens and exit."""
    print("Available sources:")
    print("-" * 60)

    sources = ScreenCaptureAdapter().list_sources()
    for source in sources:
        print(f"  {source.id:<12} {source.name}")

    print("-" * 60)
    print(f"Total: {len(sources)} sources")


def _parse_floats(value: str, count: int) -> tuple[float, ...]:
    parts = value.split(",")
    if len(parts) != count:
        raise argparse.ArgumentTypeError(f"expected {count} comma-separated numbers, got {value!r}")
    try:
        return tuple(float(p) for p in parts)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _region_arg(value: str) -> CropRegion:
    x, y, w, h = _parse_floats(value, 4)
    try:
        return CropRegion(x, y, w, h)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _rect_arg(value: str) -> tuple[float, float, float, float]:
    return _parse_floats(value, 4)


def _parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Screen subtitle OCR and translation"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config file (default: config.yml)"
    )
    parser.add_argument(
        "--list-sources", "-l",
        action="store_true",
        help="List available capture sources and exit"
    )
    parser.add_argument(
        "--source", "-s",
        type=str,
        default=DEFAULT_SOURCE,
        help=f"Capture source id (default: {DEFAULT_SOURCE})"
    )
    region = parser.add_mutually_exclusive_group()
    region.add_argument(
        "--region", "-r",
        type=_region_arg,
        default=None,
        help="Region as fractions of the frame: x,y,width,height"
    )
    region.add_argument(
        "--rect",
        type=_rect_arg,
        default=None,
        help="Region as a pixel drag on the captured frame: x0,y0,x1,y1"
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--snip",
        action="store_true",
        help="Process a single still and exit instead of running live"
    )
    mode.add_argument(
        "--image", "-i",
        type=str,
        default=None,
        help="Process an image file and exit"
    )
    parser.add_argument(
        "--no-translate",
        action="store_true",
        help="Skip translation of snips (OCR only)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def _resolve_region(args: argparse.Namespace, still: NDArray[np.uint8]) -> CropRegion | None:
    """Region from --region, or from the --rect drag over the still."""
    if args.region is not None:
        return args.region
    if args.rect is not None:
        x0, y0, x1, y1 = args.rect
        region = select_region(still, (x0, y0), (x1, y1))
        if region is None:
            raise ValueError(f"Selection {args.rect} is too small")
        return region
    return None


async def _run_snip(pipeline: Pipeline, args: argparse.Namespace) -> PipelineResult | None:
    if args.image:
        return await pipeline.snip_file(args.image)
    if args.rect is None:
        return await pipeline.snip(args.source, args.region)

    # A pixel drag needs the still first
    still = await pipeline.live.begin_setup(args.source)
    pipeline.live.stop()
    image = crop(still, _resolve_region(args, still))
    if image is None:
        return None
    return await pipeline.process_image(image)


async def _run_live(pipeline: Pipeline, args: argparse.Namespace) -> None:
    controller = pipeline.live
    still = await controller.begin_setup(args.source)
    region = _resolve_region(args, still) or CropRegion.full()
    controller.confirm_region(region)
    controller.start()

    print("Live mode running. Press Ctrl+C to stop.")
    try:
        while controller.is_running:
            await asyncio.sleep(0.2)
    finally:
        await controller.aclose()


async def _run(pipeline: Pipeline, args: argparse.Namespace) -> None:
    try:
        if args.snip or args.image:
            result = await _run_snip(pipeline, args)
            if result is None:
                print("No text found.")
        else:
            await _run_live(pipeline, args)
    finally:
        pipeline.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = _parse_arguments(argv)

    log.configure(debug=args.debug)

    if args.list_sources:
        try:
            list_sources()
        except CaptureError as e:
            print(f"Error: {e}")
            return 1
        return 0

    config = Config.load(args.config)
    if args.no_translate:
        config.auto_translate = False

    sink = ConsoleSink()
    pipeline = Pipeline.create(config, sink)

    logger.info(
        "starting",
        source=args.image or args.source,
        mode="snip" if (args.snip or args.image) else "live",
        language=config.target_language,
    )

    try:
        asyncio.run(_run(pipeline, args))
    except KeyboardInterrupt:
        print("\nInterrupted")
    except (CaptureError, ValueError, OSError) as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
