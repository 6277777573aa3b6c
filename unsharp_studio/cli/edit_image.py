"""
Command-line editor: load an image, run destructive filters in order,
render the stroke overlay and save the result.

    unsharp-studio in.png out.png --ops unsharp,contrast --stroke-size 4 --stroke-color "#FF0000"
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..models.filter_settings import FilterSettings
from ..pipeline.filter_pipeline import FilterPipeline
from ..services.image_service import ImageService
from ..services.sharpen_service import SharpenService

logger = logging.getLogger(__name__)

OPERATIONS = ("unsharp", "grayscale", "threshold", "contrast")
EXIT_OK = 0
EXIT_INVALID = 2


def _parse_ops(text: str) -> List[str]:
    ops = [op.strip().lower() for op in text.split(",") if op.strip()]
    unknown = [op for op in ops if op not in OPERATIONS]
    if unknown:
        raise argparse.ArgumentTypeError(
            f"unknown operation(s) {', '.join(unknown)}; choose from {', '.join(OPERATIONS)}"
        )
    return ops


def _parse_size(text: str) -> Tuple[int, int]:
    try:
        width, height = (int(part) for part in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {text!r}") from None
    return width, height


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="unsharp-studio",
        description="Unsharp mask, colour operators and stroke overlay for RGBA images.",
    )
    ap.add_argument("input", help="source image (PNG with alpha recommended)")
    ap.add_argument("output", help="destination image; .png keeps transparency")
    ap.add_argument("--ops", type=_parse_ops, default=[],
                    help=f"comma-separated destructive filters applied in order ({','.join(OPERATIONS)})")
    ap.add_argument("--amount", type=float, help="unsharp strength [0, 10]")
    ap.add_argument("--sigma", type=float, help="gaussian spread (UI 'radius') [0, 50]")
    ap.add_argument("--threshold", type=int, help="unsharp noise gate [0, 255]")
    ap.add_argument("--iterations", type=int, dest="unsharp_iterations",
                    help="repeated unsharp applications (>= 1)")
    ap.add_argument("--contrast-amount", type=int, help="contrast amount (-255, 255)")
    ap.add_argument("--stroke-size", type=int, help="halo radius in px [0, 40]")
    ap.add_argument("--stroke-color", help="halo colour as #RRGGBB")
    ap.add_argument("--max-width", type=int, dest="preview_max_width",
                    help="downscale wider inputs to this width")
    ap.add_argument("--workers", type=int, help="threads for the convolution passes")
    ap.add_argument("--raw-size", type=_parse_size, metavar="WxH",
                    help="treat input and output as raw interleaved RGBA8 bytes of this size")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        settings = FilterSettings.from_env().with_overrides(
            amount=args.amount,
            sigma=args.sigma,
            threshold=args.threshold,
            unsharp_iterations=args.unsharp_iterations,
            contrast_amount=args.contrast_amount,
            stroke_size=args.stroke_size,
            stroke_color=args.stroke_color,
            preview_max_width=args.preview_max_width,
            workers=args.workers,
        ).validate()

        image_service = ImageService()
        if not args.raw_size and not image_service.is_supported(args.output):
            raise ValueError(f"unsupported output format: {args.output}")
        pipeline = FilterPipeline(sharpen_service=SharpenService(workers=settings.workers))
        if args.raw_size:
            width, height = args.raw_size
            pipeline.load(image_service.from_buffer(width, height, Path(args.input).read_bytes()))
        else:
            pipeline.load(image_service.load_preview(args.input, settings.preview_max_width))

        for op in args.ops:
            if op == "unsharp":
                pipeline.apply_unsharp(settings)
            elif op == "grayscale":
                pipeline.apply_grayscale()
            elif op == "threshold":
                pipeline.apply_threshold()
            elif op == "contrast":
                pipeline.apply_contrast(settings.contrast_amount)

        result = pipeline.render(settings.stroke_size, settings.color)
        if args.raw_size:
            saved = Path(args.output)
            saved.write_bytes(image_service.to_buffer(result))
        else:
            saved = image_service.save(result, args.output)
    except (ValueError, OSError) as err:
        print(f"unsharp-studio: error: {err}", file=sys.stderr)
        return EXIT_INVALID

    logger.info(f"Saved {saved} ({' -> '.join(pipeline.history) or 'no filters'})")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
