"""
Command line entry point: `ticqr detect` and `ticqr verify`.
"""

import argparse
import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import get_config
from .exceptions import ImageLoadError, TicqrError
from .logger import get_logger
from .models import Calibration, DetectionThresholds
from .processors import BoxVerifier, GridMapper, ScanContext, TickBoxDetector
from .utils import ImagePixelSampler, ItemFeedClient, load_image, parse_item_feed_text

console = Console()
logger = get_logger("ticqr")


def read_image(path: str):
    image = load_image(Path(path))
    if image is None:
        raise ImageLoadError(f"Could not read image {path}", image_path=path)
    return image


def read_calibration(path: str) -> Calibration:
    with open(path, encoding="utf-8") as f:
        return Calibration.from_dict(json.load(f))


def build_thresholds(box_size: float) -> DetectionThresholds:
    config = get_config()
    return DetectionThresholds.from_box_size(box_size, config.detection, config.verification)


def detect_candidates(image, thresholds: DetectionThresholds, capture_id: str):
    """Run box detection; returns None when detection failed."""
    context = ScanContext(image=image, box_size=thresholds.box_size, capture_id=capture_id)
    detector = TickBoxDetector(context, thresholds)
    if not detector.run():
        return None
    return detector.candidates


def cmd_detect(args) -> int:
    image = read_image(args.image)

    if args.box_size is not None:
        box_size = args.box_size
    else:
        box_size = read_calibration(args.calibration).box_size
    # a non-positive size is a CalibrationError
    thresholds = build_thresholds(box_size)
    candidates = detect_candidates(image, thresholds, Path(args.image).stem)
    if candidates is None:
        console.print("[red]Box detection failed - please capture the form again[/red]")
        return 1

    if args.json:
        print(json.dumps([m.centroid.as_tuple() for m in candidates]))
        return 0

    table = Table(title=f"{len(candidates)} un-ticked boxes (box size {box_size:.1f}px)")
    table.add_column("#", justify="right")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    for i, mark in enumerate(candidates, start=1):
        table.add_row(str(i), f"{mark.centroid.x:.1f}", f"{mark.centroid.y:.1f}")
    console.print(table)
    return 0


def cmd_verify(args) -> int:
    config = get_config()

    image = read_image(args.image)

    calibration = read_calibration(args.calibration)
    thresholds = build_thresholds(calibration.box_size)

    # expected items come from a file or straight from the server
    if args.items:
        feed = parse_item_feed_text(Path(args.items).read_text(encoding="utf-8"))
    else:
        feed = ItemFeedClient(config.feed).fetch(args.lookup)
    if not feed.ok:
        console.print(f"[yellow]Server returned status '{feed.status}', no tick boxes to check[/yellow]")

    candidates = detect_candidates(image, thresholds, Path(args.image).stem)
    if candidates is None:
        console.print("[red]Box detection failed - please capture the form again[/red]")
        return 1

    if feed.items:
        GridMapper.from_calibration(calibration).assign_grid_positions(feed.items)

    result = BoxVerifier(thresholds).verify(
        feed.items,
        candidates,
        calibration.fiducial_pairs,
        ImagePixelSampler(image).is_transparent_at,
    )

    if args.json:
        output = result.to_dict()
        output["destination"] = feed.destination
        print(json.dumps(output, ensure_ascii=False, indent=2))
        return 0

    if not result.any_ticked:
        console.print("[yellow]No ticked boxes found[/yellow]")
        return 0

    table = Table(title="Ticked items")
    table.add_column("Quantity", justify="right")
    table.add_column("Description")
    for item in result.items:
        table.add_row(str(item.quantity), item.description)
    console.print(table)
    if feed.destination:
        console.print(f"Send to: [bold]{feed.destination}[/bold]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tick box scanner for QR-tagged forms")
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect = subparsers.add_parser("detect", help="List un-ticked boxes found on an image")
    detect.add_argument("image")
    size = detect.add_mutually_exclusive_group(required=True)
    size.add_argument("--box-size", type=float, help="Expected box edge length in pixels")
    size.add_argument("--calibration", help="Calibration JSON file")
    detect.add_argument("--json", action="store_true")
    detect.set_defaults(func=cmd_detect)

    verify = subparsers.add_parser("verify", help="List the expected items ticked on an image")
    verify.add_argument("image")
    verify.add_argument("--calibration", required=True, help="Calibration JSON file")
    source = verify.add_mutually_exclusive_group(required=True)
    source.add_argument("--items", help="Expected-item feed JSON file")
    source.add_argument("--lookup", help="Page id to look up on the server")
    verify.add_argument("--json", action="store_true")
    verify.set_defaults(func=cmd_verify)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except TicqrError as e:
        logger.error(str(e))
        console.print(f"[red]{e.message}[/red]")
        return 1
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]{e}[/red]")
        return 1

