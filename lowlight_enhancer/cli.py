"""
Batch front end for the enhancement pipeline.

Enhances a single image or every supported image in a directory, saves
``<stem>_enhanced.<ext>`` files and writes a JSON evaluation report.
"""

from __future__ import annotations
import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .buffer import PixelBuffer
from .config import PROFILES, EnhancementConfig, ToneMapVariant, read_config_file
from .errors import ConfigError, PipelineError
from .io import SUPPORTED_EXTENSIONS, decode_image, extension_for_format
from .metrics import compute_metrics
from .pipeline import enhance_image
from .report import build_report, plot_report, print_summary, write_report
from .stats import global_hist_stats

logger = logging.getLogger(__name__)

DEFAULT_MAX_MB = 15.0


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Low-light image enhancement")
    g_io = p.add_argument_group("I/O")
    g_io.add_argument("--image", type=str, help="Path to a single image")
    g_io.add_argument("--dir", type=str, help="Path to a directory of images")
    g_io.add_argument("--save_dir", type=str, default="enhanced_results", help="Output folder")
    g_io.add_argument("--report", type=str, default=None,
                      help="Report path (default: <save_dir>/enhancement_report.json)")
    g_io.add_argument("--max_mb", type=float, default=DEFAULT_MAX_MB,
                      help="Skip input files larger than this many MiB")
    g_io.add_argument("--limit", type=int, default=None, help="Process at most N images")
    g_io.add_argument("--charts", action="store_true", help="Save evaluation charts")

    g_cfg = p.add_argument_group("Enhancement")
    g_cfg.add_argument("--config", type=str, default=None, help="JSON file with config values")
    g_cfg.add_argument("--profile", type=str, default=None, choices=sorted(PROFILES))
    g_cfg.add_argument("--curve_strength", type=float)
    g_cfg.add_argument("--curve_iterations", type=int)
    g_cfg.add_argument("--saturation_factor", type=float)
    g_cfg.add_argument("--sharpen_blend", type=float)
    g_cfg.add_argument("--denoise_edge_threshold", type=float)
    g_cfg.add_argument("--tone_map", dest="tone_map_variant", type=str,
                       choices=[v.value for v in ToneMapVariant])
    g_cfg.add_argument("--format", dest="output_format", type=str, choices=["jpeg", "png"])
    g_cfg.add_argument("--quality", dest="jpeg_quality", type=int)
    g_cfg.add_argument("--workers", type=int)

    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p


OVERRIDE_KEYS = ("curve_strength", "curve_iterations", "saturation_factor", "sharpen_blend",
                 "denoise_edge_threshold", "tone_map_variant", "output_format",
                 "jpeg_quality", "workers")


def config_from_args(args: argparse.Namespace) -> EnhancementConfig:
    """Profile defaults, then --config file values, then per-option flags; later wins."""
    values = read_config_file(args.config) if args.config else {}
    if args.profile:
        values["profile"] = args.profile

    values.update({k: getattr(args, k) for k in OVERRIDE_KEYS if getattr(args, k) is not None})
    return EnhancementConfig.from_dict(values)


def collect_images(args: argparse.Namespace) -> List[Path]:
    if args.image:
        paths = [Path(args.image)]
    else:
        folder = Path(args.dir)
        if not folder.is_dir():
            raise FileNotFoundError(f"Image directory not found: {folder}")
        paths = sorted(p for p in folder.iterdir()
                       if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS)

    if args.limit is not None:
        paths = paths[:args.limit]
    return paths


def process_one(path: Path, cfg: EnhancementConfig, save_dir: Path,
                max_bytes: int) -> Dict[str, Any]:
    """
    Enhance one file and collect its report entry.

    Raises:
        PipelineError: If the file cannot be decoded, enhanced or encoded
        ValueError: If the file is rejected by type or size
    """
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise ValueError(f"Unsupported file type: {path.suffix}")

    size = path.stat().st_size
    if size > max_bytes:
        raise ValueError(f"Image size {size / 2**20:.1f} MiB exceeds limit of {max_bytes / 2**20:.1f} MiB")

    start_time = time.time()
    original: PixelBuffer = decode_image(path.read_bytes())
    result = enhance_image(original, cfg)

    out_path = save_dir / f"{path.stem}_enhanced{extension_for_format(result.format)}"
    out_path.write_bytes(result.encoded)
    processing_time = time.time() - start_time

    hist = global_hist_stats(original)
    entry = {
        "image_name": path.name,
        "output_path": str(out_path),
        "width": original.width,
        "height": original.height,
        "original_brightness": result.original_statistics.avg_brightness,
        "enhanced_brightness": result.enhanced_statistics.avg_brightness,
        "original_max_brightness": result.original_statistics.max_brightness,
        "dark_ratio": hist["dark_ratio"],
        "original_contrast": hist["contrast"],
        "processing_time_seconds": processing_time,
        "stage_seconds": result.stage_seconds,
        "encoded_bytes": len(result.encoded),
    }
    entry.update(compute_metrics(original, result.buffer))
    return entry


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_argparser()
    args = parser.parse_args(argv)
    if not args.image and not args.dir:
        parser.error("one of --image or --dir is required")
    if args.limit is not None and args.limit < 0:
        parser.error("--limit must be >= 0")

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        cfg = config_from_args(args)
        image_paths = collect_images(args)
    except (ConfigError, FileNotFoundError) as e:
        parser.error(str(e))
    save_dir = Path(args.save_dir)
    save_dir.mkdir(parents=True, exist_ok=True)
    max_bytes = int(args.max_mb * 2**20)

    print(f"Processing {len(image_paths)} images...")
    results: List[Dict[str, Any]] = []
    failures: List[Dict[str, str]] = []
    start_batch_time = time.time()

    for i, path in enumerate(image_paths, 1):
        try:
            entry = process_one(path, cfg, save_dir, max_bytes)
        except (PipelineError, ValueError, OSError) as e:
            logger.error("Failed to enhance %s: %s", path, e)
            failures.append({"image_name": path.name, "error": f"{type(e).__name__}: {e}"})
            continue

        results.append(entry)
        print(f"  [{i}/{len(image_paths)}] {path.name}: "
              f"{entry['original_brightness']:.1f} -> {entry['enhanced_brightness']:.1f} "
              f"({entry['processing_time_seconds']:.2f}s)")

    total_time = time.time() - start_batch_time
    report = build_report(results, failures, cfg, total_time,
                          evaluated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S"))

    report_file = Path(args.report) if args.report else save_dir / "enhancement_report.json"
    write_report(report, report_file)

    chart_file = None
    if args.charts and results:
        chart_file = plot_report(results, save_dir / "evaluation_charts.png")

    print_summary(report, report_file, chart_file)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
