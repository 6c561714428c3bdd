"""
Batch evaluation report: JSON summary, console summary and charts.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import math
import numpy as np

from .config import EnhancementConfig


def build_report(results: List[Dict[str, Any]], failures: List[Dict[str, str]],
                 cfg: EnhancementConfig, total_time: float,
                 evaluated_at: str) -> Dict[str, Any]:
    """
    Aggregate per-image entries into a report dictionary.

    Args:
        results: Entries produced for successfully enhanced images
        failures: ``{"image_name", "error"}`` entries for rejected images
        cfg: Configuration the batch ran with
        total_time: Wall-clock seconds for the whole batch
        evaluated_at: Timestamp string

    Returns:
        JSON-serialisable report
    """
    report: Dict[str, Any] = {
        "evaluated_at": evaluated_at,
        "config": cfg.to_dict(),
        "summary": {
            "total_images": len(results) + len(failures),
            "enhanced": len(results),
            "failed": len(failures),
            "total_time_seconds": total_time,
        },
        "detailed_results": results,
        "failures": failures,
    }

    if results:
        times = [r["processing_time_seconds"] for r in results]
        finite_psnr = [r["psnr"] for r in results if math.isfinite(r["psnr"])]
        report["quality_metrics"] = {
            "average_original_brightness": float(np.mean([r["original_brightness"] for r in results])),
            "average_enhanced_brightness": float(np.mean([r["enhanced_brightness"] for r in results])),
            "average_dark_ratio": float(np.mean([r["dark_ratio"] for r in results])),
            "brightness_enhancement_avg": float(np.mean([r["brightness_enhancement"] for r in results])),
            "contrast_enhancement_avg": float(np.mean([r["contrast_enhancement"] for r in results])),
            "input_entropy_avg": float(np.mean([r["input_entropy"] for r in results])),
            "output_entropy_avg": float(np.mean([r["output_entropy"] for r in results])),
            "psnr_avg": float(np.mean(finite_psnr)) if finite_psnr else None,
            "mae_avg": float(np.mean([r["mae"] for r in results])),
        }
        report["performance_metrics"] = {
            "images_per_second": len(results) / total_time if total_time > 0 else None,
            "average_processing_time_seconds": float(np.mean(times)),
            "fastest_processing_time": min(times),
            "slowest_processing_time": max(times),
        }

    return report


def write_report(report: Dict[str, Any], path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(_jsonable(report), f, indent=2)


def _jsonable(value: Any) -> Any:
    # Strict JSON has no Infinity/NaN
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def print_summary(report: Dict[str, Any], report_file: Path,
                  chart_file: Optional[Path] = None) -> None:
    summary = report["summary"]

    print("\n" + "=" * 70)
    print("LOW-LIGHT ENHANCEMENT REPORT")
    print("=" * 70)
    print(f"Evaluation date: {report['evaluated_at']}")
    print(f"Total images: {summary['total_images']}")
    print(f"Enhanced: {summary['enhanced']}  Failed: {summary['failed']}")
    print(f"Total processing time: {summary['total_time_seconds']:.1f} seconds")

    quality = report.get("quality_metrics")
    if quality:
        psnr = quality["psnr_avg"]
        print("\nQuality Metrics:")
        print(f"  Average original brightness: {quality['average_original_brightness']:.1f}")
        print(f"  Average enhanced brightness: {quality['average_enhanced_brightness']:.1f}")
        print(f"  Average dark ratio: {quality['average_dark_ratio']:.1%}")
        print(f"  Brightness enhancement (avg): {quality['brightness_enhancement_avg']:.3f}")
        print(f"  Contrast enhancement (avg): {quality['contrast_enhancement_avg']:.3f}")
        print(f"  Entropy in/out (avg): {quality['input_entropy_avg']:.3f} / {quality['output_entropy_avg']:.3f}")
        print(f"  PSNR vs input (avg): {'N/A' if psnr is None else format(psnr, '.2f')} dB")
        print(f"  MAE vs input (avg): {quality['mae_avg']:.3f}")

        perf = report["performance_metrics"]
        print("\nPerformance:")
        print(f"  Average time per image: {perf['average_processing_time_seconds']:.3f} seconds")
        print(f"  Fastest processing: {perf['fastest_processing_time']:.3f}s")
        print(f"  Slowest processing: {perf['slowest_processing_time']:.3f}s")

    for failure in report["failures"]:
        print(f"  FAILED {failure['image_name']}: {failure['error']}")

    print("\nOutput Files:")
    print(f"  Report: {report_file}")
    if chart_file is not None:
        print(f"  Charts: {chart_file}")
    print("=" * 70)


def plot_report(results: List[Dict[str, Any]], path: Path) -> Path:
    """
    Save before/after brightness and timing charts.

    Args:
        results: Per-image report entries
        path: Output PNG path

    Returns:
        The written path
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    fig, axes = plt.subplots(1, 3, figsize=(18, 5))

    before = [r["original_brightness"] for r in results]
    after = [r["enhanced_brightness"] for r in results]
    axes[0].hist([before, after], bins=15, alpha=0.7, label=["Original", "Enhanced"],
                 color=["darkblue", "orange"])
    axes[0].set_xlabel("Average Brightness (0-255)")
    axes[0].set_ylabel("Frequency")
    axes[0].set_title("Brightness Distribution")
    axes[0].legend()
    axes[0].grid(True, alpha=0.3)

    axes[1].scatter(before, after, alpha=0.6, c=before, cmap="viridis", s=50)
    axes[1].plot([0, 255], [0, 255], color="black", linestyle="--", alpha=0.3)
    axes[1].set_xlabel("Original Brightness")
    axes[1].set_ylabel("Enhanced Brightness")
    axes[1].set_title("Enhancement Effectiveness")
    axes[1].grid(True, alpha=0.3)

    stage_names = list(results[0]["stage_seconds"])
    stage_means = [np.mean([r["stage_seconds"][name] for r in results]) for name in stage_names]
    axes[2].bar(stage_names, stage_means, alpha=0.7, color="green")
    axes[2].set_ylabel("Seconds (avg)")
    axes[2].set_title("Stage Timing")
    axes[2].grid(True, alpha=0.3)

    plt.tight_layout()
    path = Path(path)
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path
