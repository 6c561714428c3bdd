"""
Enhancement configuration and named parameter profiles.

A single dataclass holds every tunable of the four stages and of the
output encoder. Profiles capture the parameter sets the pipeline has
shipped with; ``default`` is the documented reference profile.
"""

from dataclasses import asdict, dataclass, fields, replace as dc_replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Union
import json
import numbers

from .errors import ConfigError


class ToneMapVariant(str, Enum):
    """Global remap operator used by the tone-mapping stage."""

    REINHARD = "reinhard"
    ADAPTIVE_GAIN = "adaptive-gain"


OUTPUT_FORMATS = ("jpeg", "png")


@dataclass(frozen=True)
class EnhancementConfig:
    """
    Parameters for the curve, refinement, denoising and tone-mapping stages.

    Example:
        >>> cfg = EnhancementConfig.profile("balanced").replace(workers=4)
        >>> result = enhance(buffer, cfg)
    """

    # Curve enhancement
    curve_strength: float = 0.8
    curve_iterations: int = 1
    local_contrast_factor: float = 0.2

    # Detail / colour refinement
    saturation_factor: float = 0.3
    saturation_floor: float = 0.1
    saturation_reference: float = 100.0
    sharpen_amount: float = 1.0
    sharpen_blend: float = 0.7
    variance_radius: int = 1
    variance_reference: float = 100.0

    # Edge-aware denoising
    edge_normalization: float = 1200.0
    denoise_edge_threshold: float = 0.3
    denoise_blend_floor: float = 0.3
    intensity_sigma: float = 30.0

    # Tone mapping
    tone_map_variant: ToneMapVariant = ToneMapVariant.REINHARD
    tone_map_avg_threshold: float = 100.0
    tone_map_max_threshold: float = 240.0
    tone_map_gamma: float = 1.0
    tone_map_exposure: float = 1.0
    tone_map_target_luminance: float = 118.0

    # Output
    output_format: str = "jpeg"
    jpeg_quality: int = 92

    # Execution
    workers: int = 1

    def __post_init__(self):
        self._check_numeric_types()

        # Accept plain strings for the variant, e.g. from JSON or argparse
        if not isinstance(self.tone_map_variant, ToneMapVariant):
            try:
                variant = ToneMapVariant(str(self.tone_map_variant).lower())
            except ValueError:
                raise ConfigError(
                    f"Unknown tone_map_variant: {self.tone_map_variant}. "
                    f"Supported: {', '.join(v.value for v in ToneMapVariant)}"
                ) from None
            object.__setattr__(self, "tone_map_variant", variant)

        if not 0.0 < self.curve_strength <= 1.0:
            raise ConfigError(f"curve_strength must be in (0, 1], got {self.curve_strength}")
        if self.curve_iterations < 1:
            raise ConfigError(f"curve_iterations must be >= 1, got {self.curve_iterations}")
        if self.local_contrast_factor < 0:
            raise ConfigError("local_contrast_factor must be non-negative")
        if not 0.0 < self.saturation_floor <= self.saturation_factor:
            raise ConfigError("saturation_floor must be positive and not exceed saturation_factor")
        if self.saturation_reference <= 0:
            raise ConfigError("saturation_reference must be positive")
        if self.sharpen_amount < 0:
            raise ConfigError("sharpen_amount must be non-negative")
        if not 0.0 <= self.sharpen_blend <= 1.0:
            raise ConfigError(f"sharpen_blend must be in [0, 1], got {self.sharpen_blend}")
        if self.variance_radius < 1:
            raise ConfigError("variance_radius must be >= 1")
        if self.variance_reference <= 0:
            raise ConfigError("variance_reference must be positive")
        if self.edge_normalization <= 0:
            raise ConfigError("edge_normalization must be positive")
        if not 0.0 <= self.denoise_edge_threshold <= 1.0:
            raise ConfigError("denoise_edge_threshold must be in [0, 1]")
        if not 0.0 <= self.denoise_blend_floor <= 1.0:
            raise ConfigError("denoise_blend_floor must be in [0, 1]")
        if self.intensity_sigma <= 0:
            raise ConfigError("intensity_sigma must be positive")
        if self.tone_map_gamma <= 0 or self.tone_map_exposure <= 0:
            raise ConfigError("tone_map_gamma and tone_map_exposure must be positive")
        if self.tone_map_target_luminance <= 0:
            raise ConfigError("tone_map_target_luminance must be positive")
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Unknown output_format: {self.output_format}. Supported: {', '.join(OUTPUT_FORMATS)}"
            )
        if not 0 <= self.jpeg_quality <= 100:
            raise ConfigError(f"jpeg_quality must be in [0, 100], got {self.jpeg_quality}")
        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")

    def _check_numeric_types(self) -> None:
        """
        Coerce numeric fields to their declared type.

        Whole floats such as ``3.0`` (common in JSON) are accepted for
        integer fields; booleans and fractional values are not.

        Raises:
            ConfigError: If a numeric field holds a non-numeric value
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type is int:
                if isinstance(value, float) and value.is_integer():
                    value = int(value)
                if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                    raise ConfigError(f"{f.name} must be an integer, got {value!r}")
                object.__setattr__(self, f.name, int(value))
            elif f.type is float:
                if isinstance(value, bool) or not isinstance(value, numbers.Real):
                    raise ConfigError(f"{f.name} must be a number, got {value!r}")
                object.__setattr__(self, f.name, float(value))

    # ─── Construction helpers ──────────────────────────────────────
    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "EnhancementConfig":
        """
        Build a config from a flat mapping, rejecting unknown keys.

        A ``profile`` key selects the base profile the other keys override.
        """
        values = dict(values)
        base = cls.profile(values.pop("profile", DEFAULT_PROFILE_NAME))

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        return base.replace(**values)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "EnhancementConfig":
        """Load a config from a JSON object stored at ``path``."""
        return cls.from_dict(read_config_file(path))

    @classmethod
    def profile(cls, name: str) -> "EnhancementConfig":
        try:
            overrides = PROFILES[name]
        except KeyError:
            raise ConfigError(
                f"Unknown profile: {name}. Supported: {', '.join(sorted(PROFILES))}"
            ) from None
        return cls(**overrides)

    def replace(self, **overrides) -> "EnhancementConfig":
        return dc_replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        values = asdict(self)
        values["tone_map_variant"] = self.tone_map_variant.value
        return values


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read raw configuration values from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the file is not a JSON object
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as fh:
        try:
            values = json.load(fh)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(values, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return values


DEFAULT_PROFILE_NAME = "default"

# Parameter sets observed across pipeline revisions.
PROFILES: Dict[str, Dict[str, Any]] = {
    "default": {},
    "balanced": {
        "saturation_factor": 0.2,
        "tone_map_variant": ToneMapVariant.ADAPTIVE_GAIN,
        "jpeg_quality": 95,
    },
    "legacy": {
        "curve_iterations": 3,
        "jpeg_quality": 90,
    },
}
