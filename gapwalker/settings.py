"""
Global tuning knobs for gapwalker.

Values are loaded from the project-root `configuration.py` when available,
otherwise fall back to the defaults defined here. This keeps thresholds and
tool paths configurable without editing package files.
"""

from dataclasses import dataclass, field, replace
from importlib import import_module
from pathlib import Path
from typing import Any

try:
    _CFG = import_module("configuration")
except Exception:
    _CFG = None


def _cfg_value(name: str, default: Any) -> Any:
    cfg = _CFG
    return getattr(cfg, name, default) if cfg else default


MAX_ITERATIONS: int = _cfg_value("MAX_ITERATIONS", 100)
PREDICTED_COVERAGE: int = _cfg_value("PREDICTED_COVERAGE", 1000)
PROXIMITY_WINDOW: int = _cfg_value("PROXIMITY_WINDOW", 50)

MAPPY_PRESET: str = _cfg_value("MAPPY_PRESET", "sr")
THREADS: int = _cfg_value("THREADS", 4)
MIN_ALIGNED_FRACTION: float = _cfg_value("MIN_ALIGNED_FRACTION", 0.5)

MAFFT: str = _cfg_value("MAFFT", "mafft")

DOWNSAMPLE_TARGET: int = _cfg_value("DOWNSAMPLE_TARGET", 100)
DOWNSAMPLE_SEED: int = _cfg_value("DOWNSAMPLE_SEED", 11)
PHASE_MIN_ALLELE_FRACTION: float = _cfg_value("PHASE_MIN_ALLELE_FRACTION", 0.2)
PHASE_MIN_DEPTH: int = _cfg_value("PHASE_MIN_DEPTH", 4)

MASK_FRACTION: float = _cfg_value("MASK_FRACTION", 0.2)
VARIANT_MIN_DEPTH: int = _cfg_value("VARIANT_MIN_DEPTH", 3)
VARIANT_MIN_FRACTION: float = _cfg_value("VARIANT_MIN_FRACTION", 0.5)

OUTPUT_DIR = _cfg_value("OUTPUT_DIR", str(Path(__file__).resolve().parent.parent / "results"))

HOMOZYGOUS = "homozygous"
HETEROZYGOUS = "heterozygous"


@dataclass
class WalkerSettings:
    """Per-run view of the knobs above; CLI flags override individual fields."""

    max_iterations: int = MAX_ITERATIONS
    predicted_coverage: int = PREDICTED_COVERAGE
    window: int = PROXIMITY_WINDOW
    ploidy_mode: str = HOMOZYGOUS
    preset: str = MAPPY_PRESET
    threads: int = THREADS
    min_aligned_fraction: float = MIN_ALIGNED_FRACTION
    mafft: str = MAFFT
    downsample_target: int = DOWNSAMPLE_TARGET
    downsample_seed: int = DOWNSAMPLE_SEED
    phase_min_fraction: float = PHASE_MIN_ALLELE_FRACTION
    phase_min_depth: int = PHASE_MIN_DEPTH
    mask_fraction: float = MASK_FRACTION
    variant_min_depth: int = VARIANT_MIN_DEPTH
    variant_min_fraction: float = VARIANT_MIN_FRACTION
    output_dir: Path = field(default_factory=lambda: Path(OUTPUT_DIR))

    @property
    def heterozygous(self) -> bool:
        return self.ploidy_mode == HETEROZYGOUS

    @property
    def coverage_ceiling(self) -> int:
        # Extension halts once boundary depth exceeds three times the predicted coverage.
        return 3 * self.predicted_coverage

    def with_overrides(self, **kwargs: Any) -> "WalkerSettings":
        """Return a copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})
