"""
Collaborators the extension loop and the correction stage depend on.

`Toolkit` bundles them as plain callables so a run can swap any of them out
(tests use in-memory fakes); `default_toolkit` wires mappy, mafft and the
pysam-backed depth, pileup and duplicate helpers with values from `WalkerSettings`.
"""

import logging
import shutil
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .aligner import AlignedRead, ReadRecord, align_reads, downsample
from .bam import mark_duplicates
from .anchors import AnchorRead
from .consensus import build_consensus
from .coverage import CoverageProfile, depth_of_coverage
from .errors import CollaboratorUnavailable
from .phasing import phase_reads
from .sequence import SequenceBuffer
from .settings import WalkerSettings
from .variants import Variant, apply_variants, call_variants

logger = logging.getLogger(__name__)

AlignFn = Callable[[SequenceBuffer, Iterable[ReadRecord]], List[AlignedRead]]


@dataclass
class Toolkit:
    align: AlignFn
    consensus: Callable[[Sequence[AnchorRead]], str]
    phase: Callable[[Sequence[AlignedRead]], Dict[int, List[AlignedRead]]]
    call_variants: Callable[[SequenceBuffer, Sequence[AlignedRead]], List[Variant]]
    apply_variants: Callable[[SequenceBuffer, Sequence[Variant]], str] = apply_variants
    coverage: Callable[[Sequence[AlignedRead]], CoverageProfile] = depth_of_coverage
    mark_duplicates: Callable[[Sequence[AlignedRead]], List[AlignedRead]] = mark_duplicates
    downsample: Callable[[Sequence[AlignedRead], float], List[AlignedRead]] = downsample
    required_binaries: Tuple[str, ...] = ()

    def check_available(self) -> None:
        """Fail before any work starts if an external binary is missing."""
        missing = [name for name in self.required_binaries if shutil.which(name) is None]
        if missing:
            raise CollaboratorUnavailable(
                f"Required tool(s) not found on PATH: {', '.join(missing)}"
            )

    def thin(self, alignments: Sequence[AlignedRead], target: float) -> List[AlignedRead]:
        """Downsample to roughly `target` mean depth when the measured mean exceeds it."""
        mean = self.coverage(alignments).mean
        if mean <= target:
            return list(alignments)
        fraction = target / mean
        logger.info("downsampling from %.1fx to %.1fx (fraction %.3f)", mean, target, fraction)
        return self.downsample(alignments, fraction)


def default_toolkit(settings: Optional[WalkerSettings] = None) -> Toolkit:
    settings = settings or WalkerSettings()
    return Toolkit(
        align=partial(
            align_reads,
            preset=settings.preset,
            threads=settings.threads,
            min_aligned_fraction=settings.min_aligned_fraction,
        ),
        consensus=partial(build_consensus, mafft=settings.mafft),
        phase=partial(
            phase_reads,
            min_fraction=settings.phase_min_fraction,
            min_depth=settings.phase_min_depth,
        ),
        call_variants=partial(
            call_variants,
            min_depth=settings.variant_min_depth,
            min_fraction=settings.variant_min_fraction,
        ),
        downsample=partial(downsample, seed=settings.downsample_seed),
        required_binaries=(settings.mafft,),
    )
