from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from .aligner import AlignedRead
from .bam import indexed_bam
from .sequence import SequenceBuffer


@dataclass
class CoverageProfile:
    """
    Per-base read depth keyed by 1-based reference position.

    Positions with zero depth are absent rather than stored as 0, so the mean is
    taken over reported positions only.
    """

    depths: Dict[int, float] = field(default_factory=dict)

    def depth_at(self, position: int) -> float:
        return self.depths.get(position, 0)

    def depth_at_index(self, index: int) -> float:
        """Depth at a 0-based sequence index."""
        return self.depth_at(index + 1)

    @property
    def mean(self) -> float:
        if not self.depths:
            return 0.0
        return sum(self.depths.values()) / len(self.depths)

    @property
    def last_position(self) -> Optional[int]:
        return max(self.depths) if self.depths else None


def depth_of_coverage(
    alignments: Sequence[AlignedRead], reference: Optional[SequenceBuffer] = None
) -> CoverageProfile:
    """
    Per-base depth from `pysam.AlignmentFile.count_coverage`.

    Only A/C/G/T calls are counted, so deleted and skipped reference bases add
    nothing; zero-depth positions are left out of the profile.
    """
    if not alignments:
        return CoverageProfile()
    with indexed_bam(alignments, reference) as bam:
        counts = bam.count_coverage(
            bam.references[0], 0, bam.lengths[0], quality_threshold=0, read_callback="nofilter"
        )
    depths: Dict[int, float] = {}
    for index, per_base in enumerate(zip(*counts)):
        depth = sum(per_base)
        if depth:
            depths[index + 1] = depth
    return CoverageProfile(depths)
