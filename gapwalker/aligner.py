import logging
import random
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

try:
    import mappy as mp
except ImportError as exc:
    raise ImportError(
        "mappy (minimap2 Python bindings) is required. "
        "Install with `pip install mappy` or build from minimap2 source."
    ) from exc

from .errors import GapWalkerError
from .io import reverse_complement
from .sequence import SequenceBuffer

logger = logging.getLogger(__name__)

# minimap2 CIGAR operation codes
CIGAR_M, CIGAR_I, CIGAR_EQ, CIGAR_X = 0, 1, 7, 8
QUERY_OPS = {CIGAR_M, CIGAR_I, CIGAR_EQ, CIGAR_X}

ReadRecord = Tuple[str, str]


class Minimap2Error(GapWalkerError):
    """Raised when mappy cannot build an index for the reference."""


@dataclass(frozen=True)
class AlignedRead:
    """
    One primary alignment of a read to the working reference.

    `sequence` is the whole read in reference orientation (clipped ends kept),
    `query_start` is the number of clipped bases before the first aligned base.
    Reference coordinates are 0-based, end-exclusive.
    """

    read_id: str
    sequence: str
    ref_start: int
    ref_end: int
    cigar: Tuple[Tuple[int, int], ...]
    query_start: int = 0
    strand: int = 1

    @property
    def aligned_length(self) -> int:
        return sum(length for length, op in self.cigar if op in QUERY_OPS)

    @property
    def aligned_fraction(self) -> float:
        return self.aligned_length / len(self.sequence) if self.sequence else 0.0

    @property
    def reach_end(self) -> int:
        """Reference coordinate the read would reach if its right clip were aligned."""
        return self.ref_end + len(self.sequence) - self.query_start - self.aligned_length


def _oriented_hit(read_id: str, seq: str, hit) -> AlignedRead:
    if hit.strand >= 0:
        oriented, q_start = seq, hit.q_st
    else:
        oriented, q_start = reverse_complement(seq), len(seq) - hit.q_en
    return AlignedRead(
        read_id=read_id,
        sequence=oriented,
        ref_start=hit.r_st,
        ref_end=hit.r_en,
        cigar=tuple((int(length), int(op)) for length, op in hit.cigar),
        query_start=q_start,
        strand=1 if hit.strand >= 0 else -1,
    )


def align_reads(
    reference: SequenceBuffer,
    reads: Iterable[ReadRecord],
    *,
    preset: str = "sr",
    threads: int = 4,
    min_aligned_fraction: float = 0.5,
) -> List[AlignedRead]:
    """
    Align reads to the reference with mappy and keep the primary hit of each.

    Unmapped reads are dropped, as are alignments covering less than
    `min_aligned_fraction` of the read length.
    """
    aligner = mp.Aligner(seq=reference.sequence, preset=preset, n_threads=threads)
    if not aligner:
        raise Minimap2Error(f"Cannot initialise mappy.Aligner for {reference.name}.")

    alignments: List[AlignedRead] = []
    unmapped = short = 0
    for read_id, seq in reads:
        hit = next((h for h in aligner.map(seq) if h.is_primary), None)
        if hit is None:
            unmapped += 1
            continue
        record = _oriented_hit(read_id, seq, hit)
        if record.aligned_fraction < min_aligned_fraction:
            short += 1
            continue
        alignments.append(record)
    alignments.sort(key=lambda r: (r.ref_start, r.read_id))
    logger.info(
        "aligned %d reads to %s (%d unmapped, %d below %.0f%% aligned)",
        len(alignments), reference.name, unmapped, short, min_aligned_fraction * 100,
    )
    return alignments


def downsample(alignments: Sequence[AlignedRead], fraction: float, seed: int = 11) -> List[AlignedRead]:
    """Keep each alignment with probability `fraction` (deterministic for a seed)."""
    if fraction >= 1:
        return list(alignments)
    rng = random.Random(seed)
    return [read for read in alignments if rng.random() < fraction]
