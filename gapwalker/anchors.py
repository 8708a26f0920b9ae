"""
Selection of reads that can extend a scaffold into the gap.

The gap run occupies [p, p + 10). Boundaries sit 5 bases outside the run on the
left (p - 5) and 5 bases past it on the right (p + 15), which leaves a fixed
20-base buffer around the gap.
"""

from typing import List, Sequence, Tuple

from .aligner import AlignedRead
from .errors import EmptyEvidence

LEFT = "left"
RIGHT = "right"
SIDES = (LEFT, RIGHT)

LEFT_BOUNDARY_OFFSET = -5
RIGHT_BOUNDARY_OFFSET = 15
DEFAULT_WINDOW = 50

AnchorRead = Tuple[str, str]


def boundary(gap_start: int, side: str) -> int:
    """0-based boundary coordinate for one side of the gap at `gap_start`."""
    if side == LEFT:
        return gap_start + LEFT_BOUNDARY_OFFSET
    if side == RIGHT:
        return gap_start + RIGHT_BOUNDARY_OFFSET
    raise ValueError(f"side must be '{LEFT}' or '{RIGHT}', got {side!r}")


def _spans_left(read: AlignedRead, edge: int, window: int) -> bool:
    # read starts within the window before the boundary and runs past it
    return edge - window <= read.ref_start <= edge and read.reach_end > edge


def _spans_right(read: AlignedRead, edge: int, window: int) -> bool:
    # upper bound added on top of the window: reads starting past the edge sit
    # wholly inside the right scaffold
    return -window <= read.ref_start - edge <= 0


def extract_anchor_reads(
    alignments: Sequence[AlignedRead],
    gap_start: int,
    side: str,
    window: int = DEFAULT_WINDOW,
) -> List[AnchorRead]:
    """Return (read_id, sequence) for reads usable as evidence on `side`, in alignment order."""
    edge = boundary(gap_start, side)
    spans = _spans_left if side == LEFT else _spans_right
    return [(read.read_id, read.sequence) for read in alignments if spans(read, edge, window)]


def require_evidence(anchor_reads: Sequence[AnchorRead], side: str) -> Sequence[AnchorRead]:
    if not anchor_reads:
        raise EmptyEvidence(f"no reads reach the {side} gap boundary")
    return anchor_reads
