"""
Splicing consensus extensions into the gapped reference.

All offsets are measured from the start `p` of the ten-N gap run:

- anchor part (15 bp): the flank bases touching the gap; the consensus must
  contain it so the extension can be placed.
- anchor all (35 bp): anchor part plus the gap run plus 10 more flank bases on
  the outer side; it must be unique in the reference before a splice is applied.
- join anchor (20 bp): flank bases used to decide whether the two sides met.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .anchors import LEFT, RIGHT
from .errors import AmbiguousAnchor, UnresolvableGap
from .sequence import GAP_LEN, GAP_RUN, SequenceBuffer

logger = logging.getLogger(__name__)

ANCHOR_PART_LEN = 15
ANCHOR_ALL_LEN = 35
MIN_EXTENSION_LEN = 35
JOIN_ANCHOR_LEN = 20
_N_RUN = re.compile(r"[Nn]{%d,}" % GAP_LEN)


@dataclass(frozen=True)
class SpliceAnchors:
    side: str
    part: str
    all: str


@dataclass(frozen=True)
class SpliceResult:
    buffer: SequenceBuffer
    applied: bool
    reason: str = ""
    extension: str = ""


def _gap_start(buffer: SequenceBuffer) -> int:
    p = buffer.gap_position()
    if p is None:
        raise AmbiguousAnchor(f"{buffer.name} has no gap run to anchor on")
    return p


def splice_anchors(buffer: SequenceBuffer, side: str) -> SpliceAnchors:
    p = _gap_start(buffer)
    seq = buffer.sequence
    if side == LEFT:
        part = seq[max(0, p - ANCHOR_PART_LEN) : p]
        everything = seq[max(0, p + GAP_LEN - ANCHOR_ALL_LEN) : p + GAP_LEN]
    elif side == RIGHT:
        part = seq[p + GAP_LEN : p + GAP_LEN + ANCHOR_PART_LEN]
        everything = seq[p : p + ANCHOR_ALL_LEN]
    else:
        raise ValueError(f"side must be '{LEFT}' or '{RIGHT}', got {side!r}")
    return SpliceAnchors(side=side, part=part, all=everything)


def new_extension(consensus: str, anchors: SpliceAnchors) -> str:
    """
    Cut the consensus at the anchor part: left keeps the match and everything
    after it, right keeps everything up to and including the match.
    Left uses the first match, right the last one. N calls at the end that
    faces the gap are trimmed so the new gap run stays exactly ten long.
    """
    if not consensus or not anchors.part:
        return ""
    upper, part = consensus.upper(), anchors.part.upper()
    if anchors.side == LEFT:
        idx = upper.find(part)
        return consensus[idx:].rstrip("Nn").lower() if idx >= 0 else ""
    idx = upper.rfind(part)
    return consensus[: idx + len(part)].lstrip("Nn").lower() if idx >= 0 else ""


def _replacement(anchors: SpliceAnchors, extension: str) -> str:
    outer = len(anchors.all) - GAP_LEN - len(anchors.part)
    if anchors.side == LEFT:
        return anchors.all[:outer] + extension + GAP_RUN
    return GAP_RUN + extension + anchors.all[len(anchors.all) - outer :]


def _check_unique(buffer: SequenceBuffer, anchors: SpliceAnchors) -> None:
    count = buffer.count_occurrences(anchors.all)
    if count != 1:
        raise AmbiguousAnchor(f"{anchors.side} anchor occurs {count} times in {buffer.name}")


def apply_splice(buffer: SequenceBuffer, side: str, consensus: str) -> SpliceResult:
    """
    Splice one side's consensus into the reference.

    The splice is a no-op (the input buffer comes back unchanged) unless the
    35 bp anchor is unique and the extension is at least 35 bp long.
    """
    try:
        anchors = splice_anchors(buffer, side)
        _check_unique(buffer, anchors)
    except AmbiguousAnchor as err:
        logger.info("skip %s splice: %s", side, err)
        return SpliceResult(buffer, applied=False, reason=str(err))

    extension = new_extension(consensus, anchors)
    if _N_RUN.search(extension):
        reason = f"{side} extension carries a run of {GAP_LEN} or more N"
        logger.info("skip %s splice: %s", side, reason)
        return SpliceResult(buffer, applied=False, reason=reason, extension=extension)
    if len(extension) < MIN_EXTENSION_LEN:
        reason = f"{side} extension of {len(extension)} bp is shorter than {MIN_EXTENSION_LEN} bp"
        logger.info("skip %s splice: %s", side, reason)
        return SpliceResult(buffer, applied=False, reason=reason, extension=extension)

    spliced = buffer.replace(anchors.all, _replacement(anchors, extension))
    logger.info("%s splice applied: %d -> %d bp", side, len(buffer), len(spliced))
    return SpliceResult(spliced, applied=True, extension=extension)


def join_anchors(buffer: SequenceBuffer) -> Optional[tuple]:
    """The 20 bp immediately left and right of the gap run, or None without a gap."""
    p = buffer.gap_position()
    if p is None:
        return None
    seq = buffer.sequence
    left = seq[max(0, p - JOIN_ANCHOR_LEN) : p]
    right = seq[p + GAP_LEN : p + GAP_LEN + JOIN_ANCHOR_LEN]
    return left, right


def sides_probably_meet(buffer: SequenceBuffer) -> bool:
    """Both join anchors occur at least twice once the extensions overlap."""
    anchors = join_anchors(buffer)
    if anchors is None:
        return False
    left, right = anchors
    return buffer.count_occurrences(left) >= 2 and buffer.count_occurrences(right) >= 2


def join_sides(buffer: SequenceBuffer) -> SequenceBuffer:
    """
    Close the gap of a converged reference by dropping the duplicated overlap.

    The left join anchor is searched in the sequence right of the gap first,
    then the right join anchor in the sequence left of it.
    """
    p = buffer.gap_position()
    if p is None:
        return buffer
    seq = buffer.sequence
    left, right = seq[:p], seq[p + GAP_LEN :]
    left_anchor, right_anchor = left[-JOIN_ANCHOR_LEN:], right[:JOIN_ANCHOR_LEN]

    if len(left_anchor) == JOIN_ANCHOR_LEN:
        idx = right.upper().find(left_anchor.upper())
        if idx >= 0:
            return buffer.with_sequence(left + right[idx + JOIN_ANCHOR_LEN :])
    if len(right_anchor) == JOIN_ANCHOR_LEN:
        idx = left.upper().rfind(right_anchor.upper())
        if idx >= 0:
            return buffer.with_sequence(left[:idx] + right)
    raise UnresolvableGap(f"{buffer.name}: the sequences on both sides of the gap do not overlap")
