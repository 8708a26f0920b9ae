"""
BAM round trip for in-memory alignments.

Depth, pileups and duplicate flags are read back from a coordinate-sorted,
indexed BAM written with pysam, so they follow samtools semantics. Each call
works in its own temporary directory which is removed afterwards.
"""

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

try:
    import pysam
except ImportError as exc:
    raise ImportError(
        "pysam is required for depth, pileup and duplicate marking. Install with `pip install pysam`."
    ) from exc

from .aligner import AlignedRead
from .sequence import SequenceBuffer

logger = logging.getLogger(__name__)

CIGAR_S = 4
BAM_FREVERSE = 16
BASE_QUALITY = 30
MAPPING_QUALITY = 60
DEFAULT_CONTIG = "contig"
MAX_PILEUP_DEPTH = 1_000_000


def _header(alignments: Sequence[AlignedRead], reference: Optional[SequenceBuffer]) -> pysam.AlignmentHeader:
    if reference is not None:
        name, length = reference.name, len(reference)
    else:
        name, length = DEFAULT_CONTIG, max(read.ref_end for read in alignments)
    return pysam.AlignmentHeader.from_dict(
        {"HD": {"VN": "1.6", "SO": "unsorted"}, "SQ": [{"SN": name, "LN": max(length, 1)}]}
    )


def _segment(read: AlignedRead, header: pysam.AlignmentHeader) -> pysam.AlignedSegment:
    cigar = [(op, length) for length, op in read.cigar]
    tail = len(read.sequence) - read.query_start - read.aligned_length
    if read.query_start:
        cigar.insert(0, (CIGAR_S, read.query_start))
    if tail > 0:
        cigar.append((CIGAR_S, tail))

    segment = pysam.AlignedSegment(header)
    segment.query_name = read.read_id
    segment.query_sequence = read.sequence.upper()
    segment.flag = BAM_FREVERSE if read.strand < 0 else 0
    segment.reference_id = 0
    segment.reference_start = read.ref_start
    segment.mapping_quality = MAPPING_QUALITY
    segment.cigartuples = cigar
    segment.next_reference_id = -1
    segment.next_reference_start = -1
    segment.query_qualities = pysam.qualitystring_to_array(chr(BASE_QUALITY + 33) * len(read.sequence))
    return segment


def write_bam(
    alignments: Sequence[AlignedRead], path: Path, reference: Optional[SequenceBuffer] = None
) -> Path:
    """Write, sort and index `alignments`; returns the path of the sorted BAM."""
    path = Path(path)
    unsorted = path.with_suffix(".unsorted.bam")
    header = _header(alignments, reference)
    with pysam.AlignmentFile(str(unsorted), "wb", header=header) as out:
        for read in alignments:
            out.write(_segment(read, header))
    pysam.sort("-o", str(path), str(unsorted))
    pysam.index(str(path))
    unsorted.unlink()
    return path


@contextmanager
def indexed_bam(
    alignments: Sequence[AlignedRead], reference: Optional[SequenceBuffer] = None
) -> Iterator[pysam.AlignmentFile]:
    """Open a temporary sorted BAM holding `alignments` (which must not be empty)."""
    workdir = Path(tempfile.mkdtemp(prefix="gapwalker_bam_"))
    try:
        path = write_bam(alignments, workdir / "reads.bam", reference)
        with pysam.AlignmentFile(str(path), "rb") as bam:
            yield bam
    finally:
        shutil.rmtree(workdir, ignore_errors=True)


def pileup_columns(bam: pysam.AlignmentFile):
    """Every covered column of the single contig, without flag or quality filters."""
    return bam.pileup(
        bam.references[0],
        stepper="nofilter",
        min_base_quality=0,
        ignore_overlaps=False,
        ignore_orphans=False,
        max_depth=MAX_PILEUP_DEPTH,
    )


def mark_duplicates(alignments: Sequence[AlignedRead]) -> List[AlignedRead]:
    """Drop reads `samtools markdup` flags as duplicates (same 5' end and strand)."""
    if not alignments:
        return []
    workdir = Path(tempfile.mkdtemp(prefix="gapwalker_markdup_"))
    try:
        sorted_bam = write_bam(alignments, workdir / "reads.bam")
        marked = workdir / "marked.bam"
        pysam.markdup(str(sorted_bam), str(marked))
        with pysam.AlignmentFile(str(marked), "rb") as bam:
            duplicates = {segment.query_name for segment in bam if segment.is_duplicate}
    finally:
        shutil.rmtree(workdir, ignore_errors=True)
    kept = [read for read in alignments if read.read_id not in duplicates]
    if duplicates:
        logger.info("marked %d duplicate alignments", len(alignments) - len(kept))
    return kept
