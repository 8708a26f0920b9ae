import pysam

from conftest import make_read
from gapwalker.bam import indexed_bam, write_bam
from gapwalker.sequence import SequenceBuffer


def test_clips_become_soft_clips(tmp_path):
    reads = [
        make_read("left", "TTTACGT", 4, cigar=((4, 0),), query_start=3),
        make_read("right", "ACGTAC", 0, cigar=((4, 0),)),
    ]
    path = write_bam(reads, tmp_path / "reads.bam", SequenceBuffer("ctg1", "ACGTACGTAC"))
    assert (tmp_path / "reads.bam.bai").is_file()
    with pysam.AlignmentFile(str(path), "rb") as bam:
        assert bam.references == ("ctg1",)
        cigars = {segment.query_name: segment.cigarstring for segment in bam}
    assert cigars == {"left": "3S4M", "right": "4M2S"}


def test_reverse_reads_keep_reference_orientation():
    reads = [make_read("r", "ACGTACGT", 0, strand=-1)]
    with indexed_bam(reads) as bam:
        segment = next(iter(bam))
        assert segment.is_reverse
        assert segment.query_sequence == "ACGTACGT"
        assert bam.lengths == (8,)
