from conftest import make_read, random_dna
from gapwalker.aligner import align_reads, downsample
from gapwalker.bam import mark_duplicates
from gapwalker.io import reverse_complement
from gapwalker.sequence import SequenceBuffer

REFERENCE = SequenceBuffer("ctg1", random_dna(2000, seed=3))


def test_forward_and_reverse_reads_map_in_reference_orientation():
    segment = REFERENCE.sequence[500:600]
    reads = [("fwd", segment), ("rev", reverse_complement(segment)), ("junk", random_dna(100, seed=99))]
    hits = {r.read_id: r for r in align_reads(REFERENCE, reads, threads=1)}
    assert set(hits) == {"fwd", "rev"}
    assert hits["fwd"].strand == 1
    assert hits["rev"].strand == -1
    for hit in hits.values():
        assert hit.sequence == segment
        assert abs(hit.ref_start - 500) <= 5
        assert hit.aligned_fraction > 0.9


def test_duplicates_share_a_footprint():
    reads = [
        make_read("a", "ACGTACGT", 10),
        make_read("b", "ACGTACGT", 10),
        make_read("c", "ACGTACGT", 10, strand=-1),
        make_read("d", "ACGTACGT", 11),
    ]
    kept = {r.read_id for r in mark_duplicates(reads)}
    assert len(kept) == 3
    assert {"c", "d"} <= kept
    assert len(kept & {"a", "b"}) == 1


def test_downsample_is_deterministic():
    reads = [make_read(f"r{i}", "ACGT", i) for i in range(1000)]
    first = downsample(reads, 0.25, seed=5)
    assert first == downsample(reads, 0.25, seed=5)
    assert 150 < len(first) < 350
    assert downsample(reads, 1.0) == reads
