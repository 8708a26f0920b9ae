from conftest import make_read
from gapwalker.sequence import SequenceBuffer
from gapwalker.variants import Variant, apply_variants, call_variants

REF = SequenceBuffer("ctg", "ACGTACGTAC")


def _reads(seq, cigar=None, n=3):
    return [make_read(f"r{i}", seq, 0, cigar=cigar) for i in range(n)]


def test_substitution():
    calls = call_variants(REF, _reads("ACGTGCGTAC"))
    assert calls == [Variant(5, "A", "G")]
    assert apply_variants(REF, calls) == "ACGTGCGTAC"


def test_deletion():
    calls = call_variants(REF, _reads("ACGTCGTAC", cigar=((4, 0), (1, 2), (5, 0))))
    assert calls == [Variant(5, "A", "")]
    assert apply_variants(REF, calls) == "ACGTCGTAC"


def test_insertion():
    calls = call_variants(REF, _reads("ACGTTACGTAC", cigar=((4, 0), (1, 1), (6, 0))))
    assert calls == [Variant(4, "T", "TT")]
    assert apply_variants(REF, calls) == "ACGTTACGTAC"


def test_low_depth_is_not_called():
    assert call_variants(REF, _reads("ACGTGCGTAC", n=2)) == []


def test_minority_allele_is_not_called():
    reads = _reads("ACGTACGTAC", n=3) + _reads("ACGTGCGTAC", n=1)
    assert call_variants(REF, reads) == []


def test_lower_case_reference_matches_reads():
    ref = SequenceBuffer("ctg", "acgtacgtac")
    assert call_variants(ref, _reads("ACGTACGTAC")) == []


def test_gap_bases_are_filled():
    ref = SequenceBuffer("ctg", "ACGTNNGTAC")
    calls = call_variants(ref, _reads("ACGTACGTAC"))
    assert apply_variants(ref, calls) == "ACGTACGTAC"
