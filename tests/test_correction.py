import pytest

from conftest import fake_toolkit, make_read, random_dna
from gapwalker.correction import CorrectionStage
from gapwalker.coverage import CoverageProfile
from gapwalker.errors import UnresolvableGap
from gapwalker.io import reverse_complement
from gapwalker.sequence import GAP_RUN, SequenceBuffer
from gapwalker.settings import HETEROZYGOUS, WalkerSettings
from gapwalker.toolkit import default_toolkit
from gapwalker.variants import Variant

JOINED = SequenceBuffer("ctg1", "ACGTACGTAC")


def _stage(toolkit, messages, **settings):
    return CorrectionStage(toolkit, WalkerSettings(**settings), say=messages.append)


def _reads(n=4):
    return [make_read(f"r{i}", JOINED.sequence, 0) for i in range(n)]


def test_homozygous_single_record_with_variants(messages):
    toolkit = fake_toolkit(
        align=lambda reference, reads: _reads(),
        call_variants=lambda reference, alignments: [Variant(2, "C", "T")],
    )
    records = _stage(toolkit, messages).run(JOINED, [], "s1")
    assert [(r.name, r.sequence) for r in records] == [("s1", "ATGTACGTAC")]


def test_walked_sequence_is_joined_before_realignment(messages):
    left, middle, right = random_dna(60, 1), random_dna(40, 2), random_dna(60, 3)
    walked = SequenceBuffer("ctg1", left + middle + right[:25] + GAP_RUN + right)
    seen = []

    def align(reference, reads):
        seen.append(reference.sequence)
        return []

    records = _stage(fake_toolkit(align=align), messages).run(walked, [], "s1")
    assert seen == [left + middle + right]
    assert records[0].sequence == left + middle + right


def test_unjoinable_gap_is_fatal(messages):
    walked = SequenceBuffer("ctg1", random_dna(60, 1) + GAP_RUN + random_dna(60, 3))
    with pytest.raises(UnresolvableGap):
        _stage(fake_toolkit(), messages).run(walked, [], "s1")


def test_duplicates_are_marked_on_both_paths(messages):
    calls = []

    def dedup(alignments):
        calls.append(len(alignments))
        return list(alignments)[:1]

    toolkit = fake_toolkit(align=lambda reference, reads: _reads(), mark_duplicates=dedup)
    _stage(toolkit, messages).run(JOINED, [], "s1")
    _stage(toolkit, messages, ploidy_mode=HETEROZYGOUS).run(JOINED, [], "s1")
    assert calls == [4, 4]


def test_heterozygous_two_bins_are_masked(messages):
    hap0, hap1 = _reads(3), _reads(2)
    profiles = {
        id(hap0): CoverageProfile({1: 30, 2: 30, 3: 2, 4: 30}),
        id(hap1): CoverageProfile({1: 30, 2: 30, 3: 30, 4: 30}),
    }
    toolkit = fake_toolkit(
        align=lambda reference, reads: hap0 + hap1,
        phase=lambda alignments: {0: hap0, 1: hap1},
        coverage=lambda alignments: profiles.get(id(alignments), CoverageProfile()),
        call_variants=lambda reference, alignments: [Variant(1, "A", "G")] if alignments is hap1 else [],
    )
    records = _stage(toolkit, messages, ploidy_mode=HETEROZYGOUS).run(JOINED, [], "s1")
    assert [(r.name, r.bin) for r in records] == [("s1.0", 0), ("s1.1", 1)]
    assert records[0].sequence == "ACNTACGTAC"
    assert records[1].sequence == "GCGTACGTAC"


def test_unseparated_reads_give_one_record(messages):
    toolkit = fake_toolkit(
        align=lambda reference, reads: _reads(),
        phase=lambda alignments: {2: list(alignments)},
    )
    records = _stage(toolkit, messages, ploidy_mode=HETEROZYGOUS).run(JOINED, [], "s1")
    assert len(records) == 1
    assert records[0].name == "s1"
    assert records[0].sequence == JOINED.sequence


def test_default_toolkit_separates_two_haplotypes(messages):
    hap_a = random_dna(600, seed=21)
    swap = {"A": "C", "C": "G", "G": "T", "T": "A"}
    hap_b = list(hap_a)
    for pos in (200, 250, 300, 350):
        hap_b[pos] = swap[hap_b[pos]]
    hap_b = "".join(hap_b)
    # more reads from hap_a so it is the major allele at every site
    reads = [(f"a{s}", hap_a[s : s + 100]) for s in range(0, 501, 4)]
    reads += [(f"b{s}", reverse_complement(hap_b[s : s + 100])) for s in range(0, 501, 5)]

    settings = WalkerSettings(ploidy_mode=HETEROZYGOUS, threads=1)
    stage = CorrectionStage(default_toolkit(settings), settings, say=messages.append)
    records = stage.run(SequenceBuffer("ctg1", hap_a), reads, "s1")

    assert [r.name for r in records] == ["s1.0", "s1.1"]
    assert {r.sequence[120:480] for r in records} == {hap_a[120:480], hap_b[120:480]}
