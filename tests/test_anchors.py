import pytest

from conftest import make_read, random_dna
from gapwalker.anchors import LEFT, RIGHT, boundary, extract_anchor_reads, require_evidence
from gapwalker.errors import EmptyEvidence

READ = random_dna(100, seed=3)


def test_boundaries_sit_outside_the_gap_run():
    assert boundary(100, LEFT) == 95
    assert boundary(100, RIGHT) == 115
    with pytest.raises(ValueError):
        boundary(100, "middle")


@pytest.mark.parametrize(
    "start,selected",
    [(45, True), (95, True), (44, False), (96, False)],
)
def test_left_window(start, selected):
    reads = [make_read("r", READ, start)]
    assert bool(extract_anchor_reads(reads, 100, LEFT)) is selected


def test_left_read_must_reach_past_the_boundary():
    short = make_read("short", READ[:40], 50)
    assert extract_anchor_reads([short], 100, LEFT) == []


def test_clipped_tail_counts_towards_reach():
    clipped = make_read("clip", READ, 60, cigar=((30, 0),))
    assert extract_anchor_reads([clipped], 100, LEFT) == [("clip", READ)]


@pytest.mark.parametrize(
    "start,selected",
    [
        (65, True),
        (110, True),
        (115, True),
        (64, False),
        # deliberate upper bound: a read starting past the boundary lies wholly
        # inside the right scaffold and is not used, unlike a lower-bound-only rule
        (116, False),
    ],
)
def test_right_window(start, selected):
    reads = [make_read("r", READ, start)]
    assert bool(extract_anchor_reads(reads, 100, RIGHT)) is selected


def test_output_keeps_alignment_order():
    reads = [make_read("a", READ, 50), make_read("b", READ, 60), make_read("c", READ, 300)]
    assert [rid for rid, _ in extract_anchor_reads(reads, 100, LEFT)] == ["a", "b"]


def test_empty_evidence():
    with pytest.raises(EmptyEvidence):
        require_evidence([], RIGHT)
    assert require_evidence([("a", "ACGT")], LEFT) == [("a", "ACGT")]
