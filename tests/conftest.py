import random
from typing import Iterable, List, Sequence

import pytest

from gapwalker.aligner import AlignedRead
from gapwalker.anchors import AnchorRead
from gapwalker.sequence import GAP_RUN, SequenceBuffer
from gapwalker.toolkit import Toolkit
from gapwalker.variants import apply_variants


def random_dna(length: int, seed: int) -> str:
    rng = random.Random(seed)
    return "".join(rng.choice("ACGT") for _ in range(length))


def make_read(read_id: str, seq: str, start: int, cigar=None, query_start: int = 0, strand: int = 1) -> AlignedRead:
    cigar = cigar or ((len(seq) - query_start, 0),)
    ref_span = sum(length for length, op in cigar if op in (0, 2, 3, 7, 8))
    return AlignedRead(
        read_id=read_id,
        sequence=seq,
        ref_start=start,
        ref_end=start + ref_span,
        cigar=tuple(cigar),
        query_start=query_start,
        strand=strand,
    )


class OracleGenome:
    """
    A known true sequence with reads tiled across it.

    `align` is a seed-and-extend exact matcher against the working reference;
    `consensus` merges anchor reads by looking them up in the true sequence.
    """

    SEED = 30

    def __init__(self, left: int = 100, middle: int = 60, right: int = 100, read_len: int = 80, step: int = 5):
        self.truth = random_dna(left + middle + right, seed=7)
        self.left, self.middle, self.right = left, middle, right
        self.reads = [
            (f"r{start}", self.truth[start : start + read_len])
            for start in range(0, len(self.truth) - read_len + 1, step)
        ]
        self.consensus_calls: List[Sequence[AnchorRead]] = []

    @property
    def reference(self) -> SequenceBuffer:
        seq = self.truth[: self.left] + GAP_RUN + self.truth[self.left + self.middle :]
        return SequenceBuffer("ctg1", seq)

    def _align_one(self, read_id: str, read: str, ref: str):
        prefix = ref.find(read[: self.SEED])
        if prefix >= 0:
            m = 0
            while m < len(read) and prefix + m < len(ref) and ref[prefix + m] == read[m]:
                m += 1
            return make_read(read_id, read, prefix, cigar=((m, 0),))
        suffix = ref.find(read[-self.SEED :])
        if suffix >= 0:
            end = suffix + self.SEED
            m = self.SEED
            while m < len(read) and end - m - 1 >= 0 and ref[end - m - 1] == read[len(read) - m - 1]:
                m += 1
            clip = len(read) - m
            return make_read(read_id, read, end - m, cigar=((m, 0),), query_start=clip)
        return None

    def align(self, reference: SequenceBuffer, reads: Iterable = ()) -> List[AlignedRead]:
        ref = reference.sequence.upper()
        hits = [self._align_one(rid, seq, ref) for rid, seq in self.reads]
        return sorted((h for h in hits if h is not None), key=lambda r: (r.ref_start, r.read_id))

    def consensus(self, anchor_reads: Sequence[AnchorRead]) -> str:
        self.consensus_calls.append(anchor_reads)
        spans = [(self.truth.find(seq), len(seq)) for _, seq in anchor_reads]
        start = min(s for s, _ in spans)
        end = max(s + n for s, n in spans)
        return self.truth[start:end].lower()


def fake_toolkit(**overrides) -> Toolkit:
    defaults = dict(
        align=lambda reference, reads: [],
        consensus=lambda anchor_reads: "",
        phase=lambda alignments: {2: list(alignments)},
        call_variants=lambda reference, alignments: [],
        apply_variants=apply_variants,
    )
    defaults.update(overrides)
    return Toolkit(**defaults)


@pytest.fixture
def genome():
    return OracleGenome()


@pytest.fixture
def messages():
    return []
