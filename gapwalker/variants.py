from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .aligner import AlignedRead
from .bam import indexed_bam, pileup_columns
from .sequence import SequenceBuffer

DELETED = "*"


@dataclass(frozen=True)
class Variant:
    """VCF-style call: 1-based position, reference allele, alternate allele."""

    position: int
    ref: str
    alt: str

    @property
    def is_insertion(self) -> bool:
        return len(self.alt) > len(self.ref)


def pileup(
    alignments: Sequence[AlignedRead], reference: Optional[SequenceBuffer] = None
) -> Tuple[Dict[int, Counter], Dict[int, Counter]]:
    """
    Base and insertion tallies per 0-based reference position, from a pysam pileup.

    Reads inside a deletion count as '*'; an insertion is tallied on the base it follows.
    """
    bases: Dict[int, Counter] = defaultdict(Counter)
    insertions: Dict[int, Counter] = defaultdict(Counter)
    if not alignments:
        return bases, insertions
    with indexed_bam(alignments, reference) as bam:
        for column in pileup_columns(bam):
            pos = column.reference_pos
            for pileup_read in column.pileups:
                if pileup_read.is_refskip:
                    continue
                if pileup_read.is_del:
                    bases[pos][DELETED] += 1
                    continue
                seq = pileup_read.alignment.query_sequence
                qpos = pileup_read.query_position
                bases[pos][seq[qpos].upper()] += 1
                if pileup_read.indel > 0:
                    insertions[pos][seq[qpos + 1 : qpos + 1 + pileup_read.indel].upper()] += 1
    return bases, insertions


def call_variants(
    reference: SequenceBuffer,
    alignments: Sequence[AlignedRead],
    *,
    min_depth: int = 3,
    min_fraction: float = 0.5,
) -> List[Variant]:
    """
    Majority-allele calls from a pileup: substitutions, deleted bases
    and insertions whose allele reaches `min_fraction` of the local depth.
    """
    seq = reference.sequence
    bases, insertions = pileup(alignments, reference)
    calls: List[Variant] = []
    for pos in sorted(bases):
        if pos >= len(seq):
            continue
        counts = bases[pos]
        depth = sum(counts.values())
        if depth < min_depth:
            continue
        ref_base = seq[pos]
        allele, support = counts.most_common(1)[0]
        if allele != ref_base.upper() and allele != "N" and support / depth >= min_fraction:
            calls.append(Variant(pos + 1, ref_base, "" if allele == DELETED else allele))
    for pos in sorted(insertions):
        if not 0 <= pos < len(seq):
            continue
        depth = sum(bases[pos].values()) if pos in bases else 0
        if depth == 0 or depth < min_depth:
            continue
        inserted, support = insertions[pos].most_common(1)[0]
        if support / depth >= min_fraction:
            calls.append(Variant(pos + 1, seq[pos], seq[pos] + inserted))
    calls.sort(key=lambda v: (v.position, v.is_insertion))
    return calls


def apply_variants(reference: SequenceBuffer, variants: Sequence[Variant]) -> str:
    """Render the reference with every call substituted in."""
    replaced: Dict[int, str] = {}
    inserted: Dict[int, str] = {}
    for variant in variants:
        idx = variant.position - 1
        if variant.is_insertion:
            inserted[idx] = variant.alt[len(variant.ref) :]
        else:
            replaced[idx] = variant.alt
    out: List[str] = []
    for idx, base in enumerate(reference.sequence):
        out.append(replaced.get(idx, base))
        out.append(inserted.get(idx, ""))
    return "".join(out)
