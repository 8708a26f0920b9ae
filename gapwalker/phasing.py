"""
Read phasing for the heterozygous path.

Heterozygous sites are taken from a pileup of the alignments; reads are split
by which allele they carry, starting from the deepest site and refining the
allele orientation at every other site from the current bins. Reads that carry
no informative allele are kept in both bins. When no site qualifies, or one of
the bins ends up empty, everything is returned as the unseparated bin 2.
"""

from collections import Counter, defaultdict
from typing import Dict, List, Sequence, Tuple

from .aligner import AlignedRead
from .bam import indexed_bam, pileup_columns
from .variants import DELETED

UNSEPARATED = 2
HAPLOTYPES = (0, 1)

Bins = Dict[int, List[AlignedRead]]


def alleles_by_read(alignments: Sequence[AlignedRead]) -> Dict[str, Dict[int, str]]:
    """Read id -> {0-based position: base} from a pysam pileup; deleted bases are '*'."""
    alleles: Dict[str, Dict[int, str]] = {read.read_id: {} for read in alignments}
    if not alignments:
        return alleles
    with indexed_bam(alignments) as bam:
        for column in pileup_columns(bam):
            for pileup_read in column.pileups:
                if pileup_read.is_refskip:
                    continue
                segment = pileup_read.alignment
                if pileup_read.is_del:
                    base = DELETED
                else:
                    base = segment.query_sequence[pileup_read.query_position].upper()
                alleles[segment.query_name][column.reference_pos] = base
    return alleles


def heterozygous_sites(
    read_alleles: Dict[str, Dict[int, str]],
    *,
    min_fraction: float = 0.2,
    min_depth: int = 4,
) -> Dict[int, Tuple[str, str]]:
    """Map position -> (major, minor) allele for sites where both alleles are well supported."""
    counts: Dict[int, Counter] = defaultdict(Counter)
    for alleles in read_alleles.values():
        for pos, base in alleles.items():
            if base != "N":
                counts[pos][base] += 1
    sites: Dict[int, Tuple[str, str]] = {}
    for pos, counter in counts.items():
        depth = sum(counter.values())
        ranked = counter.most_common(2)
        if depth < min_depth or len(ranked) < 2:
            continue
        if ranked[1][1] / depth >= min_fraction:
            sites[pos] = (ranked[0][0], ranked[1][0])
    return sites


def _score(alleles: Dict[int, str], oriented: Dict[int, Tuple[str, str]]) -> int:
    score = 0
    for pos, (hap0, hap1) in oriented.items():
        base = alleles.get(pos)
        if base == hap0:
            score += 1
        elif base == hap1:
            score -= 1
    return score


def _assign(
    read_alleles: Dict[str, Dict[int, str]], oriented: Dict[int, Tuple[str, str]]
) -> Dict[str, int]:
    assignment: Dict[str, int] = {}
    for read_id, alleles in read_alleles.items():
        score = _score(alleles, oriented)
        if score > 0:
            assignment[read_id] = 0
        elif score < 0:
            assignment[read_id] = 1
    return assignment


def _orient(
    read_alleles: Dict[str, Dict[int, str]],
    sites: Dict[int, Tuple[str, str]],
    assignment: Dict[str, int],
) -> Dict[int, Tuple[str, str]]:
    """Put each site's alleles in (bin 0, bin 1) order given the current assignment."""
    oriented: Dict[int, Tuple[str, str]] = {}
    for pos, (major, minor) in sites.items():
        votes = 0
        for read_id, label in assignment.items():
            base = read_alleles[read_id].get(pos)
            if base == major:
                votes += 1 if label == 0 else -1
            elif base == minor:
                votes += -1 if label == 0 else 1
        oriented[pos] = (major, minor) if votes >= 0 else (minor, major)
    return oriented


def phase_reads(
    alignments: Sequence[AlignedRead],
    *,
    min_fraction: float = 0.2,
    min_depth: int = 4,
    rounds: int = 5,
) -> Bins:
    read_alleles = alleles_by_read(alignments)
    sites = heterozygous_sites(read_alleles, min_fraction=min_fraction, min_depth=min_depth)
    if not sites:
        return {UNSEPARATED: list(alignments)}

    def site_depth(pos: int) -> int:
        return sum(1 for alleles in read_alleles.values() if alleles.get(pos) in sites[pos])

    seed = max(sorted(sites), key=site_depth)
    assignment = _assign(read_alleles, {seed: sites[seed]})
    for _ in range(rounds):
        refined = _assign(read_alleles, _orient(read_alleles, sites, assignment))
        if refined == assignment:
            break
        assignment = refined

    if set(assignment.values()) != set(HAPLOTYPES):
        return {UNSEPARATED: list(alignments)}

    bins: Bins = {label: [] for label in HAPLOTYPES}
    for read in alignments:
        label = assignment.get(read.read_id)
        if label is None:
            for haplotype in HAPLOTYPES:
                bins[haplotype].append(read)
        else:
            bins[label].append(read)
    return bins


def select_driving_bin(bins: Bins) -> Tuple[int, List[AlignedRead]]:
    """Unseparated reads if phasing failed, otherwise the larger haplotype bin."""
    if UNSEPARATED in bins:
        return UNSEPARATED, bins[UNSEPARATED]
    label = max(HAPLOTYPES, key=lambda hap: (len(bins.get(hap, [])), -hap))
    return label, bins.get(label, [])
