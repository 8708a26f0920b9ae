from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from .aligner import AlignedRead, ReadRecord
from .coverage import CoverageProfile
from .phasing import HAPLOTYPES, UNSEPARATED
from .sequence import SequenceBuffer
from .settings import WalkerSettings
from .splice import join_sides
from .toolkit import Toolkit

MessageFn = Callable[[str], None]
MASK_BASE = "N"


@dataclass(frozen=True)
class CorrectedRecord:
    name: str
    sequence: str
    bin: Optional[int] = None


def mask_low_coverage(sequence: str, coverage: CoverageProfile, fraction: float = 0.2) -> str:
    """
    Replace bases whose depth is at most `fraction` of the mean (or unreported) with N.

    Positions are 1-based and only checked up to the last position the profile
    reports; anything past it is left alone.
    """
    last = coverage.last_position
    if last is None:
        return sequence
    threshold = fraction * coverage.mean
    bases = list(sequence)
    for pos in range(1, min(last, len(bases)) + 1):
        depth = coverage.depths.get(pos)
        if depth is None or depth <= threshold:
            bases[pos - 1] = MASK_BASE
    return "".join(bases)


class CorrectionStage:
    """Turn the walked reference into corrected, optionally phased, sequences."""

    def __init__(
        self,
        toolkit: Toolkit,
        settings: Optional[WalkerSettings] = None,
        *,
        say: MessageFn = print,
    ):
        self.toolkit = toolkit
        self.settings = settings or WalkerSettings()
        self.say = say

    def _render(self, reference: SequenceBuffer, alignments: Sequence[AlignedRead]) -> str:
        variants = self.toolkit.call_variants(reference, alignments)
        self.say(f"{len(variants)} variant(s) called from {len(alignments)} alignments.")
        return self.toolkit.apply_variants(reference, variants)

    def run(self, walked: SequenceBuffer, reads: Iterable[ReadRecord], sample: str) -> List[CorrectedRecord]:
        reference = join_sides(walked)
        if len(reference) != len(walked):
            self.say(f"Joined both sides of the gap: {len(walked):,}bp -> {len(reference):,}bp")
        alignments = self.toolkit.mark_duplicates(self.toolkit.align(reference, reads))

        if not self.settings.heterozygous:
            return [CorrectedRecord(sample, self._render(reference, alignments))]

        alignments = self.toolkit.thin(alignments, self.settings.downsample_target)
        bins = self.toolkit.phase(alignments)
        if not bins.get(1):
            self.say("Reads could not be separated into two haplotypes; writing a single sequence.")
            unseparated = bins.get(UNSEPARATED, alignments)
            return [CorrectedRecord(sample, self._render(reference, unseparated))]

        records: List[CorrectedRecord] = []
        for label in HAPLOTYPES:
            members = bins.get(label)
            if not members:
                continue
            corrected = self._render(reference, members)
            masked = mask_low_coverage(corrected, self.toolkit.coverage(members), self.settings.mask_fraction)
            records.append(CorrectedRecord(f"{sample}.{label}", masked, label))
        return records
