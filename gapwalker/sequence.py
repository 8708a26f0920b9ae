import re
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from .errors import NotFound

GAP_LEN = 10
GAP_RUN = "N" * GAP_LEN
_GAP_PATTERN = re.compile(r"(?<![Nn])[Nn]{%d}(?![Nn])" % GAP_LEN)


@dataclass(frozen=True)
class SequenceBuffer:
    """
    Immutable reference value: a name plus its nucleotide string.

    Every edit returns a new buffer; callers decide whether to adopt it as the
    working reference.
    """

    name: str
    sequence: str

    def __len__(self) -> int:
        return len(self.sequence)

    def gap_run(self) -> Optional[Tuple[int, int]]:
        """(start, length) of the first run of exactly ten N, or None."""
        match = _GAP_PATTERN.search(self.sequence)
        if match is None:
            return None
        return match.start(), GAP_LEN

    def gap_position(self) -> Optional[int]:
        run = self.gap_run()
        return run[0] if run else None

    def count_occurrences(self, substring: str) -> int:
        """Case-insensitive, non-overlapping count; empty patterns count as zero."""
        if not substring:
            return 0
        return self.sequence.upper().count(substring.upper())

    def replace(self, old: str, new: str) -> "SequenceBuffer":
        """Replace the first (case-insensitive) occurrence of `old` with `new`."""
        idx = self.sequence.upper().find(old.upper()) if old else -1
        if idx < 0:
            raise NotFound(f"'{old}' not found in {self.name}")
        return SequenceBuffer(self.name, self.sequence[:idx] + new + self.sequence[idx + len(old) :])

    def with_sequence(self, sequence: str) -> "SequenceBuffer":
        return SequenceBuffer(self.name, sequence)


def n_runs(sequence: str, min_length: int = GAP_LEN) -> Iterator[Tuple[int, int]]:
    """0-based half-open (start, end) of every N stretch at least `min_length` long."""
    for match in re.finditer(r"[Nn]{%d,}" % max(min_length, 1), sequence):
        yield match.start(), match.end()
