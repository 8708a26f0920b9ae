import re
from pathlib import Path
from typing import Dict, Iterator, Tuple

try:
    import mappy as mp
except ImportError as exc:
    raise ImportError(
        "mappy (minimap2 Python bindings) is required. Install with `pip install mappy`."
    ) from exc

from .errors import ConfigurationError
from .sequence import GAP_RUN, SequenceBuffer

HEADER_PATTERN = re.compile(r"^>([A-Za-z0-9.]+)$")
SEQUENCE_PATTERN = re.compile(r"^[ACGTNacgtn]+$")


def read_fasta_sequences(path: Path) -> Dict[str, str]:
    """Name -> sequence for every record of a FASTA/FASTQ file (read with mappy, gzip ok)."""
    return {name.split()[0]: seq for name, seq, _ in mp.fastx_read(str(Path(path)), read_comment=False)}


def write_fasta(records: Dict[str, str], path: Path) -> None:
    """Write a FASTA file from a name->sequence dictionary, one sequence line per record."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as handle:
        for name, seq in records.items():
            handle.write(f">{name}\n{seq}\n")


def read_reference(path: Path) -> SequenceBuffer:
    """
    Load a gapped reference: exactly a header line and one sequence line carrying
    a single run of ten N. Anything else is a ConfigurationError.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Reference FASTA not found: {path}")
    lines = [line.strip() for line in path.read_text().splitlines() if line.strip()]
    if len(lines) != 2:
        raise ConfigurationError(
            f"{path}: expected a header and a single sequence line, found {len(lines)} lines"
        )
    header = HEADER_PATTERN.match(lines[0])
    if not header:
        raise ConfigurationError(f"{path}: header must be '>' followed by letters, digits or periods")
    if not SEQUENCE_PATTERN.match(lines[1]):
        raise ConfigurationError(f"{path}: sequence may only contain A, C, G, T or N")
    buffer = SequenceBuffer(header.group(1), lines[1])
    if buffer.gap_run() is None:
        raise ConfigurationError(f"{path}: no gap marker ({GAP_RUN}) found in the reference")
    return buffer


def iter_reads(*paths: Path) -> Iterator[Tuple[str, str]]:
    """
    Yield (read_id, sequence) from one or two FASTA/FASTQ files (gzip is fine).
    With two files the mates get `/1` and `/2` suffixes so ids stay unique.
    """
    paired = len(paths) > 1
    for mate, path in enumerate(paths, start=1):
        for name, seq, _ in mp.fastx_read(str(path), read_comment=False):
            key = name.split()[0]
            if paired and not key.endswith(f"/{mate}"):
                key = f"{key}/{mate}"
            yield key, seq


class ReadFiles:
    """Re-iterable view over read files; every pass re-reads them from disk."""

    def __init__(self, *paths: Path):
        self.paths = tuple(Path(p) for p in paths if p is not None)
        missing = [str(p) for p in self.paths if not p.is_file()]
        if not self.paths or missing:
            raise ConfigurationError(f"Read file(s) not found: {', '.join(missing) or 'none given'}")

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter_reads(*self.paths)


def reverse_complement(seq: str) -> str:
    table = str.maketrans("ACGTacgtNn", "TGCAtgcaNn")
    return seq.translate(table)[::-1]
