import logging
import shutil
import subprocess
import tempfile
from collections import Counter
from pathlib import Path
from typing import Iterable, List, Sequence

from .anchors import AnchorRead
from .errors import GapWalkerError
from .io import read_fasta_sequences, write_fasta

logger = logging.getLogger(__name__)

AMBIGUITY = "?"
GAP_CHAR = "-"


class MafftError(GapWalkerError):
    """Raised when mafft exits with non-zero status."""


def column_consensus(aligned: Sequence[str]) -> str:
    """
    Plurality vote per alignment column.

    Columns where the gap character wins are dropped; ties between bases are
    emitted as the ambiguity placeholder.
    """
    if not aligned:
        return ""
    width = max(len(row) for row in aligned)
    out: List[str] = []
    for col in range(width):
        counts = Counter(row[col].upper() for row in aligned if col < len(row))
        ranked = counts.most_common()
        top, top_count = ranked[0]
        if len(ranked) > 1 and ranked[1][1] == top_count:
            out.append(AMBIGUITY)
        elif top != GAP_CHAR:
            out.append(top)
    return "".join(out)


def strip_ambiguity(consensus: str) -> str:
    return consensus.replace(AMBIGUITY, "")


def run_mafft(sequences: Iterable[AnchorRead], mafft: str = "mafft") -> List[str]:
    """Align sequences with mafft and return the gapped rows in input order."""
    records = {f"r{idx}": seq for idx, (_, seq) in enumerate(sequences)}
    if len(records) == 1:
        return list(records.values())
    work_dir = Path(tempfile.mkdtemp(prefix="gapwalker_msa_"))
    try:
        in_fa = work_dir / "reads.fa"
        out_fa = work_dir / "aligned.fa"
        write_fasta(records, in_fa)
        cmd = [mafft, "--quiet", "--auto", "--nuc", str(in_fa)]
        logger.info(" ".join(cmd))
        try:
            with out_fa.open("w") as out:
                subprocess.run(cmd, stdout=out, stderr=subprocess.PIPE, check=True, text=True)
        except subprocess.CalledProcessError as err:
            raise MafftError(f"mafft failed ({err.returncode}): {err.stderr.strip()}") from err
        aligned = read_fasta_sequences(out_fa)
        return [aligned[name] for name in records if name in aligned]
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)


def build_consensus(anchor_reads: Sequence[AnchorRead], mafft: str = "mafft") -> str:
    """
    Consensus extension for one side: MSA, column vote, ambiguity removed, lower-cased.
    An empty read set gives an empty consensus.
    """
    if not anchor_reads:
        return ""
    rows = run_mafft(anchor_reads, mafft=mafft)
    return strip_ambiguity(column_consensus(rows)).lower()
