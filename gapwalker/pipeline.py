from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .correction import CorrectedRecord, CorrectionStage
from .errors import ConfigurationError
from .io import ReadFiles, read_fasta_sequences, read_reference, write_fasta
from .sequence import SequenceBuffer, n_runs
from .settings import WalkerSettings
from .toolkit import Toolkit, default_toolkit
from .walker import DirectoryCheckpoints, ExtensionLoop, WalkResult

MessageFn = Callable[[str], None]


class GapWalker:
    """
    High-level helper that wires reading inputs, walking the gap and correcting
    the result, for scripted or notebook use.
    """

    def __init__(
        self,
        settings: Optional[WalkerSettings] = None,
        toolkit: Optional[Toolkit] = None,
        say: MessageFn = print,
    ):
        self.settings = settings or WalkerSettings()
        self.toolkit = toolkit or default_toolkit(self.settings)
        self.say = say

    def _out_dir(self, out_dir: Optional[Path]) -> Path:
        path = Path(out_dir) if out_dir else Path(self.settings.output_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def walk(
        self,
        reference_fasta: Path,
        reads1: Path,
        reads2: Optional[Path] = None,
        *,
        sample: Optional[str] = None,
        out_dir: Optional[Path] = None,
        resume: bool = True,
    ) -> Tuple[WalkResult, Path]:
        """
        Extend both sides of the gap until the loop stops; returns the result and
        the FASTA holding the walked sequence (`<sample>.walked.fasta`).
        """
        reference = read_reference(reference_fasta)
        reads = ReadFiles(reads1, reads2)
        self.toolkit.check_available()
        sample = sample or reference.name
        out = self._out_dir(out_dir)

        checkpoints = DirectoryCheckpoints(out / "iterations", sample)
        if not resume:
            checkpoints.reset()
        self.say(
            f"Walking gap in {reference.name} ({len(reference):,}bp, {self.settings.ploidy_mode}), "
            f"up to {self.settings.max_iterations} iterations"
        )
        loop = ExtensionLoop(self.toolkit, self.settings, checkpoints=checkpoints, say=self.say)
        result = loop.run(reference, reads)
        walked_path = out / f"{sample}.walked.fasta"
        write_fasta({result.final.name: result.final.sequence}, walked_path)
        self.say(f"Walked sequence written to {walked_path}")
        return result, walked_path

    def correct(
        self,
        walked_fasta: Path,
        reads1: Path,
        reads2: Optional[Path] = None,
        *,
        sample: Optional[str] = None,
        out_dir: Optional[Path] = None,
    ) -> List[Path]:
        """Correct a walked sequence against the reads; one FASTA per output record."""
        records = read_fasta_sequences(walked_fasta) if Path(walked_fasta).is_file() else {}
        if not records:
            raise ConfigurationError(f"No sequence found in {walked_fasta}")
        name, seq = next(iter(records.items()))
        reads = ReadFiles(reads1, reads2)
        self.toolkit.check_available()
        return self._write_corrected(
            CorrectionStage(self.toolkit, self.settings, say=self.say).run(
                SequenceBuffer(name, seq), reads, sample or name
            ),
            self._out_dir(out_dir),
        )

    def close_gap(
        self,
        reference_fasta: Path,
        reads1: Path,
        reads2: Optional[Path] = None,
        *,
        sample: Optional[str] = None,
        out_dir: Optional[Path] = None,
        resume: bool = True,
    ) -> List[Path]:
        """Walk the gap, then correct the walked sequence."""
        result, walked_path = self.walk(
            reference_fasta, reads1, reads2, sample=sample, out_dir=out_dir, resume=resume
        )
        return self.correct(walked_path, reads1, reads2, sample=sample or result.final.name, out_dir=out_dir)

    def _write_corrected(self, records: List[CorrectedRecord], out: Path) -> List[Path]:
        paths: List[Path] = []
        for record in records:
            path = out / f"{record.name}.fasta"
            write_fasta({record.name: record.sequence}, path)
            self.say(f"Corrected sequence {record.name} ({len(record.sequence):,}bp) -> {path}")
            paths.append(path)
        return paths

    def scan_gaps(self, fasta_path: Path, min_gap: int = 10) -> List[Tuple[str, int, int]]:
        """N stretches of at least `min_gap` bases as (name, start, end), 0-based half-open."""
        gaps = [
            (name, start, end)
            for name, seq in read_fasta_sequences(fasta_path).items()
            for start, end in n_runs(seq, min_gap)
        ]
        self.say(f"Found {len(gaps)} gap(s) of at least {min_gap}bp")
        return gaps
