"""
Iterative gap walking.

Each iteration realigns the reads to the working reference, picks the reads
that reach into the gap from either side, builds a consensus per side and
splices it in. The loop stops when the reference stops growing, coverage at
both boundaries is implausibly high, the two extensions overlap, or the
iteration budget runs out.
"""

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .aligner import AlignedRead, ReadRecord
from .anchors import LEFT, RIGHT, SIDES, AnchorRead, boundary, extract_anchor_reads, require_evidence
from .errors import ConfigurationError, EmptyEvidence
from .io import read_fasta_sequences, write_fasta
from .phasing import select_driving_bin
from .sequence import SequenceBuffer
from .settings import WalkerSettings
from .splice import apply_splice, sides_probably_meet
from .toolkit import Toolkit

MessageFn = Callable[[str], None]


class WalkState(Enum):
    RUNNING = "Running"
    STOPPED_NO_GROWTH = "StoppedNoGrowth"
    STOPPED_HIGH_COVERAGE = "StoppedHighCoverage"
    STOPPED_SIDES_MET = "StoppedSidesMet"
    STOPPED_MAX_ITERATIONS = "StoppedMaxIterations"

    @property
    def terminal(self) -> bool:
        return self is not WalkState.RUNNING


@dataclass(frozen=True)
class IterationSnapshot:
    iteration: int
    buffer: SequenceBuffer


def reference_fingerprint(buffer: SequenceBuffer) -> str:
    """Digest of the walk input; snapshots are only reused for the same input."""
    return hashlib.sha256(f"{buffer.name}\n{buffer.sequence.upper()}".encode()).hexdigest()


class MemoryCheckpoints:
    """Keeps every iteration snapshot in memory, with the input fingerprint and final state."""

    def __init__(self) -> None:
        self.snapshots: List[IterationSnapshot] = []
        self.fingerprint: Optional[str] = None
        self.state: Optional[WalkState] = None

    def attach(self, reference: SequenceBuffer) -> bool:
        """
        Bind the store to the walk input. Progress recorded for a different
        input (or for an unknown one) is dropped; returns True when that happened.
        """
        fingerprint = reference_fingerprint(reference)
        stale = fingerprint != self.fingerprint and (bool(self.snapshots) or self.state is not None)
        if stale:
            self.reset()
        self.fingerprint = fingerprint
        self._persist()
        return stale

    def reset(self) -> None:
        self.snapshots.clear()
        self.state = None

    def save(self, snapshot: IterationSnapshot) -> None:
        self.snapshots.append(snapshot)
        self.state = WalkState.RUNNING
        self._persist()

    def finish(self, state: WalkState) -> None:
        self.state = state
        self._persist()

    def latest(self) -> Optional[IterationSnapshot]:
        return self.snapshots[-1] if self.snapshots else None

    def _persist(self) -> None:
        pass


class DirectoryCheckpoints(MemoryCheckpoints):
    """
    Snapshots mirrored to `<directory>/<sample>.iter<N>.fasta`, described by a
    `<sample>.walk.json` manifest (input fingerprint, last iteration, state).

    Snapshots listed in an existing manifest are loaded on construction, so an
    interrupted run resumes from the last one written and a finished run
    reports its stored result.
    """

    def __init__(self, directory: Path, sample: str) -> None:
        super().__init__()
        self.directory = Path(directory)
        self.sample = sample
        manifest = self.manifest_path
        if not manifest.is_file():
            return
        recorded = json.loads(manifest.read_text())
        self.fingerprint = recorded.get("reference")
        self.state = WalkState(recorded["state"]) if recorded.get("state") else None
        for iteration in range(1, int(recorded.get("iteration", 0)) + 1):
            path = self.path_for(iteration)
            records = read_fasta_sequences(path) if path.is_file() else {}
            if records:
                name, seq = next(iter(records.items()))
                self.snapshots.append(IterationSnapshot(iteration, SequenceBuffer(name, seq)))

    @property
    def manifest_path(self) -> Path:
        return self.directory / f"{self.sample}.walk.json"

    def path_for(self, iteration: int) -> Path:
        return self.directory / f"{self.sample}.iter{iteration}.fasta"

    def save(self, snapshot: IterationSnapshot) -> None:
        write_fasta({snapshot.buffer.name: snapshot.buffer.sequence}, self.path_for(snapshot.iteration))
        super().save(snapshot)

    def _persist(self) -> None:
        latest = self.latest()
        self.directory.mkdir(parents=True, exist_ok=True)
        self.manifest_path.write_text(
            json.dumps(
                {
                    "reference": self.fingerprint,
                    "iteration": latest.iteration if latest else 0,
                    "state": self.state.value if self.state else None,
                },
                indent=2,
            )
        )


@dataclass
class WalkResult:
    state: WalkState
    final: SequenceBuffer
    iterations: int
    snapshots: List[IterationSnapshot] = field(default_factory=list)
    driving_bin: Optional[int] = None


@dataclass
class IterationOutcome:
    state: WalkState
    buffer: SequenceBuffer
    anchor_reads: Dict[str, List[AnchorRead]]
    depths: Dict[str, float]
    driving_bin: Optional[int] = None


class ExtensionLoop:
    """
    Drives align -> select -> consensus -> splice cycles for one gap.

    The same controller serves both ploidy modes; the heterozygous path adds
    duplicate marking, downsampling and phasing before reads are selected.
    """

    def __init__(
        self,
        toolkit: Toolkit,
        settings: Optional[WalkerSettings] = None,
        *,
        checkpoints: Optional[MemoryCheckpoints] = None,
        say: MessageFn = print,
    ):
        self.toolkit = toolkit
        self.settings = settings or WalkerSettings()
        self.checkpoints = checkpoints if checkpoints is not None else MemoryCheckpoints()
        self.say = say

    def _prepare(
        self, reference: SequenceBuffer, reads: Iterable[ReadRecord]
    ) -> Tuple[List[AlignedRead], Optional[int]]:
        alignments = self.toolkit.align(reference, reads)
        if not self.settings.heterozygous:
            return alignments, None
        alignments = self.toolkit.mark_duplicates(alignments)
        alignments = self.toolkit.thin(alignments, self.settings.downsample_target)
        label, alignments = select_driving_bin(self.toolkit.phase(alignments))
        return alignments, label

    def _evidence(self, alignments: Sequence[AlignedRead], gap_start: int, side: str) -> List[AnchorRead]:
        anchor_reads = extract_anchor_reads(alignments, gap_start, side, self.settings.window)
        try:
            require_evidence(anchor_reads, side)
        except EmptyEvidence as err:
            self.say(f"{err}; {side} side copied forward unchanged.")
        return anchor_reads

    def iterate(self, reference: SequenceBuffer, reads: Iterable[ReadRecord]) -> IterationOutcome:
        """Run one iteration against `reference` and report the resulting state."""
        gap_start = reference.gap_position()
        if gap_start is None:
            raise ConfigurationError(f"{reference.name} has no gap marker to extend into")

        alignments, label = self._prepare(reference, reads)
        coverage = self.toolkit.coverage(alignments)
        anchor_reads = {side: self._evidence(alignments, gap_start, side) for side in SIDES}
        depths = {side: coverage.depth_at_index(boundary(gap_start, side)) for side in SIDES}
        ceiling = self.settings.coverage_ceiling

        def outcome(state: WalkState, buffer: SequenceBuffer) -> IterationOutcome:
            return IterationOutcome(state, buffer, anchor_reads, depths, label)

        if all(depths[side] > ceiling for side in SIDES):
            self.say(
                f"Boundary coverage {depths[LEFT]:.0f}/{depths[RIGHT]:.0f} exceeds {ceiling}; stopping."
            )
            return outcome(WalkState.STOPPED_HIGH_COVERAGE, reference)

        extended = reference
        for side in SIDES:
            if not anchor_reads[side]:
                continue
            if depths[side] > ceiling:
                self.say(f"{side} boundary coverage {depths[side]:.0f} exceeds {ceiling}; {side} side held.")
                continue
            consensus = self.toolkit.consensus(anchor_reads[side])
            result = apply_splice(extended, side, consensus)
            if not result.applied:
                self.say(f"{side} splice skipped: {result.reason}")
            extended = result.buffer

        if len(extended) <= len(reference):
            self.say(f"Reference did not grow ({len(reference):,}bp); stopping.")
            return outcome(WalkState.STOPPED_NO_GROWTH, reference)

        # Only checked when both sides were extended this round; a side held back
        # by high coverage also skips it.
        both_extended = all(anchor_reads[side] and depths[side] <= ceiling for side in SIDES)
        if both_extended and sides_probably_meet(extended):
            self.say("Left and right extensions overlap; the sides probably meet.")
            return outcome(WalkState.STOPPED_SIDES_MET, extended)

        return outcome(WalkState.RUNNING, extended)

    def run(self, reference: SequenceBuffer, reads: Iterable[ReadRecord]) -> WalkResult:
        if reference.gap_run() is None:
            raise ConfigurationError(f"{reference.name} has no gap marker to extend into")

        if self.checkpoints.attach(reference):
            self.say("Discarding snapshots recorded for a different reference.")
        current = reference
        done = 0
        resumed = self.checkpoints.latest()
        if resumed is not None:
            current, done = resumed.buffer, resumed.iteration
        finished = self.checkpoints.state
        if finished is not None and finished.terminal and finished is not WalkState.STOPPED_MAX_ITERATIONS:
            self.say(f"Walk already finished ({finished.value}); reusing its result.")
            return self._finish(finished, current, done, None)
        if resumed is not None:
            self.say(f"Resuming from iteration {done} ({len(current):,}bp).")
        remaining = self.settings.max_iterations - done
        label: Optional[int] = None

        while remaining > 0:
            iteration = done + 1
            self.say(f"Iteration {iteration}: reference {len(current):,}bp")
            outcome = self.iterate(current, reads)
            label = outcome.driving_bin
            self.checkpoints.save(IterationSnapshot(iteration, outcome.buffer))
            done = iteration
            if outcome.state.terminal:
                return self._finish(outcome.state, outcome.buffer, done, label)
            current = outcome.buffer
            remaining -= 1

        self.say(f"Iteration budget of {self.settings.max_iterations} exhausted.")
        return self._finish(WalkState.STOPPED_MAX_ITERATIONS, current, done, label)

    def _finish(
        self, state: WalkState, final: SequenceBuffer, iterations: int, label: Optional[int]
    ) -> WalkResult:
        self.checkpoints.finish(state)
        self.say(f"Walk finished: {state.value} after {iterations} iteration(s), {len(final):,}bp.")
        return WalkResult(
            state=state,
            final=final,
            iterations=iterations,
            snapshots=list(self.checkpoints.snapshots),
            driving_bin=label,
        )
