"""
gapwalker: close a scaffold gap by walking both flanks toward each other with short reads.

Key entrypoints
---------------
- ExtensionLoop: iterative align -> select -> consensus -> splice controller.
- CorrectionStage: join, variant-correct and (optionally) phase the walked sequence.
- SequenceBuffer: immutable gapped reference value.
- GapWalker: convenience facade combining the above for scripted use.
"""

from .correction import CorrectionStage, mask_low_coverage
from .errors import (
    CollaboratorUnavailable,
    ConfigurationError,
    GapWalkerError,
    UnresolvableGap,
)
from .io import read_fasta_sequences, read_reference, write_fasta
from .pipeline import GapWalker
from .sequence import SequenceBuffer
from .settings import WalkerSettings
from .toolkit import Toolkit, default_toolkit
from .walker import ExtensionLoop, WalkResult, WalkState

__all__ = [
    "GapWalker",
    "ExtensionLoop",
    "CorrectionStage",
    "SequenceBuffer",
    "Toolkit",
    "default_toolkit",
    "WalkerSettings",
    "WalkResult",
    "WalkState",
    "mask_low_coverage",
    "read_fasta_sequences",
    "read_reference",
    "write_fasta",
    "GapWalkerError",
    "ConfigurationError",
    "CollaboratorUnavailable",
    "UnresolvableGap",
]
