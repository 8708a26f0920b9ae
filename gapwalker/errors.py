class GapWalkerError(RuntimeError):
    """Base class for failures reported to the user."""


class ConfigurationError(GapWalkerError):
    """Missing or malformed required input."""


class CollaboratorUnavailable(GapWalkerError):
    """A required external tool or library cannot be found."""


class AmbiguousAnchor(GapWalkerError):
    """Anchor pattern is missing or repeated in the current reference."""


class EmptyEvidence(GapWalkerError):
    """No reads qualify as extension evidence on one side of the gap."""


class UnresolvableGap(GapWalkerError):
    """The two sides of a gap cannot be judged joined."""


class NotFound(ValueError):
    """Substring to replace does not occur in the sequence."""
