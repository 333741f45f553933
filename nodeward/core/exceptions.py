"""Custom exception hierarchy for nodeward.

All nodeward-specific exceptions inherit from NodewardError, so an
orchestrator can catch every reconcile failure with a single except clause.
"""

from __future__ import annotations


class NodewardError(Exception):
    """Base exception for all nodeward errors."""


class TransportError(NodewardError):
    """Raised when a call to the remote control plane fails."""


class NotFoundError(NodewardError):
    """Raised when an image or network lookup yields no match."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"No {kind} named '{name}' found")


class ExhaustedRetryError(NodewardError):
    """Raised when address discovery reaches its attempt ceiling."""

    def __init__(self, identifier: str, attempts: int) -> None:
        self.identifier = identifier
        self.attempts = attempts
        super().__init__(
            f"Address discovery exhausted for {identifier} after {attempts} attempts"
        )


class PreconditionError(NodewardError):
    """Raised when an operation is invoked on a resource in the wrong state."""


class RenderError(NodewardError):
    """Raised when the bootstrap script cannot be rendered."""


class ConfigurationError(NodewardError):
    """Raised for invalid configuration or missing required settings."""


class ReconcileError(NodewardError):
    """Raised when a reconcile stage fails for a named resource."""

    def __init__(self, resource: str, stage: str, cause: Exception) -> None:
        self.resource = resource
        self.stage = stage
        self.cause = cause
        super().__init__(f"Reconcile of '{resource}' failed during {stage}: {cause}")
