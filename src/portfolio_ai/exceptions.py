"""Exception hierarchy for portfolio-ai.

Every error carries a ``retryable`` flag so a transport layer can tell
"retry the same request" apart from "this message/artefact needs a fresh start".
"""

from __future__ import annotations


class PortfolioError(Exception):
    """Base exception for all portfolio-ai errors."""

    retryable: bool = False


# ── External service failures ─────────────────────────────────────────


class TransientServiceError(PortfolioError):
    """An external service call failed or timed out; may be retried."""

    retryable = True


class ContentError(PortfolioError):
    """An external service rejected the input (unsupported payload, bad content).

    Never retried: the same input will fail the same way.
    """


class PipelineFailure(PortfolioError):
    """A message stage exhausted its retry budget or hit a non-retryable error."""

    def __init__(self, stage: str, cause: str) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage}: {cause}")


class GenerationError(TransientServiceError):
    """Content generation failed; the session is parked at ``node`` for a retry."""

    def __init__(self, message: str, *, node: str, session_id: str) -> None:
        self.node = node
        self.session_id = session_id
        super().__init__(message)


# ── Message pipeline state ────────────────────────────────────────────


class MessageStateError(PortfolioError):
    """A message is in a status that does not allow the requested operation."""


class MessageClaimedError(PortfolioError):
    """Another processing attempt already holds the claim on this message."""

    retryable = True


# ── Analysis sessions ─────────────────────────────────────────────────


class InvalidSessionState(PortfolioError):
    """The session does not exist, is closed, or is at a different node."""


class SessionConflictError(InvalidSessionState):
    """``start`` was requested while an analysis session is already active."""


class ValidationError(PortfolioError):
    """A request or node value payload is malformed for the current node."""


class LifecycleError(PortfolioError):
    """An artefact status transition is not allowed."""


# ── Configuration / storage ───────────────────────────────────────────


class ConfigError(PortfolioError):
    """A specialty configuration is invalid and cannot be served."""


class PersistenceError(PortfolioError):
    """Raised when a persistence backend operation fails."""


__all__ = [
    "PortfolioError",
    "TransientServiceError",
    "ContentError",
    "PipelineFailure",
    "GenerationError",
    "MessageStateError",
    "MessageClaimedError",
    "InvalidSessionState",
    "SessionConflictError",
    "ValidationError",
    "LifecycleError",
    "ConfigError",
    "PersistenceError",
]
