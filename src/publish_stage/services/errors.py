"""Error taxonomy shared by the lifecycle, webhook and store layers.

Every failure a caller can observe is one of these classes; the API layer maps
them to HTTP status codes and a short machine-readable ``error`` string.
"""

from __future__ import annotations


class PublishStageError(RuntimeError):
    """Base exception for all service-level failures."""

    code = "internal_error"

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        super().__init__(message or self.code)
        if code is not None:
            self.code = code


class AuthenticationFailure(PublishStageError):
    """Bad, expired or replayed signature or token."""

    code = "authentication_failed"


class AuthorizationFailure(PublishStageError):
    """The authenticated identity does not own the target record."""

    code = "unauthorized"


class NotFound(PublishStageError):
    """No record matches the lookup key."""

    code = "not_found"


class Conflict(PublishStageError):
    """Duplicate intent or an already-terminal record state."""

    code = "conflict"


class InvalidPayload(PublishStageError):
    """A webhook body or request parameter that cannot be interpreted."""

    code = "invalid_payload"


class UpstreamFailure(PublishStageError):
    """The content store or a chain read failed."""

    code = "upstream_failure"
