"""Nostalgia exception hierarchy.

Provides typed exceptions for every error category so that callers can
distinguish recoverable per-relay noise from whole-operation failures, and
so that ``CancelledError`` is never swallowed by a broad ``except``.

Exception hierarchy:

```text
NostalgiaError (base -- never raised directly)
├── ConfigurationError      -- config validation, missing keys, bad YAML
├── ValidationError         -- event id or signature mismatch, malformed event
├── SigningError            -- signing path failures (surfaced to caller)
│   ├── SigningUnavailable  -- no local key and no reachable agent
│   ├── UserRejected        -- external agent declined the request
│   └── InvalidKey          -- malformed secret key
├── EndpointError           -- one relay failed (never surfaced alone)
│   └── EndpointTimeout     -- one relay exceeded its timeout
├── AggregateFailure        -- every relay of an operation failed
│   └── QueryFailure        -- every relay of a query failed
└── UploadError             -- media upload failed
```

Note:
    This module has no imports from the rest of the package, so every layer
    (models, nips, utils, core, services) may depend on it.

See Also:
    [RelayPool][nostalgia.core.pool.RelayPool]: Folds
        [EndpointError][nostalgia.exceptions.EndpointError] instances into
        [AggregateFailure][nostalgia.exceptions.AggregateFailure].
    [MediaUploader][nostalgia.services.uploader.MediaUploader]: Raises
        [UploadError][nostalgia.exceptions.UploadError].
"""

from __future__ import annotations

from collections.abc import Sequence


class NostalgiaError(Exception):
    """Base exception for all Nostalgia errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostalgiaError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Event validation
# ---------------------------------------------------------------------------


class ValidationError(NostalgiaError):
    """An event failed structural, id, or signature validation.

    Raised by [validate()][nostalgia.nips.codec.validate] and
    [parse_event()][nostalgia.nips.codec.parse_event]. Aggregation paths
    catch it and drop the event; it is only surfaced when a locally signed
    event fails to validate.
    """


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


class SigningError(NostalgiaError):
    """Base for failures on the signing path."""


class SigningUnavailable(SigningError):
    """No local key is configured and no external agent is reachable."""


class UserRejected(SigningError):
    """The external signing agent declined the request."""


class InvalidKey(SigningError):
    """The local secret key is malformed or of the wrong length."""


# ---------------------------------------------------------------------------
# Relays
# ---------------------------------------------------------------------------


class EndpointError(NostalgiaError):
    """A single relay failed: connection, protocol, or rejection.

    Attributes:
        url: Normalized URL of the relay that failed.
    """

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.message = message


class EndpointTimeout(EndpointError):
    """A single relay did not finish within its timeout."""


class AggregateFailure(NostalgiaError):
    """Every relay involved in an operation failed.

    Attributes:
        causes: One [EndpointError][nostalgia.exceptions.EndpointError]
            per relay, in endpoint order.
    """

    def __init__(self, message: str, causes: Sequence[EndpointError]) -> None:
        super().__init__(f"{message} ({len(causes)} endpoints failed)")
        self.causes: tuple[EndpointError, ...] = tuple(causes)


class QueryFailure(AggregateFailure):
    """Every relay of a query failed, as opposed to returning no events."""


# ---------------------------------------------------------------------------
# Media upload
# ---------------------------------------------------------------------------


class UploadError(NostalgiaError):
    """A media upload failed at any step.

    Attributes:
        status: HTTP status returned by the media server, or ``None`` when
            the failure happened before a response was received.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message if status is None else f"{message} (status={status})")
        self.status = status
