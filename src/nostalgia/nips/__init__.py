"""Nostr Implementation Possibilities -- event identity, signing and builders.

The NIPs layer sits in the middle of the diamond DAG, depending only on
[nostalgia.models][nostalgia.models]. It holds the protocol rules every
other layer relies on: how an event is serialized and identified (NIP-01),
how it is signed (local key or NIP-07 agent), and how each published kind
is laid out (NIP-01, NIP-65, BUD-01).

Attributes:
    codec: Canonical serialization, id computation, verification.
    signer: [Signer][nostalgia.nips.signer.Signer] backends.
    event_builders: Template builders for Kinds 1, 10002 and 24242.

See Also:
    [nostalgia.core.pool][]: Verifies every relay-supplied event with
        [parse_event()][nostalgia.nips.codec.parse_event].
"""

from nostalgia.nips.codec import compute_id, parse_event, serialize, validate, verify
from nostalgia.nips.event_builders import (
    append_attachments,
    authorization_header,
    build_relay_list,
    build_text_note,
    build_upload_authorization,
)
from nostalgia.nips.signer import (
    ExternalSigner,
    LocalKeySigner,
    NullSigner,
    Signer,
    SigningAgent,
    select_signer,
)


__all__ = [
    "ExternalSigner",
    "LocalKeySigner",
    "NullSigner",
    "Signer",
    "SigningAgent",
    "append_attachments",
    "authorization_header",
    "build_relay_list",
    "build_text_note",
    "build_upload_authorization",
    "compute_id",
    "parse_event",
    "select_signer",
    "serialize",
    "validate",
    "verify",
]
