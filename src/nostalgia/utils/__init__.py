"""Relay transport, secret key loading, and bounded HTTP reads.

The utils layer sits in the middle of the diamond DAG, depending only on
[nostalgia.models][nostalgia.models] and [nostalgia.nips][nostalgia.nips].
It provides the low-level I/O used by [nostalgia.core][nostalgia.core] and
[nostalgia.services][nostalgia.services].

Attributes:
    transport: [RelayConnection][nostalgia.utils.transport.RelayConnection],
        a reused per-relay nostr-sdk ``Client``.
    keys: Secret key loading from environment variables (nsec1 bech32 or
        hex format).
    http: Size-bounded response body readers.

Note:
    The utils layer has **zero** imports from ``nostalgia.core`` or
    ``nostalgia.services``.

Examples:
    ```python
    from nostalgia.utils.transport import RelayConnection
    from nostalgia.utils.keys import load_signer_from_env
    ```
"""
