r"""Nostalgia -- Nostr relay-pool client.

Queries many independent relays for signed events, merges and verifies the
results, and publishes new events to all of them with at-least-one
acceptance semantics. On top of the pool sit a periodically refreshed
global feed, a per-author profile cache, note publishing and Blossom media
upload.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Feed, metadata, publishing, upload
             /   |   \
          core  nips  utils    Pool, session, signing, transport
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Note:
    For lightweight usage, import directly from subpackages::

        from nostalgia.models import Event
        from nostalgia.core import RelayPool

    Top-level imports (``from nostalgia import RelayPool``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostalgia")

__all__ = [
    "Composer",
    "Event",
    "EventKind",
    "EventTemplate",
    "FeedAssembler",
    "FeedConfig",
    "Filter",
    "LocalKeySigner",
    "Logger",
    "MediaUploader",
    "MetadataCache",
    "ProfileMetadata",
    "Publisher",
    "RelayEndpoint",
    "RelayPool",
    "RelayPoolConfig",
    "Session",
    "SessionConfig",
    "Signer",
    "UploaderConfig",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "Logger": ("nostalgia.core", "Logger"),
    "RelayPool": ("nostalgia.core", "RelayPool"),
    "RelayPoolConfig": ("nostalgia.core", "RelayPoolConfig"),
    "Session": ("nostalgia.core", "Session"),
    "SessionConfig": ("nostalgia.core", "SessionConfig"),
    "Event": ("nostalgia.models", "Event"),
    "EventKind": ("nostalgia.models", "EventKind"),
    "EventTemplate": ("nostalgia.models", "EventTemplate"),
    "Filter": ("nostalgia.models", "Filter"),
    "ProfileMetadata": ("nostalgia.models", "ProfileMetadata"),
    "RelayEndpoint": ("nostalgia.models", "RelayEndpoint"),
    "LocalKeySigner": ("nostalgia.nips", "LocalKeySigner"),
    "Signer": ("nostalgia.nips", "Signer"),
    "Composer": ("nostalgia.services", "Composer"),
    "FeedAssembler": ("nostalgia.services", "FeedAssembler"),
    "FeedConfig": ("nostalgia.services", "FeedConfig"),
    "MediaUploader": ("nostalgia.services", "MediaUploader"),
    "MetadataCache": ("nostalgia.services", "MetadataCache"),
    "Publisher": ("nostalgia.services", "Publisher"),
    "UploaderConfig": ("nostalgia.services", "UploaderConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nostalgia' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
