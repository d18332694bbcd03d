"""Client services: feed, metadata, publishing and media upload.

Services are the top layer of the diamond DAG, depending on
[nostalgia.core][nostalgia.core], [nostalgia.nips][nostalgia.nips],
[nostalgia.utils][nostalgia.utils], and [nostalgia.models][nostalgia.models].

```text
FeedAssembler --query--> RelayPool <--publish-- Publisher <-- Composer
      |                                                          |
MetadataCache --query (kind 0)--> RelayPool        MediaUploader -+
```

Attributes:
    FeedAssembler: Periodic kind 1 snapshot, extends
        [BaseService][nostalgia.core.base_service.BaseService].
    MetadataCache: Per-author profile cache with a staleness window and
        coalesced refreshes.
    Publisher: Signs and publishes notes and the relay list.
    Composer: Draft content and attachment URLs.
    MediaUploader: Blossom ``PUT /upload`` with kind 24242 authorization.

Examples:
    ```python
    from nostalgia.core import Session, SessionConfig
    from nostalgia.services import FeedAssembler, Publisher

    async with Session.from_config(SessionConfig()) as session:
        feed = FeedAssembler(session=session)
        await feed.refresh()
        await Publisher(session, feed).publish_note("hello")
    ```
"""

from .feed import FeedAssembler, FeedConfig
from .metadata import MetadataCache, MetadataCacheConfig
from .publisher import Composer, Publisher
from .uploader import MediaUploader, UploaderConfig


__all__ = [
    "Composer",
    "FeedAssembler",
    "FeedConfig",
    "MediaUploader",
    "MetadataCache",
    "MetadataCacheConfig",
    "Publisher",
    "UploaderConfig",
]
