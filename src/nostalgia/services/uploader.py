"""
Blossom media upload with a signed, content-addressed authorization.

[MediaUploader.upload()][nostalgia.services.uploader.MediaUploader.upload]
hashes the payload, has the active signer produce a kind 24242
authorization bound to that hash (BUD-01), and ``PUT``s the bytes to
``{server}/upload`` with the authorization in the ``Authorization`` header.
The returned blob descriptor must carry a ``url``; if it also carries a
``sha256`` it must match the uploaded bytes.

Every failure, from signing to a malformed response, surfaces as an
[UploadError][nostalgia.exceptions.UploadError] with the original exception
chained, so callers handle exactly one error type.

See Also:
    [build_upload_authorization()][nostalgia.nips.event_builders.build_upload_authorization]:
        Builds the kind 24242 template.
    [Composer.attach()][nostalgia.services.publisher.Composer.attach]:
        Uploads a file and records its URL as a note attachment.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import aiohttp
from pydantic import BaseModel, Field, field_validator

from nostalgia.core.logger import Logger
from nostalgia.exceptions import SigningError, UploadError, ValidationError
from nostalgia.models.constants import DEFAULT_MEDIA_SERVERS
from nostalgia.nips.event_builders import authorization_header, build_upload_authorization
from nostalgia.utils.http import read_bounded_json, read_bounded_text


if TYPE_CHECKING:
    from nostalgia.nips.signer import Signer


_ERROR_BODY_LIMIT = 1024


class UploaderConfig(BaseModel):
    """Configuration for [MediaUploader][nostalgia.services.uploader.MediaUploader]."""

    server: str = Field(default=DEFAULT_MEDIA_SERVERS[0], description="Blossom server base URL")
    timeout: float = Field(default=60.0, gt=0.0, description="Total upload timeout in seconds")
    max_response_size: int = Field(
        default=64 * 1024, ge=1024, description="Largest accepted response body in bytes"
    )
    authorization_ttl: int = Field(
        default=300, ge=10, description="Seconds until the upload authorization expires"
    )

    @field_validator("server")
    @classmethod
    def validate_server(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        if not v.startswith(("https://", "http://")):
            raise ValueError("server must be an http:// or https:// URL")
        return v.rstrip("/")


SessionFactory = Callable[[aiohttp.ClientTimeout], aiohttp.ClientSession]


def _default_session(timeout: aiohttp.ClientTimeout) -> aiohttp.ClientSession:
    return aiohttp.ClientSession(timeout=timeout)


class MediaUploader:
    """Uploads blobs to a Blossom media server.

    Args:
        config: Server, timeouts and authorization lifetime.
        session_factory: Builds the aiohttp session for each upload.
    """

    def __init__(
        self,
        config: UploaderConfig | None = None,
        *,
        session_factory: SessionFactory = _default_session,
    ) -> None:
        self._config = config or UploaderConfig()
        self._session_factory = session_factory
        self._logger = Logger("uploader")

    @property
    def config(self) -> UploaderConfig:
        return self._config

    async def upload(
        self,
        payload: bytes,
        signer: Signer,
        *,
        name: str = "",
        content_type: str | None = None,
    ) -> str:
        """Upload *payload* and return its public URL.

        Args:
            payload: The bytes to upload.
            signer: Signs the upload authorization.
            name: Original file name, used in the authorization description.
            content_type: ``Content-Type`` header for the body.

        Raises:
            UploadError: On any failure. ``status`` is set when the server
                answered with a non-2xx status.
        """
        sha256_hex = hashlib.sha256(payload).hexdigest()
        description = f"Upload {name}" if name else "Upload Blob"

        try:
            template = build_upload_authorization(
                sha256_hex, ttl=self._config.authorization_ttl, description=description
            )
            auth_event = await signer.sign(template)
        except (SigningError, ValidationError) as e:
            raise UploadError(f"could not authorize upload: {e}") from e

        headers = {"Authorization": authorization_header(auth_event)}
        if content_type:
            headers["Content-Type"] = content_type
        url = f"{self._config.server}/upload"

        try:
            descriptor = await self._put(url, payload, headers)
        except UploadError:
            raise
        except (aiohttp.ClientError, OSError, TimeoutError) as e:
            self._logger.warning("upload_failed", server=self._config.server, error=str(e))
            raise UploadError(f"upload to {self._config.server} failed: {e}") from e
        except ValueError as e:
            raise UploadError(f"invalid response from {self._config.server}: {e}") from e

        blob_url = self._check_descriptor(descriptor, sha256_hex)
        self._logger.info("media_uploaded", sha256=sha256_hex, size=len(payload), url=blob_url)
        return blob_url

    async def _put(self, url: str, payload: bytes, headers: dict[str, str]) -> Any:
        timeout = aiohttp.ClientTimeout(total=self._config.timeout)
        async with (
            self._session_factory(timeout) as session,
            session.put(url, data=payload, headers=headers) as response,
        ):
            if not 200 <= response.status < 300:  # noqa: PLR2004
                reason = response.headers.get("X-Reason") or await read_bounded_text(
                    response, _ERROR_BODY_LIMIT
                )
                self._logger.warning("upload_rejected", status=response.status, reason=reason)
                raise UploadError(f"server rejected upload: {reason or response.reason}", response.status)
            return await read_bounded_json(response, self._config.max_response_size)

    @staticmethod
    def _check_descriptor(descriptor: Any, sha256_hex: str) -> str:
        if not isinstance(descriptor, dict):
            raise UploadError("upload response is not a JSON object")
        blob_url = descriptor.get("url")
        if not isinstance(blob_url, str) or not blob_url:
            raise UploadError("upload response has no url")
        returned_hash = descriptor.get("sha256")
        if returned_hash is not None and returned_hash != sha256_hex:
            raise UploadError(f"server stored a different blob: {returned_hash}")
        return blob_url
