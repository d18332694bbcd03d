"""
Process-wide client session: the relay pool plus the active signer.

A [Session][nostalgia.core.session.Session] is created once at startup and
passed to every service. Login and logout only swap the
[Signer][nostalgia.nips.signer.Signer]; the pool and its connections are
untouched. Nothing is persisted: a restarted process starts logged out
unless the secret key environment variable is set.

See Also:
    [BaseService][nostalgia.core.base_service.BaseService]: Receives the
        session in its constructor.
    [nostalgia.utils.keys][]: Environment variable key loading.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any, Self

from pydantic import BaseModel, Field

from nostalgia.nips.signer import (
    ExternalSigner,
    LocalKeySigner,
    NullSigner,
    Signer,
    SigningAgent,
)
from nostalgia.utils.keys import ENV_SECRET_KEY, read_secret_key

from .logger import Logger
from .pool import ConnectionFactory, RelayPool, RelayPoolConfig
from .yaml import load_yaml


class SessionConfig(BaseModel):
    """Top-level client configuration.

    Attributes:
        pool: Relay endpoints, timeouts and limits.
        secret_key_env: Name of the environment variable holding the secret
            key. The key itself never appears in configuration.
        agent_timeout: Seconds to wait for an external signing agent, or
            ``None`` to wait for the user indefinitely.
    """

    pool: RelayPoolConfig = Field(default_factory=RelayPoolConfig)
    secret_key_env: str = Field(
        default=ENV_SECRET_KEY,
        min_length=1,
        description="Environment variable name for the secret key",
    )
    agent_timeout: float | None = Field(default=None, gt=0.0)


class Session:
    """Relay pool and signing identity shared by all services.

    Args:
        pool: The relay pool.
        signer: Initial signer; defaults to the logged-out
            [NullSigner][nostalgia.nips.signer.NullSigner].
    """

    def __init__(self, pool: RelayPool, signer: Signer | None = None) -> None:
        self._pool = pool
        self._signer: Signer = signer or NullSigner()
        self._logger = Logger("session")

    @classmethod
    def from_config(
        cls,
        config: SessionConfig,
        *,
        connection_factory: ConnectionFactory | None = None,
    ) -> Self:
        """Build a session, logging in from the environment when a key is present.

        Raises:
            InvalidKey: If the environment variable holds a malformed key.
        """
        session = cls(RelayPool(config.pool, connection_factory=connection_factory))
        secret_key = read_secret_key(config.secret_key_env)
        if secret_key is not None:
            session.login_with_secret_key(secret_key)
        return session

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> Self:
        """Create a session from the ``session`` section of a YAML file."""
        data = load_yaml(config_path).get("session", {})
        return cls.from_config(SessionConfig(**data), **kwargs)

    @property
    def pool(self) -> RelayPool:
        return self._pool

    @property
    def signer(self) -> Signer:
        return self._signer

    @property
    def public_key(self) -> str | None:
        """Hex public key of the logged-in identity, or ``None``."""
        return self._signer.public_key

    @property
    def is_authenticated(self) -> bool:
        return self._signer.public_key is not None

    def login_with_secret_key(self, secret_key: str) -> str:
        """Switch to a local key signer.

        Returns:
            The hex public key derived from *secret_key*.

        Raises:
            InvalidKey: If *secret_key* is malformed. The previous signer is
                kept.
        """
        signer = LocalKeySigner(secret_key)
        self._signer = signer
        self._logger.info("logged_in", method="secret_key", pubkey=signer.public_key)
        return signer.public_key

    async def login_with_agent(self, agent: SigningAgent, timeout: float | None = None) -> str:  # noqa: ASYNC109
        """Switch to an external signing agent.

        Raises:
            SigningUnavailable: If the agent is unreachable. The previous
                signer is kept.
        """
        signer = await ExternalSigner.connect(agent, timeout=timeout)
        self._signer = signer
        self._logger.info("logged_in", method="agent", pubkey=signer.public_key)
        return signer.public_key

    def logout(self) -> None:
        """Drop the signing identity."""
        if self.is_authenticated:
            self._logger.info("logged_out", pubkey=self._signer.public_key)
        self._signer = NullSigner()

    async def close(self) -> None:
        await self._pool.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
