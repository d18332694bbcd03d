"""Secret key loading for Nostalgia.

Reads a Nostr secret key (nsec1 bech32 or 64-char hex) from an environment
variable and wraps it in a [LocalKeySigner][nostalgia.nips.signer.LocalKeySigner].

Warning:
    Secret keys must **never** be stored in configuration files, source
    code, or logged to any output. Configuration only names the environment
    variable that holds the key.

See Also:
    [SessionConfig][nostalgia.core.session.SessionConfig]: Declares
        ``secret_key_env``.
    [Session.login_with_secret_key()][nostalgia.core.session.Session.login_with_secret_key]:
        Accepts the value loaded here.

Examples:
    ```python
    import os

    os.environ["NOSTR_SECRET_KEY"] = "nsec1..."  # pragma: allowlist secret
    signer = load_signer_from_env("NOSTR_SECRET_KEY")
    print(signer.public_key)
    ```
"""

from __future__ import annotations

import os

from nostalgia.exceptions import ConfigurationError
from nostalgia.nips.signer import LocalKeySigner


ENV_SECRET_KEY = "NOSTR_SECRET_KEY"  # pragma: allowlist secret  # Default env var name


def read_secret_key(env_var: str = ENV_SECRET_KEY) -> str | None:
    """Return the secret key stored in *env_var*, or ``None`` if unset or blank."""
    value = os.getenv(env_var, "").strip()
    return value or None


def load_signer_from_env(env_var: str = ENV_SECRET_KEY) -> LocalKeySigner:
    """Build a [LocalKeySigner][nostalgia.nips.signer.LocalKeySigner] from *env_var*.

    Raises:
        ConfigurationError: If the environment variable is not set or empty.
        InvalidKey: If the value is not a valid secret key.
    """
    value = read_secret_key(env_var)
    if value is None:
        raise ConfigurationError(
            f"{env_var} environment variable is required. Generate one with: openssl rand -hex 32"
        )
    return LocalKeySigner(value)
