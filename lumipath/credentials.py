"""Backend bearer token, kept in the OS keychain via `keyring`.

LUMIPATH_AI__AUTH_TOKEN takes precedence when set, which is what CI and
containers use since they rarely have a keychain.
"""

import logging

import keyring
import keyring.errors

from lumipath.config import settings

log = logging.getLogger(__name__)

_KEYRING_SERVICE = "lumipath"
_TOKEN_KEY = "backend:auth_token"


def save_token(token: str) -> None:
    if token:
        keyring.set_password(_KEYRING_SERVICE, _TOKEN_KEY, token)
        log.info("Stored backend token in keychain")
    else:
        clear_token()


def clear_token() -> None:
    try:
        keyring.delete_password(_KEYRING_SERVICE, _TOKEN_KEY)
    except keyring.errors.PasswordDeleteError:
        pass


def load_token() -> str:
    """Token for the backend API, or "" if none is configured."""
    if settings.ai.auth_token:
        return settings.ai.auth_token
    try:
        return keyring.get_password(_KEYRING_SERVICE, _TOKEN_KEY) or ""
    except keyring.errors.KeyringError as exc:
        log.debug("No usable keychain, sending requests without a token: %s", exc)
        return ""
