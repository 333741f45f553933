"""Request signing for Triton CloudAPI.

CloudAPI authenticates every request with an HTTP signature over the
``Date`` header, made with one of the account's SSH keys. The key comes from
a private key file, inline key material, or the running SSH agent.
"""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from email.utils import formatdate
from pathlib import Path
from typing import Protocol

import paramiko

from nodeward.core.exceptions import ConfigurationError
from nodeward.observability.logger import logger

from .config import Triton

_log = logger.bind(provider="triton", component="auth")

_SSH_ALGORITHM = "rsa-sha2-256"
_HTTP_ALGORITHM = "rsa-sha256"


def fingerprint(key: paramiko.PKey) -> str:
    """MD5 fingerprint of a key in the colon-separated form CloudAPI expects."""
    return ":".join(f"{b:02x}" for b in key.get_fingerprint())


def _normalize_key_id(key_id: str) -> str:
    return key_id.removeprefix("MD5:").lower()


def _unwrap_signature(signed: paramiko.Message | bytes) -> bytes:
    blob = signed.asbytes() if isinstance(signed, paramiko.Message) else signed
    message = paramiko.Message(blob)
    message.get_text()
    return message.get_binary()


class Signer(Protocol):
    @property
    def key_id(self) -> str: ...

    def sign(self, data: bytes) -> bytes: ...


@dataclass(frozen=True, slots=True)
class PrivateKeySigner:
    """Signs with a private key loaded from disk or inline material."""

    key: paramiko.PKey

    @property
    def key_id(self) -> str:
        return fingerprint(self.key)

    def sign(self, data: bytes) -> bytes:
        return _unwrap_signature(self.key.sign_ssh_data(data, algorithm=_SSH_ALGORITHM))


@dataclass(frozen=True, slots=True)
class AgentSigner:
    """Signs through an SSH agent key."""

    key: paramiko.AgentKey

    @property
    def key_id(self) -> str:
        return fingerprint(self.key)

    def sign(self, data: bytes) -> bytes:
        return _unwrap_signature(self.key.sign_ssh_data(data, algorithm=_SSH_ALGORITHM))


def load_private_key(material: str) -> paramiko.PKey:
    """Load an RSA key from a file path or from inline PEM text.

    Raises:
        ConfigurationError: The key is unreadable or password protected.
    """
    text, source = material, "inline key material"
    if "-----BEGIN" not in material:
        path = Path(material).expanduser()
        try:
            if path.is_file():
                text, source = path.read_text(), str(path)
        except OSError as e:
            raise ConfigurationError(f"Error reading key material from {path}: {e}") from e

    if "-----BEGIN" not in text:
        raise ConfigurationError(f"Failed to read key material '{source}': no key found")
    if "Proc-Type: 4,ENCRYPTED" in text:
        raise ConfigurationError(
            f"Failed to read key '{source}': password protected keys are not "
            "currently supported. Please decrypt the key prior to use."
        )

    try:
        return paramiko.RSAKey.from_private_key(io.StringIO(text))
    except paramiko.PasswordRequiredException as e:
        raise ConfigurationError(
            f"Failed to read key '{source}': password protected keys are not "
            "currently supported. Please decrypt the key prior to use."
        ) from e
    except (paramiko.SSHException, ValueError) as e:
        raise ConfigurationError(f"Failed to read key material '{source}': {e}") from e


def agent_signer(key_id: str, agent: paramiko.Agent | None = None) -> AgentSigner:
    """Find the agent key whose fingerprint matches ``key_id``."""
    agent = agent or paramiko.Agent()
    wanted = _normalize_key_id(key_id)
    for key in agent.get_keys():
        if fingerprint(key) == wanted:
            return AgentSigner(key)
    raise ConfigurationError(f"No key with fingerprint {key_id} found in the SSH agent")


def resolve_signer(config: Triton, agent: paramiko.Agent | None = None) -> Signer:
    """Resolve the signing key once, at client construction."""
    if not config.key_id:
        raise ConfigurationError("Triton key id not found. Set TRITON_KEY_ID.")

    if not config.key_material:
        _log.debug("Using SSH agent key {key_id}", key_id=config.key_id)
        return agent_signer(config.key_id, agent)

    signer = PrivateKeySigner(load_private_key(config.key_material))
    if signer.key_id != _normalize_key_id(config.key_id):
        _log.warning(
            "Key material fingerprint {actual} does not match key id {expected}",
            actual=signer.key_id, expected=config.key_id,
        )
    return signer


class SignatureAuth:
    """HTTP-signature auth for CloudAPI, usable by HttpClient."""

    def __init__(self, signer: Signer, account: str, user: str | None = None) -> None:
        self._signer = signer
        self._account = account
        self._user = user

    @property
    def key_path(self) -> str:
        if self._user:
            return f"/{self._account}/users/{self._user}/keys/{self._signer.key_id}"
        return f"/{self._account}/keys/{self._signer.key_id}"

    def authorization(self, date: str) -> str:
        signature = base64.b64encode(self._signer.sign(f"date: {date}".encode())).decode()
        return (
            f'Signature keyId="{self.key_path}",algorithm="{_HTTP_ALGORITHM}",'
            f'headers="date",signature="{signature}"'
        )

    async def headers(self) -> dict[str, str]:
        date = formatdate(usegmt=True)
        return {
            "Date": date,
            "Authorization": self.authorization(date),
            "Accept": "application/json",
        }

    async def on_401(self) -> None:
        """Nothing to refresh: every request is signed anew with a fresh Date."""
        _log.debug("CloudAPI rejected a signature, replaying with a new Date")
