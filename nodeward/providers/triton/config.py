"""Triton provider configuration.

Immutable configuration dataclass for the Triton CloudAPI provider.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Literal

# =============================================================================
# Configuration
# =============================================================================

type MissingReferencePolicy = Literal["fail", "ignore"]


@dataclass(frozen=True, slots=True)
class Triton:
    """Triton CloudAPI provider configuration.

    Credentials fall back to the TRITON_* environment variables. When no key
    material is configured, the signing key is taken from the running SSH
    agent, matched by ``key_id``.

    Example:
        >>> from nodeward.providers.triton import Triton
        >>> config = Triton(account="acme", key_id="f7:75:b3:...")

    Args:
        url: CloudAPI endpoint. Falls back to TRITON_URL.
        account: Account login. Falls back to TRITON_ACCOUNT.
        key_id: MD5 fingerprint of the signing key. Falls back to TRITON_KEY_ID.
        key_material: Private key path or inline PEM. Falls back to TRITON_KEY_MATERIAL.
        user: Sub-user login (optional). Falls back to TRITON_USER.
        package: Package (instance size) used for every node.
        image_name: Image name looked up before creation.
        image_version: Image version looked up before creation.
        public_network: Name of the public network attached to every node.
        fabric_network: Name of the private fabric network attached to every node.
        address_attempts: Ceiling of "get instance" polls during address discovery.
        address_interval: Seconds between address discovery polls.
        address_timeout: Optional wall-clock bound on address discovery.
        request_timeout: HTTP request timeout in seconds.
        missing_reference: "fail" raises NotFoundError when the image or a
            network is missing; "ignore" logs and creates with an empty reference.
        bootstrap_dir: Extra directory searched for bootstrap scripts.
    """

    url: str | None = None
    account: str | None = None
    key_id: str | None = None
    key_material: str | None = None
    user: str | None = None
    package: str = "k4-highcpu-kvm-1.75G"
    image_name: str = "ubuntu-certified-16.04"
    image_version: str = "20180222"
    public_network: str = "Joyent-SDC-Public"
    fabric_network: str = "My-Fabric-Network"
    address_attempts: int = 100
    address_interval: float = 5.0
    address_timeout: float | None = None
    request_timeout: int = 30
    missing_reference: MissingReferencePolicy = "fail"
    bootstrap_dir: str | None = None

    @property
    def type(self) -> str:
        return "triton"

    def with_environment(self) -> Triton:
        """Fill unset credentials from the TRITON_* environment variables."""
        return replace(
            self,
            url=self.url or os.environ.get("TRITON_URL") or DEFAULT_URL,
            account=self.account or os.environ.get("TRITON_ACCOUNT"),
            key_id=self.key_id or os.environ.get("TRITON_KEY_ID"),
            key_material=self.key_material or os.environ.get("TRITON_KEY_MATERIAL"),
            user=self.user or os.environ.get("TRITON_USER"),
        )


DEFAULT_URL = "https://us-east-1.api.joyent.com"


# =============================================================================
# Exports
# =============================================================================

__all__ = ["DEFAULT_URL", "MissingReferencePolicy", "Triton"]
