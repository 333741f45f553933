"""Async client for Triton CloudAPI.

A thin capability holder over HttpClient. Returns TypedDicts directly and
raises TritonError for every failed call.
"""

from __future__ import annotations

from typing import Any

from nodeward.core.exceptions import ConfigurationError, TransportError
from nodeward.infra.http import HttpClient, HttpError
from nodeward.infra.retry import on_status_code, retry
from nodeward.observability.logger import logger

from .auth import SignatureAuth, resolve_signer
from .config import Triton
from .types import (
    CreateInstanceParams,
    ImageResponse,
    InstanceResponse,
    NetworkResponse,
)

API_VERSION = "~9"


class TritonError(TransportError):
    """Error from Triton CloudAPI."""

    def __init__(self, message: str, status: int = 0) -> None:
        self.status = status
        super().__init__(message)


def _flatten_create(params: CreateInstanceParams) -> dict[str, Any]:
    body: dict[str, Any] = {
        "name": params["name"],
        "package": params["package"],
        "image": params["image"],
        "networks": list(params["networks"]),
    }
    for key, value in params.get("metadata", {}).items():
        body[f"metadata.{key}"] = value
    for key, value in params.get("tags", {}).items():
        body[f"tag.{key}"] = value
    if services := params.get("cns_services"):
        body["tag.triton.cns.services"] = ",".join(services)
    return body


class TritonClient:
    """Async client for Triton CloudAPI.

    Constructed once per process and shared by every reconciler; holds no
    state beyond its HTTP session.

    Example:
        async with create_client(Triton(account="acme", key_id="...")) as client:
            instance = await client.get_instance("0c6a5f1e-...")
    """

    def __init__(self, http: HttpClient, account: str) -> None:
        self._http = http
        self._account = account
        self._log = logger.bind(provider="triton", component="client")

    async def __aenter__(self) -> TritonClient:
        return self

    async def __aexit__(self, *_args: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.close()

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            return await self._http.request(
                method, f"/{self._account}{path}", json=json, params=params
            )
        except HttpError as e:
            self._log.warning(
                "API error {method} {path}: {status}",
                method=method, path=path, status=e.status,
            )
            raise TritonError(f"API error {e.status}: {e.body}", status=e.status) from e

    # =========================================================================
    # Instances
    # =========================================================================

    @retry(on=on_status_code(429, 503), max_attempts=3, base_delay=1.0)
    async def get_instance(self, instance_id: str) -> InstanceResponse:
        """Get instance details by id."""
        result: InstanceResponse | None = await self._request(
            "GET", f"/machines/{instance_id}"
        )
        if not result:
            raise TritonError(f"Failed to get instance {instance_id}: empty response")
        return result

    @retry(on=on_status_code(429, 503), max_attempts=3, base_delay=1.0)
    async def list_instances(
        self,
        *,
        name: str | None = None,
        tags: dict[str, str] | None = None,
    ) -> list[InstanceResponse]:
        """List instances, optionally filtered by name and tags."""
        params: dict[str, Any] = {}
        if name:
            params["name"] = name
        for key, value in (tags or {}).items():
            params[f"tag.{key}"] = value
        result: list[InstanceResponse] | None = await self._request(
            "GET", "/machines", params=params or None
        )
        return result or []

    async def create_instance(self, params: CreateInstanceParams) -> InstanceResponse:
        """Create an instance. Never retried: a repeated create is a second instance."""
        self._log.debug("Creating instance {name}", name=params["name"])
        result: InstanceResponse | None = await self._request(
            "POST", "/machines", json=_flatten_create(params)
        )
        if not result:
            raise TritonError("Failed to create instance: empty response")
        return result

    async def delete_instance(self, instance_id: str) -> None:
        """Delete an instance."""
        self._log.debug("Deleting instance {instance_id}", instance_id=instance_id)
        await self._request("DELETE", f"/machines/{instance_id}")

    # =========================================================================
    # Images & networks
    # =========================================================================

    @retry(on=on_status_code(429, 503), max_attempts=3, base_delay=1.0)
    async def list_images(
        self,
        *,
        name: str | None = None,
        version: str | None = None,
    ) -> list[ImageResponse]:
        """List images, optionally filtered by name and version."""
        params: dict[str, Any] = {}
        if name:
            params["name"] = name
        if version:
            params["version"] = version
        result: list[ImageResponse] | None = await self._request(
            "GET", "/images", params=params or None
        )
        return result or []

    @retry(on=on_status_code(429, 503), max_attempts=3, base_delay=1.0)
    async def list_networks(self) -> list[NetworkResponse]:
        """List every network available to the account."""
        result: list[NetworkResponse] | None = await self._request("GET", "/networks")
        return result or []


# =============================================================================
# Construction
# =============================================================================


def create_client(config: Triton) -> TritonClient:
    """Build the facade, resolving signing credentials exactly once."""
    config = config.with_environment()
    if not config.account:
        raise ConfigurationError("Triton account not found. Set TRITON_ACCOUNT.")

    auth = SignatureAuth(resolve_signer(config), config.account, config.user)
    http = HttpClient(
        config.url or "",
        auth,
        timeout=config.request_timeout,
        default_headers={"Accept-Version": API_VERSION},
    )
    return TritonClient(http, config.account)


__all__ = [
    "API_VERSION",
    "TritonClient",
    "TritonError",
    "create_client",
]
