"""CloudAPI response and request types.

Responses are returned as TypedDicts straight from the JSON payloads.
"""

from __future__ import annotations

from typing import NotRequired, TypedDict


class InstanceResponse(TypedDict):
    id: str
    name: str
    state: NotRequired[str]
    image: NotRequired[str]
    package: NotRequired[str]
    ips: NotRequired[list[str]]
    primaryIp: NotRequired[str]
    networks: NotRequired[list[str]]
    tags: NotRequired[dict[str, str]]
    metadata: NotRequired[dict[str, str]]


class ImageResponse(TypedDict):
    id: str
    name: str
    version: str
    os: NotRequired[str]
    state: NotRequired[str]


class NetworkResponse(TypedDict):
    id: str
    name: str
    public: NotRequired[bool]
    fabric: NotRequired[bool]


class CreateInstanceParams(TypedDict):
    name: str
    package: str
    image: str
    networks: list[str]
    metadata: NotRequired[dict[str, str]]
    tags: NotRequired[dict[str, str]]
    cns_services: NotRequired[list[str]]


def get_addresses(instance: InstanceResponse) -> tuple[str, ...]:
    """Addresses reported by an instance, in the order CloudAPI lists them."""
    return tuple(instance.get("ips") or ())
