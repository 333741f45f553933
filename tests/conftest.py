from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from nodeward.api.model import ClusterState
from nodeward.core.exceptions import RenderError
from nodeward.providers.triton.client import TritonError
from nodeward.providers.triton.config import Triton
from nodeward.providers.triton.types import (
    CreateInstanceParams,
    ImageResponse,
    InstanceResponse,
    NetworkResponse,
)

DEFAULT_NETWORKS: list[NetworkResponse] = [
    {"id": "net-public", "name": "Joyent-SDC-Public"},
    {"id": "net-fabric", "name": "My-Fabric-Network"},
    {"id": "net-other", "name": "Other"},
]

DEFAULT_IMAGES: list[ImageResponse] = [
    {"id": "img-1", "name": "ubuntu-certified-16.04", "version": "20180222"},
]


@dataclass
class FakeTritonClient:
    """In-memory stand-in for TritonClient that records every call.

    ``address_plan`` maps an instance id to the successive address lists
    returned by get_instance; the last entry repeats once the plan runs out.
    An exception in the plan is raised instead of returned.
    """

    created_id: str = "i-123"
    images: list[ImageResponse] = field(default_factory=lambda: list(DEFAULT_IMAGES))
    networks: list[NetworkResponse] = field(default_factory=lambda: list(DEFAULT_NETWORKS))
    address_plan: dict[str, list[list[str] | Exception]] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    created: list[CreateInstanceParams] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    fetches: dict[str, int] = field(default_factory=dict)

    async def get_instance(self, instance_id: str) -> InstanceResponse:
        self.calls.append(f"get:{instance_id}")
        n = self.fetches.get(instance_id, 0)
        self.fetches[instance_id] = n + 1
        plan = self.address_plan.get(instance_id)
        if plan is None:
            raise TritonError(f"API error 404: {instance_id} not found", status=404)
        step = plan[min(n, len(plan) - 1)]
        if isinstance(step, Exception):
            raise step
        return {"id": instance_id, "name": f"name-of-{instance_id}", "ips": list(step)}

    async def create_instance(self, params: CreateInstanceParams) -> InstanceResponse:
        self.calls.append("create")
        self.created.append(params)
        return {"id": self.created_id, "name": params["name"]}

    async def delete_instance(self, instance_id: str) -> None:
        self.calls.append(f"delete:{instance_id}")
        self.deleted.append(instance_id)

    async def list_images(
        self, *, name: str | None = None, version: str | None = None
    ) -> list[ImageResponse]:
        self.calls.append("list_images")
        return [i for i in self.images if i["name"] == name and i["version"] == version]

    async def list_networks(self) -> list[NetworkResponse]:
        self.calls.append("list_networks")
        return list(self.networks)


@dataclass
class RecordingRenderer:
    """Bootstrap renderer that records the state it was given."""

    fail: bool = False
    states: list[ClusterState] = field(default_factory=list)

    async def __call__(
        self,
        scripts: Sequence[str],
        state: ClusterState,
        *,
        search_paths: Sequence[Path] = (),
    ) -> str:
        if self.fail:
            raise RenderError("Bootstrap script 'missing.sh' not found")
        self.states.append(state)
        return "#!/usr/bin/env bash\n" + "\n".join(scripts)


@pytest.fixture
def client() -> FakeTritonClient:
    return FakeTritonClient()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def config() -> Triton:
    return Triton(
        account="acme",
        key_id="00:11",
        address_attempts=3,
        address_interval=0,
    )
