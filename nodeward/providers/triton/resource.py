"""Reconciler for a Triton compute node.

One NodeResource reconciles one NodePool through the Actual / Expected /
Compare / Apply / Delete cycle. Every operation takes an immutable
ClusterState and returns an Outcome carrying the StatePatch it produced;
nothing is mutated in place.

Within apply, remote reads (image, networks) always precede the create call,
and the create call always precedes post-create address discovery.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Protocol

from nodeward.api.model import (
    INJECTED_MASTER,
    INJECTED_PORT,
    ClusterState,
    ControlPlaneMember,
    NodePool,
    Outcome,
    ProvisionedResource,
    StatePatch,
    WorkerMember,
)
from nodeward.bootstrap.script import build_bootstrap_script
from nodeward.compare import is_equal
from nodeward.core.exceptions import ExhaustedRetryError, NotFoundError, PreconditionError
from nodeward.observability.logger import logger

from .config import Triton
from .discovery import Exhausted, Found, TransportFailed, discover_addresses
from .types import CreateInstanceParams, ImageResponse, InstanceResponse, NetworkResponse


class RemoteCompute(Protocol):
    async def get_instance(self, instance_id: str) -> InstanceResponse: ...
    async def create_instance(self, params: CreateInstanceParams) -> InstanceResponse: ...
    async def delete_instance(self, instance_id: str) -> None: ...
    async def list_images(
        self, *, name: str | None = None, version: str | None = None
    ) -> list[ImageResponse]: ...
    async def list_networks(self) -> list[NetworkResponse]: ...


type ScriptRenderer = Callable[..., Awaitable[str]]


def render(resource: ProvisionedResource) -> StatePatch:
    """Fold a resource's identifying fields into a state patch.

    A created resource records its identifier under its name; a cleared one
    removes the entry.
    """
    if resource.exists:
        return StatePatch(identifiers={resource.name: resource.identifier})
    return StatePatch(removed=(resource.name,))


class NodeResource:
    """Reconciles one node pool against Triton.

    Args:
        pool: Desired node configuration.
        client: Remote facade, shared by all reconcilers.
        config: Provider configuration (package, image, networks, polling).
        renderer: Bootstrap script renderer.
    """

    def __init__(
        self,
        pool: NodePool,
        client: RemoteCompute,
        config: Triton,
        *,
        renderer: ScriptRenderer = build_bootstrap_script,
    ) -> None:
        self._pool = pool
        self._client = client
        self._config = config
        self._renderer = renderer
        self._log = logger.bind(provider="triton", name=pool.name)

    @property
    def pool(self) -> NodePool:
        return self._pool

    @property
    def name(self) -> str:
        return self._pool.name

    def _tags(self) -> dict[str, str]:
        return {"Name": self._pool.name, **self._pool.tags}

    @property
    def _search_paths(self) -> Sequence[Path]:
        return (Path(self._config.bootstrap_dir),) if self._config.bootstrap_dir else ()

    # -------------------------------------------------------------------------
    # Actual / Expected
    # -------------------------------------------------------------------------

    async def actual(self, state: ClusterState) -> Outcome:
        """Read the live instance, if the pool has been created."""
        self._log.debug("resource.actual")
        if not self._pool.identifier:
            return Outcome(state, ProvisionedResource(name=self._pool.name, tags=self._tags()))

        instance = await self._client.get_instance(self._pool.identifier)
        resource = ProvisionedResource(
            name=instance["name"],
            identifier=instance["id"],
            tags=self._tags(),
            pool=self._pool,
        )
        return Outcome(state, resource)

    async def expected(self, state: ClusterState) -> Outcome:
        """The resource as configured. Makes no remote calls."""
        self._log.debug("resource.expected")
        resource = ProvisionedResource(
            name=self._pool.name,
            identifier=self._pool.identifier,
            tags=self._tags(),
            pool=self._pool,
        )
        return Outcome(state, resource)

    # -------------------------------------------------------------------------
    # Apply
    # -------------------------------------------------------------------------

    async def apply(
        self,
        actual: ProvisionedResource,
        expected: ProvisionedResource,
        state: ClusterState,
    ) -> Outcome:
        """Create the instance and discover the addresses it depends on.

        Raises:
            ExhaustedRetryError: An address never showed up.
            NotFoundError: The image or a network is missing (policy "fail").
            RenderError: The bootstrap script could not be rendered.
            TransportError: Any remote call failed.
        """
        self._log.debug("resource.apply")
        if is_equal(actual, expected):
            self._log.debug("resource.apply already equal")
            return Outcome(state, expected)

        patch = StatePatch()

        match self._pool.member:
            case WorkerMember(control_plane_id=control_plane_id):
                if not control_plane_id:
                    raise PreconditionError(
                        f"Worker '{self.name}' has no control-plane identifier"
                    )
                address = await self._discover(control_plane_id)
                patch |= StatePatch(
                    endpoint=address,
                    values={INJECTED_MASTER: f"{address}:{state.port}"},
                )
            case ControlPlaneMember():
                pass

        patch |= StatePatch(values={INJECTED_PORT: state.port})

        script = await self._renderer(
            self._pool.bootstrap_scripts,
            state.merge(patch),
            search_paths=self._search_paths,
        )

        image_id = await self._resolve_image()
        network_ids = await self._resolve_networks()

        created = await self._client.create_instance(
            CreateInstanceParams(
                name=self._pool.name,
                package=self._config.package,
                image=image_id,
                networks=network_ids,
                metadata={"user-script": script},
                tags={"name": self._pool.name, **self._pool.tags},
                cns_services=[self._pool.name],
            )
        )
        identifier = created["id"]
        self._log.info("Created instance {identifier}", identifier=identifier)

        match self._pool.member:
            case ControlPlaneMember():
                address = await self._discover(identifier)
                self._log.debug("Control-plane address {address}", address=address)
                patch |= StatePatch(endpoint=address)
            case WorkerMember():
                pass

        resource = ProvisionedResource(
            name=self._pool.name,
            identifier=identifier,
            tags=self._tags(),
            pool=self._pool.with_identifier(identifier),
        )
        return Outcome(state.merge(patch), resource, patch)

    async def _discover(self, identifier: str) -> str:
        result = await discover_addresses(
            self._client,
            identifier,
            attempts=self._config.address_attempts,
            interval=self._config.address_interval,
            timeout=self._config.address_timeout,
        )
        match result:
            case Found(addresses=addresses):
                return addresses[0]
            case Exhausted(attempts=attempts):
                raise ExhaustedRetryError(identifier, attempts)
            case TransportFailed(error=error):
                raise error

    def _missing(self, kind: str, name: str) -> str:
        if self._config.missing_reference == "ignore":
            self._log.warning(
                "No {kind} named '{ref}', creating with an empty reference",
                kind=kind, ref=name,
            )
            return ""
        raise NotFoundError(kind, name)

    async def _resolve_image(self) -> str:
        images = await self._client.list_images(
            name=self._config.image_name,
            version=self._config.image_version,
        )
        if images:
            return images[0]["id"]
        return self._missing("image", f"{self._config.image_name}@{self._config.image_version}")

    async def _resolve_networks(self) -> list[str]:
        wanted = (self._config.public_network, self._config.fabric_network)
        found: dict[str, str] = {}
        for network in await self._client.list_networks():
            if network["name"] in wanted:
                found[network["name"]] = network["id"]
        return [found.get(name) or self._missing("network", name) for name in wanted]

    # -------------------------------------------------------------------------
    # Delete / teardown
    # -------------------------------------------------------------------------

    async def delete(self, actual: ProvisionedResource, state: ClusterState) -> Outcome:
        """Clear the resource's bookkeeping.

        No remote call is made here; the instance itself is removed by
        ``teardown``.

        Raises:
            PreconditionError: The resource has no identifier.
        """
        self._log.debug("resource.delete")
        if not actual.exists:
            raise PreconditionError(
                f"Unable to delete instance resource without identifier [{actual.name}]"
            )

        resource = ProvisionedResource(name=self._pool.name, tags=self._tags())
        patch = render(resource)
        return Outcome(state.merge(patch), resource, patch)

    async def teardown(self, actual: ProvisionedResource) -> None:
        """Delete the remote instance.

        Raises:
            PreconditionError: The resource has no identifier.
            TransportError: The delete call failed.
        """
        if not actual.exists:
            raise PreconditionError(
                f"Unable to tear down instance resource without identifier [{actual.name}]"
            )
        self._log.info("Deleting instance {identifier}", identifier=actual.identifier)
        await self._client.delete_instance(actual.identifier)
