from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Final, Literal

type MemberRole = Literal["control-plane", "worker"]

INJECTED_MASTER: Final = "INJECTEDMASTER"
INJECTED_PORT: Final = "INJECTEDPORT"


# ─── Members ─────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ControlPlaneMember:
    """The cluster's master node. Its address is discovered after creation."""

    role: Literal["control-plane"] = "control-plane"


@dataclass(frozen=True, slots=True)
class WorkerMember:
    """A node joining an existing control-plane member.

    Args:
        control_plane_id: Remote identifier of the control-plane member whose
            address must be discovered before this node can be bootstrapped.
    """

    control_plane_id: str
    role: Literal["worker"] = "worker"


type Member = ControlPlaneMember | WorkerMember


# ─── Pool & resource ─────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class NodePool:
    """Orchestrator-owned configuration for one provisioned node."""

    name: str
    member: Member
    bootstrap_scripts: tuple[str, ...] = ()
    tags: Mapping[str, str] = field(default_factory=dict)
    identifier: str = ""

    @property
    def role(self) -> MemberRole:
        return self.member.role

    def with_identifier(self, identifier: str) -> NodePool:
        return replace(self, identifier=identifier)


@dataclass(frozen=True, slots=True)
class ProvisionedResource:
    """The reconciled entity.

    An empty identifier means the instance has not been created remotely.
    ``pool`` is only known once the resource is desired or observed live.
    """

    name: str
    identifier: str = ""
    tags: Mapping[str, str] = field(default_factory=dict)
    pool: NodePool | None = None

    @property
    def exists(self) -> bool:
        return self.identifier != ""

    @property
    def member(self) -> Member | None:
        return self.pool.member if self.pool else None

    @property
    def role(self) -> MemberRole | None:
        return self.pool.role if self.pool else None

    @property
    def bootstrap_scripts(self) -> tuple[str, ...]:
        return self.pool.bootstrap_scripts if self.pool else ()


# ─── Cluster state ───────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class StatePatch:
    """An explicit delta against a ClusterState.

    Patches compose left to right with ``|``; later values win.
    """

    endpoint: str | None = None
    values: Mapping[str, str] = field(default_factory=dict)
    identifiers: Mapping[str, str] = field(default_factory=dict)
    removed: tuple[str, ...] = ()

    @property
    def empty(self) -> bool:
        return (
            self.endpoint is None
            and not self.values
            and not self.identifiers
            and not self.removed
        )

    def __or__(self, other: StatePatch) -> StatePatch:
        identifiers = {
            k: v for k, v in self.identifiers.items() if k not in other.removed
        }
        identifiers.update(other.identifiers)
        removed = tuple(
            name for name in (*self.removed, *other.removed)
            if name not in other.identifiers
        )
        return StatePatch(
            endpoint=other.endpoint if other.endpoint is not None else self.endpoint,
            values={**self.values, **other.values},
            identifiers=identifiers,
            removed=tuple(dict.fromkeys(removed)),
        )


@dataclass(frozen=True, slots=True)
class ClusterState:
    """Caller-owned snapshot of the shared cluster configuration.

    Args:
        name: Cluster name.
        endpoint: Network endpoint of the control plane.
        port: Control-plane listening port.
        values: Injection map consumed by bootstrap scripts.
        identifiers: Remote identifier of every created pool, by pool name.
    """

    name: str = ""
    endpoint: str = ""
    port: str = "443"
    values: Mapping[str, str] = field(default_factory=dict)
    identifiers: Mapping[str, str] = field(default_factory=dict)

    def merge(self, patch: StatePatch) -> ClusterState:
        if patch.empty:
            return self
        identifiers = {
            k: v for k, v in self.identifiers.items() if k not in patch.removed
        }
        identifiers.update(patch.identifiers)
        return replace(
            self,
            endpoint=patch.endpoint if patch.endpoint is not None else self.endpoint,
            values={**self.values, **patch.values},
            identifiers=identifiers,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "endpoint": self.endpoint,
            "port": self.port,
            "values": dict(self.values),
            "identifiers": dict(self.identifiers),
        }


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of a reconciler operation.

    ``state`` is the input snapshot with ``patch`` already merged.
    """

    state: ClusterState
    resource: ProvisionedResource
    patch: StatePatch = field(default_factory=StatePatch)
