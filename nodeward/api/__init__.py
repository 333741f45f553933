from .model import (
    INJECTED_MASTER,
    INJECTED_PORT,
    ClusterState,
    ControlPlaneMember,
    Member,
    MemberRole,
    NodePool,
    Outcome,
    ProvisionedResource,
    StatePatch,
    WorkerMember,
)

__all__ = [
    "INJECTED_MASTER",
    "INJECTED_PORT",
    "ClusterState",
    "ControlPlaneMember",
    "Member",
    "MemberRole",
    "NodePool",
    "Outcome",
    "ProvisionedResource",
    "StatePatch",
    "WorkerMember",
]
