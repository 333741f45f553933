"""nodeward - reconcile Triton compute nodes toward a desired cluster layout.

Example:

    from nodeward import (
        ClusterState, ControlPlaneMember, NodePool, NodeResource,
        Triton, create_client, reconcile,
    )

    config = Triton(account="acme", key_id="f7:75:...")
    async with create_client(config) as client:
        master = NodeResource(
            NodePool(name="master", member=ControlPlaneMember(),
                     bootstrap_scripts=("triton_k8s_master.sh",)),
            client,
            config,
        )
        outcome = await reconcile(master, ClusterState(port="6443"))
        persist(outcome.state)
"""

from nodeward.api.model import (
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
from nodeward.compare import is_equal
from nodeward.core.exceptions import (
    ConfigurationError,
    ExhaustedRetryError,
    NodewardError,
    NotFoundError,
    PreconditionError,
    ReconcileError,
    RenderError,
    TransportError,
)
from nodeward.observability import LogConfig, setup_logging, teardown_logging
from nodeward.providers.triton import (
    NodeResource,
    Triton,
    TritonClient,
    TritonError,
    create_client,
    discover_addresses,
)
from nodeward.reconcile import destroy, reconcile

__all__ = [
    "INJECTED_MASTER",
    "INJECTED_PORT",
    "ClusterState",
    "ConfigurationError",
    "ControlPlaneMember",
    "ExhaustedRetryError",
    "LogConfig",
    "Member",
    "MemberRole",
    "NodePool",
    "NodeResource",
    "NodewardError",
    "NotFoundError",
    "Outcome",
    "PreconditionError",
    "ProvisionedResource",
    "ReconcileError",
    "RenderError",
    "StatePatch",
    "TransportError",
    "Triton",
    "TritonClient",
    "TritonError",
    "WorkerMember",
    "create_client",
    "destroy",
    "discover_addresses",
    "is_equal",
    "reconcile",
    "setup_logging",
    "teardown_logging",
]
