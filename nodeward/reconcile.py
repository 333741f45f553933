"""One reconcile cycle for a node resource.

The orchestrator owns scheduling and persistence: it calls ``reconcile``
(or ``destroy``) with the last persisted ClusterState and stores the state
of the returned Outcome.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from nodeward.api.model import ClusterState, Outcome, StatePatch
from nodeward.compare import is_equal
from nodeward.core.exceptions import NodewardError, ReconcileError
from nodeward.observability.logger import logger
from nodeward.providers.triton.resource import NodeResource, render

_log = logger.bind(component="reconcile")


async def _stage[T](resource: NodeResource, stage: str, call: Callable[[], Awaitable[T]]) -> T:
    try:
        return await call()
    except NodewardError as e:
        _log.error(
            "{stage} failed for {name}: {error}",
            stage=stage, name=resource.name, error=e,
        )
        raise ReconcileError(resource.name, stage, e) from e


async def reconcile(resource: NodeResource, state: ClusterState) -> Outcome:
    """Converge one resource: actual, expected, compare, apply, render.

    Raises:
        ReconcileError: A stage failed; ``cause`` holds the typed error.
    """
    actual = await _stage(resource, "actual", lambda: resource.actual(state))
    expected = await _stage(resource, "expected", lambda: resource.expected(actual.state))

    if is_equal(actual.resource, expected.resource):
        _log.debug("{name} already converged", name=resource.name)
        return Outcome(expected.state, expected.resource)

    applied = await _stage(
        resource,
        "apply",
        lambda: resource.apply(actual.resource, expected.resource, expected.state),
    )
    rendered = render(applied.resource)
    return Outcome(
        applied.state.merge(rendered),
        applied.resource,
        applied.patch | rendered,
    )


async def destroy(resource: NodeResource, state: ClusterState) -> Outcome:
    """Tear down the remote instance, then clear its bookkeeping.

    A pool that was never created is a no-op.
    """
    actual = await _stage(resource, "actual", lambda: resource.actual(state))
    if not actual.resource.exists:
        _log.debug("{name} has no instance to destroy", name=resource.name)
        return Outcome(actual.state, actual.resource, StatePatch())

    await _stage(resource, "teardown", lambda: resource.teardown(actual.resource))
    return await _stage(resource, "delete", lambda: resource.delete(actual.resource, actual.state))
