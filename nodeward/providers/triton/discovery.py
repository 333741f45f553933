"""Address discovery for freshly created instances.

Instances boot asynchronously, so their addresses show up some time after
the create call returns. ``discover_addresses`` polls "get instance" until
addresses appear, keeping three outcomes apart:

- ``Found``: a fetch reported at least one address.
- ``Exhausted``: the attempt ceiling (or timeout) was reached with no address.
- ``TransportFailed``: a fetch failed. Transport errors are never retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from nodeward.core.exceptions import TransportError
from nodeward.observability.logger import logger

from .types import InstanceResponse, get_addresses

_log = logger.bind(provider="triton", component="discovery")


class InstanceReader(Protocol):
    async def get_instance(self, instance_id: str) -> InstanceResponse: ...


@dataclass(frozen=True, slots=True)
class Found:
    addresses: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Exhausted:
    identifier: str
    attempts: int


@dataclass(frozen=True, slots=True)
class TransportFailed:
    error: TransportError


type DiscoveryResult = Found | Exhausted | TransportFailed


async def discover_addresses(
    client: InstanceReader,
    identifier: str,
    *,
    attempts: int,
    interval: float,
    timeout: float | None = None,
) -> DiscoveryResult:
    """Poll an instance until it reports a network address.

    Args:
        client: Anything able to fetch an instance by id.
        identifier: Remote identifier of the instance.
        attempts: Maximum number of fetches.
        interval: Seconds slept between fetches. No sleep follows the last one.
        timeout: Optional wall-clock bound, checked between attempts.

    Returns:
        The discovery outcome. Never raises for transport failures.
    """
    stop = stop_after_attempt(attempts)
    if timeout is not None:
        stop = stop | stop_after_delay(timeout)

    async def fetch() -> tuple[str, ...]:
        instance = await client.get_instance(identifier)
        return get_addresses(instance)

    def before_sleep(state: RetryCallState) -> None:
        _log.debug(
            "No address yet for {identifier} (attempt {attempt}/{total})",
            identifier=identifier, attempt=state.attempt_number, total=attempts,
        )

    def exhausted(state: RetryCallState) -> Exhausted:
        return Exhausted(identifier=identifier, attempts=state.attempt_number)

    retrying = AsyncRetrying(
        stop=stop,
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda addresses: not addresses),
        before_sleep=before_sleep,
        retry_error_callback=exhausted,
    )

    try:
        result = await retrying(fetch)
    except TransportError as e:
        _log.debug("Fetching {identifier} failed: {error}", identifier=identifier, error=e)
        return TransportFailed(error=e)

    match result:
        case Exhausted() as outcome:
            _log.warning(
                "Address discovery exhausted for {identifier} after {n} attempts",
                identifier=identifier, n=outcome.attempts,
            )
            return outcome
        case addresses:
            _log.debug("Discovered {addresses} for {identifier}", addresses=addresses, identifier=identifier)
            return Found(addresses=addresses)
