"""Async HTTP transport shared by the CloudAPI facade and the script loader.

One aiohttp session per client, opened lazily. Credentials come from an
``Auth`` implementation; a 401 gives it one chance to refresh before the
request is replayed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

import aiohttp

from nodeward.observability.logger import logger

type ResponseFormat = Literal["json", "text"]
type JsonBody = dict[str, Any] | list[Any]
type Query = dict[str, Any]

_ERROR_BODY_LOG_LIMIT = 500


@dataclass(frozen=True, slots=True)
class HttpError(Exception):
    """Failed exchange: error status, undecodable body or no response (``status`` 0)."""

    status: int
    body: str

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.body}"


@runtime_checkable
class Auth(Protocol):
    async def headers(self) -> dict[str, str]: ...
    async def on_401(self) -> None: ...


class HttpClient:
    def __init__(
        self,
        base_url: str,
        auth: Auth | None = None,
        *,
        timeout: float = 30,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._default_headers = dict(default_headers or {})
        self._session: aiohttp.ClientSession | None = None
        self._log = logger.bind(component="http")

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _session_for_request(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _headers(self) -> dict[str, str]:
        if self._auth is None:
            return dict(self._default_headers)
        return {**self._default_headers, **await self._auth.headers()}

    async def _attempt(
        self,
        method: str,
        url: str,
        *,
        json: JsonBody | None,
        params: Query | None,
        format: ResponseFormat,
    ) -> Any:
        session = await self._session_for_request()
        refreshed = False
        while True:
            async with session.request(
                method, url, headers=await self._headers(), json=json, params=params
            ) as resp:
                if resp.status != 401 or refreshed or self._auth is None:
                    return await self._read(resp, format)
            # The rejected response is released before credentials refresh.
            self._log.debug("401 from {url}, refreshing credentials", url=url)
            await self._auth.on_401()
            refreshed = True

    async def _read(self, resp: aiohttp.ClientResponse, format: ResponseFormat) -> Any:
        if resp.status >= 400:
            body = await resp.text()
            self._log.warning(
                "HTTP {status} from {url}: {body}",
                status=resp.status, url=str(resp.url), body=body[:_ERROR_BODY_LOG_LIMIT],
            )
            raise HttpError(status=resp.status, body=body)
        match format:
            case "text":
                return await resp.text()
            case "json":
                if not await resp.read():
                    return None
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    body = await resp.text(errors="replace")
                    self._log.warning(
                        "Non-JSON body from {url}: {body}",
                        url=str(resp.url), body=body[:_ERROR_BODY_LOG_LIMIT],
                    )
                    raise HttpError(status=resp.status, body=f"invalid JSON: {body}") from e

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: JsonBody | None = None,
        params: Query | None = None,
        format: ResponseFormat = "json",
    ) -> Any:
        """Send one request relative to ``base_url``.

        Returns the decoded JSON (None for an empty body) or the raw text.

        Raises:
            HttpError: On any status >= 400, a non-JSON body where JSON was
                expected, connection failure or timeout.
        """
        url = f"{self._base_url}{path}"
        self._log.debug("{method} {url}", method=method, url=url)
        try:
            return await self._attempt(
                method, url, json=json, params=params, format=format
            )
        except aiohttp.ClientResponseError as e:
            raise HttpError(status=e.status, body=e.message) from e
        except aiohttp.ClientError as e:
            raise HttpError(status=0, body=str(e)) from e
        except TimeoutError as e:
            raise HttpError(status=0, body=f"timeout calling {method} {url}") from e

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            self._log.debug("Closing HTTP session for {url}", url=self._base_url)
            await self._session.close()

    async def __aenter__(self) -> HttpClient:
        await self._session_for_request()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()
