"""AcFun live API client."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from acfun_live_tracker.config import DEFAULT_USER_AGENT
from acfun_live_tracker.domain.errors import (
    ParseError,
    TransportError,
    UpstreamLogicError,
)

LIVE_LIST_URL = "https://live.acfun.cn/api/channel/list"
LIVE_CUT_INFO_URL = "https://live.acfun.cn/rest/pc-direct/live/getLiveCutInfo"
HOME_URL = "https://live.acfun.cn/"
VISITOR_LOGIN_URL = "https://id.app.acfun.cn/rest/app/visitor/login"
SUMMARY_URL = "https://api.kuaishouzt.com/rest/zt/live/web/endSummary"
PLAYBACK_URL = "https://api.kuaishouzt.com/rest/zt/live/playBack/startPlay"

_VISITOR_SID = "acfun.api.visitor"
_VISITOR_TOKEN_KEY = "acfun.api.visitor_st"


class AcfunClient(Protocol):
    """Interface for the upstream live endpoints."""

    async def get_live_list(self, count: int) -> dict[str, object]:
        """Return the raw live list response for one page size."""

    async def get_live_cut_info(self, owner_id: int, live_id: str) -> dict[str, object]:
        """Return the raw cut-info response for a live."""

    async def get_summary(self, live_id: str) -> dict[str, object]:
        """Return the raw end-of-live summary response."""

    async def get_playback(self, live_id: str) -> dict[str, object]:
        """Return the raw playback response."""


@dataclass
class _VisitorSession:
    device_id: str
    user_id: int
    token: str


@dataclass
class HttpxAcfunClient(AcfunClient):
    """HTTPX-backed AcFun client.

    The acfun.cn endpoints only need the device id cookie. Summary and
    playback endpoints also need a visitor token. Both are obtained once per
    client and reused.
    """

    http_client: httpx.AsyncClient
    timeout: float = 10
    _device_id: str | None = field(default=None, init=False, repr=False)
    _device_lock: asyncio.Lock = field(
        default_factory=asyncio.Lock, init=False, repr=False
    )
    _visitor: _VisitorSession | None = field(default=None, init=False, repr=False)
    _visitor_lock: asyncio.Lock = field(
        default_factory=asyncio.Lock, init=False, repr=False
    )

    @classmethod
    def create(
        cls, user_agent: str = DEFAULT_USER_AGENT, timeout: float = 10
    ) -> "HttpxAcfunClient":
        """Create a client with a managed httpx session."""
        http_client = httpx.AsyncClient(
            headers={"User-Agent": user_agent, "Accept-Encoding": "gzip"},
            follow_redirects=True,
        )
        return cls(http_client=http_client, timeout=timeout)

    async def get_live_list(self, count: int) -> dict[str, object]:
        """Request the live list with the given page size."""
        device_id = await self._ensure_device_id()
        return await self._request(
            "GET",
            LIVE_LIST_URL,
            params={"count": count, "pcursor": 0},
            headers=_device_cookie(device_id),
        )

    async def get_live_cut_info(self, owner_id: int, live_id: str) -> dict[str, object]:
        """Request cut info for a live."""
        device_id = await self._ensure_device_id()
        return await self._request(
            "GET",
            LIVE_CUT_INFO_URL,
            params={"authorId": owner_id, "liveId": live_id},
            headers=_device_cookie(device_id),
        )

    async def get_summary(self, live_id: str) -> dict[str, object]:
        """Request the end-of-live summary."""
        visitor = await self._ensure_visitor()
        return await self._request(
            "POST",
            SUMMARY_URL,
            params=_kuaishou_params(visitor),
            data={"liveId": live_id},
            headers=_device_cookie(visitor.device_id),
        )

    async def get_playback(self, live_id: str) -> dict[str, object]:
        """Request playback links for a finished live."""
        visitor = await self._ensure_visitor()
        return await self._request(
            "POST",
            PLAYBACK_URL,
            params=_kuaishou_params(visitor),
            data={"liveId": live_id},
            headers=_device_cookie(visitor.device_id),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _ensure_device_id(self) -> str:
        async with self._device_lock:
            if self._device_id is None:
                self._device_id = await self._fetch_device_id()
            return self._device_id

    async def _ensure_visitor(self) -> _VisitorSession:
        async with self._visitor_lock:
            if self._visitor is None:
                device_id = await self._ensure_device_id()
                self._visitor = await self._login_visitor(device_id)
            return self._visitor

    async def _fetch_device_id(self) -> str:
        try:
            home = await self.http_client.get(HOME_URL, timeout=self.timeout)
            home.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"Failed to obtain device id: {exc}") from exc
        device_id = home.cookies.get("_did") or self.http_client.cookies.get("_did")
        if not device_id:
            raise ParseError("AcFun home page did not set a _did cookie")
        return device_id

    async def _login_visitor(self, device_id: str) -> _VisitorSession:
        payload = await self._request(
            "POST",
            VISITOR_LOGIN_URL,
            data={"sid": _VISITOR_SID},
            headers=_device_cookie(device_id),
        )
        if payload.get("result") != 0:
            raise UpstreamLogicError(f"Visitor login failed: {payload}")
        token = payload.get(_VISITOR_TOKEN_KEY)
        user_id = payload.get("userId")
        if not isinstance(token, str) or not isinstance(user_id, int):
            raise ParseError(f"Unexpected visitor login response: {payload}")
        return _VisitorSession(device_id=device_id, user_id=user_id, token=token)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, object] | None = None,
        data: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, object]:
        try:
            response = await self.http_client.request(
                method,
                url,
                params=params,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise ParseError(f"{url} returned invalid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ParseError(
                f"{url} returned {type(payload).__name__}, expected object"
            )
        return payload


def _kuaishou_params(visitor: _VisitorSession) -> dict[str, object]:
    return {
        "subBiz": "mainApp",
        "kpn": "ACFUN_APP",
        "kpf": "PC_WEB",
        "userId": visitor.user_id,
        "did": visitor.device_id,
        _VISITOR_TOKEN_KEY: visitor.token,
    }


def _device_cookie(device_id: str) -> dict[str, str]:
    return {"Cookie": f"_did={device_id}"}
