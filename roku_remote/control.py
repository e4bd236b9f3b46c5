"""HTTP control client for the Roku External Control Protocol (ECP)."""

import asyncio
import logging
import urllib.parse
from typing import Optional

import aiohttp
from yarl import URL

from .config import ECP_PORT, REQUEST_TIMEOUT, REACHABILITY_TIMEOUT, DEVICE_INFO_TIMEOUT
from .utils import encode_literal

logger = logging.getLogger(__name__)


class ControlError(Exception):
    """A query to the device failed or returned a non-2xx status."""


class ControlClient:
    """
    Sends commands to one device at ``http://<address>:8060``.

    Keypress, keydown and launch are fire-and-forget: a failed send is logged
    and reported as ``False``, never raised. Queries (apps, device-info) raise
    ControlError so callers can act on the failure.

    Pass a shared ``aiohttp.ClientSession`` to reuse connections; without one
    each request opens and closes its own session.
    """

    def __init__(self, address: str, port: int = ECP_PORT,
                 timeout: float = REQUEST_TIMEOUT,
                 reachability_timeout: float = REACHABILITY_TIMEOUT,
                 session: Optional[aiohttp.ClientSession] = None):
        self.address = address
        self.port = port
        self.timeout = timeout
        self.reachability_timeout = reachability_timeout
        self.session = session

    @property
    def base_url(self) -> str:
        return f"http://{self.address}:{self.port}"

    async def _request(self, method: str, path: str, timeout: float) -> str:
        url = URL(self.base_url + path, encoded=True)
        client_timeout = aiohttp.ClientTimeout(total=timeout)

        owns_session = self.session is None
        session = aiohttp.ClientSession() if owns_session else self.session
        try:
            data = b"" if method == "POST" else None
            async with session.request(method, url, data=data, timeout=client_timeout) as resp:
                body = await resp.text(errors="replace")
                if resp.status < 200 or resp.status >= 300:
                    raise ControlError(f"{method} {path} failed: {resp.status} {body[:200]}")
                return body
        finally:
            if owns_session:
                await session.close()

    async def _post(self, path: str) -> bool:
        try:
            await self._request("POST", path, self.timeout)
            return True
        except (aiohttp.ClientError, asyncio.TimeoutError, ControlError) as e:
            logger.debug("POST %s%s failed: %s", self.base_url, path, e)
            return False

    async def keypress(self, key: str) -> bool:
        return await self._post(f"/keypress/{key}")

    async def keydown(self, key: str) -> bool:
        return await self._post(f"/keydown/{key}")

    async def launch(self, app_id: str) -> bool:
        return await self._post(f"/launch/{urllib.parse.quote(str(app_id), safe='')}")

    async def send_literal(self, char: str) -> bool:
        return await self.keypress(f"Lit_{encode_literal(char)}")

    async def send_text(self, text: str) -> int:
        """Type text one character at a time, in order. Returns how many sends succeeded."""
        sent = 0
        for char in text:
            if await self.send_literal(char):
                sent += 1
        return sent

    async def _get(self, path: str, timeout: float) -> str:
        try:
            return await self._request("GET", path, timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ControlError(f"GET {self.base_url}{path} failed: {e}") from e

    async def query_apps(self, timeout: Optional[float] = None) -> str:
        return await self._get("/query/apps", timeout or self.timeout)

    async def query_device_info(self, timeout: float = DEVICE_INFO_TIMEOUT) -> str:
        return await self._get("/query/device-info", timeout)

    async def is_reachable(self, timeout: Optional[float] = None) -> bool:
        """Liveness check: the app list answers within the timeout."""
        try:
            await self.query_apps(timeout=timeout or self.reachability_timeout)
            return True
        except ControlError as e:
            logger.info("Device %s unreachable: %s", self.address, e)
            return False
