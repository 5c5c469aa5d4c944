"""
Exchange Engine - HTTP Driver Base.

============================================================
PURPOSE
============================================================
Shared aiohttp plumbing for REST venues.

- One ClientSession per driver, opened in init() (or lazily)
  and closed in terminate()
- Fixed request timeout on every call
- Network failures are mapped onto the venue error taxonomy:
  connection resets become TransientVenueError(429), anything
  else is terminal
- `_send` is the single network seam; it returns the raw
  (status, text) pair so parsing stays in the concrete driver

============================================================
"""

import asyncio
import errno
import logging
from typing import Any, Dict, Optional, Tuple

import aiohttp

from ..clock import ClockProtocol, get_clock
from ..config import DriverConfig
from ..errors import CONNECTION_RESET_STATUS, TerminalVenueError, TransientVenueError
from ..logging_utils import mask_headers, mask_params
from .base import ApiDriver


logger = logging.getLogger(__name__)


def _is_connection_reset(error: BaseException) -> bool:
    if isinstance(error, (ConnectionResetError, aiohttp.ServerDisconnectedError)):
        return True
    if isinstance(error, aiohttp.ClientOSError):
        return error.errno == errno.ECONNRESET
    return False


class HttpApiDriver(ApiDriver):
    """
    ApiDriver talking to a REST API through aiohttp.

    Subclasses set `default_base_url` and build requests on top of
    `_send`.
    """

    default_base_url: str = ""
    testnet_base_url: str = ""

    def __init__(self, config: DriverConfig, clock: Optional[ClockProtocol] = None):
        self._config = config
        self._clock = clock or get_clock()
        base_url = config.base_url
        if not base_url:
            base_url = self.testnet_base_url if config.testnet and self.testnet_base_url else self.default_base_url
        self._base_url = base_url.rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def config(self) -> DriverConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._base_url

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def init(self) -> None:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(
                connect=self._config.timeout.connection_timeout_seconds,
                total=self._config.timeout.request_timeout_seconds,
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
            logger.info(f"{self.name} driver session opened ({self._base_url})")

    async def terminate(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.info(f"{self.name} driver session closed")

    # --------------------------------------------------------
    # TRANSPORT
    # --------------------------------------------------------

    async def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
    ) -> Tuple[int, str]:
        """
        Perform one HTTP request.

        Args:
            method: GET, POST, DELETE...
            url: Absolute URL
            headers: Request headers
            params: Query string parameters
            data: Form dict or raw body

        Returns:
            (status, body text)

        Raises:
            TransientVenueError: Connection reset (reported as 429)
            TerminalVenueError: Timeout or any other network failure
        """
        if self._session is None:
            await self.init()

        logger.debug(
            f"{method} {url} headers={mask_headers(headers)} "
            f"params={mask_params(params)} "
            f"data={mask_params(data) if isinstance(data, dict) else '...'}"
        )

        try:
            async with self._session.request(
                method,
                url,
                headers=headers,
                params=params,
                data=data,
            ) as response:
                text = await response.text()
                return response.status, text

        except asyncio.TimeoutError as e:
            raise TerminalVenueError(f"{self.name} request timeout: {method} {url}", cause=e)
        except (aiohttp.ClientError, OSError) as e:
            if _is_connection_reset(e):
                logger.error(f"{self.name} connection reset, treating as overload")
                raise TransientVenueError(
                    f"{self.name} connection reset",
                    status=CONNECTION_RESET_STATUS,
                    cause=e,
                )
            raise TerminalVenueError(f"{self.name} network error: {e}", cause=e)
