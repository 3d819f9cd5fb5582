"""Remote configuration sources.

A configuration source is anything with an ``async fetch()`` coroutine
returning a raw configuration mapping. The serialized strategy awaits the
source during ``initialize`` and extends the machine configuration with the
result before compiling it.

Example:
    ```python
    fetcher = RemoteConfigFetcher("https://example.com/machine.json", timeout=5.0)
    machine = create_state_machine(local_config, source=fetcher)
    await machine.initialize()
    ```
"""

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Protocol, runtime_checkable
from urllib.parse import urlparse
from urllib.request import url2pathname

import aiohttp

from declarative_fsm.config.loader import ConfigLoader
from declarative_fsm.exceptions import RemoteConfigurationError

logger = logging.getLogger(__name__)


def local_path(location: str) -> Path:
    """Filesystem path of a plain path or ``file://`` URL."""
    if location.startswith("file:"):
        return Path(url2pathname(urlparse(location).path))
    return Path(location)


@runtime_checkable
class ConfigSource(Protocol):
    """Protocol for asynchronous configuration sources."""

    async def fetch(self) -> Mapping[str, Any]:
        """Return a raw configuration document."""
        ...


class RemoteConfigFetcher:
    """Fetch a raw configuration document over HTTP.

    ``file://`` URLs and plain paths are read through :class:`ConfigLoader`
    so JSON and YAML documents can be used without a server.

    Args:
        url: Location of the configuration document
        timeout: Request timeout in seconds
        headers: Extra request headers
        loader: Loader used for local documents
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        headers: Dict[str, str] | None = None,
        loader: ConfigLoader | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._loader = loader or ConfigLoader()

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_local(self) -> bool:
        return urlparse(self._url).scheme in ("", "file")

    async def fetch(self) -> Dict[str, Any]:
        """Retrieve and parse the configuration document.

        Returns:
            Raw configuration mapping.

        Raises:
            RemoteConfigurationError: If the server answers with an error
                status, the transport fails or the body is not a mapping.
        """
        if self.is_local:
            try:
                return self._loader.load_from_file(local_path(self._url))
            except FileNotFoundError as e:
                raise RemoteConfigurationError(self._url, str(e)) from e

        logger.debug(f"Fetching configuration from {self._url}")
        try:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            async with aiohttp.ClientSession(headers=self._headers, timeout=timeout) as session:
                async with session.get(self._url) as response:
                    if response.status >= 400:
                        logger.error(
                            "Configuration fetch failed: %s responded with %s",
                            self._url,
                            response.status,
                        )
                        raise RemoteConfigurationError(
                            self._url, response.reason or "HTTP error", status=response.status
                        )
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Configuration fetch failed: %s: %s", self._url, e)
            raise RemoteConfigurationError(self._url, str(e) or type(e).__name__) from e

        if not isinstance(data, Mapping):
            raise RemoteConfigurationError(self._url, "document is not a mapping of states")

        logger.info(f"Loaded configuration from {self._url}")
        return self._loader.load_from_dict(data, resolve_env=False)

    def __repr__(self) -> str:
        return f"RemoteConfigFetcher(url={self._url!r})"
