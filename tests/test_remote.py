"""Tests for remote configuration fetching."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from declarative_fsm import create_state_machine
from declarative_fsm.config.remote import ConfigSource, RemoteConfigFetcher, local_path
from declarative_fsm.exceptions import RemoteConfigurationError

URL = "https://config.example.com/machine.json"

REMOTE_CONFIG = {
    "init": {"transitions": {"first": "first"}},
    "first": {"transitions": {"second": "second"}},
    "second": {},
}


def _async_cm(value):
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=value)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


def mock_session(status=200, body=None, error=None):
    """Build a patched aiohttp.ClientSession returning one response."""
    response = MagicMock()
    response.status = status
    response.reason = "OK" if status < 400 else "Not Found"
    response.json = AsyncMock(return_value=body)

    session = MagicMock()
    if error is not None:
        session.get = MagicMock(side_effect=error)
    else:
        session.get = MagicMock(return_value=_async_cm(response))

    return patch(
        "declarative_fsm.config.remote.aiohttp.ClientSession",
        return_value=_async_cm(session),
    ), session


class TestRemoteConfigFetcher:

    def test_is_config_source(self):
        assert isinstance(RemoteConfigFetcher(URL), ConfigSource)

    @pytest.mark.asyncio
    async def test_fetch_success(self):
        patcher, session = mock_session(body=REMOTE_CONFIG)

        with patcher as client_session:
            config = await RemoteConfigFetcher(URL, headers={"X-Token": "t"}).fetch()

        assert config == REMOTE_CONFIG
        session.get.assert_called_once_with(URL)
        headers = client_session.call_args.kwargs["headers"]
        assert headers["X-Token"] == "t"
        assert headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_error_status(self):
        patcher, _ = mock_session(status=404)

        with patcher:
            with pytest.raises(RemoteConfigurationError) as exc_info:
                await RemoteConfigFetcher(URL).fetch()

        assert exc_info.value.status == 404
        assert exc_info.value.url == URL
        assert "404" in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        aiohttp.ClientConnectionError("connection refused"),
        asyncio.TimeoutError(),
    ])
    async def test_transport_error(self, error):
        patcher, _ = mock_session(error=error)

        with patcher:
            with pytest.raises(RemoteConfigurationError) as exc_info:
                await RemoteConfigFetcher(URL).fetch()

        assert exc_info.value.status is None
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_non_mapping_body(self):
        patcher, _ = mock_session(body=["init"])

        with patcher:
            with pytest.raises(RemoteConfigurationError):
                await RemoteConfigFetcher(URL).fetch()

    @pytest.mark.asyncio
    async def test_local_file(self, tmp_path):
        path = tmp_path / "machine.json"
        path.write_text(json.dumps(REMOTE_CONFIG))

        assert await RemoteConfigFetcher(path.as_uri()).fetch() == REMOTE_CONFIG
        assert await RemoteConfigFetcher(str(path)).fetch() == REMOTE_CONFIG

    @pytest.mark.asyncio
    async def test_missing_local_file(self, tmp_path):
        with pytest.raises(RemoteConfigurationError):
            await RemoteConfigFetcher(str(tmp_path / "missing.json")).fetch()


class TestMachineWithRemoteSource:

    @pytest.mark.asyncio
    async def test_url_source_end_to_end(self):
        target = {"test": "test"}
        received = {}

        def on_second(name, target):
            received.update(name=name, target=target)

        m = create_state_machine(
            {
                "first": {"action": lambda name: {"target": target}},
                "second": {"action": on_second},
            },
            source=URL,
        )
        assert m.is_serialized

        patcher, _ = mock_session(body=REMOTE_CONFIG)
        with patcher:
            m.initialize()
            m.send("first")
            m.send("second")
            state = await m.get_current_state()

        assert state == "second"
        assert received == {"name": "first", "target": target}

    @pytest.mark.asyncio
    async def test_url_source_failure(self):
        m = create_state_machine({}, source=URL)

        patcher, _ = mock_session(status=500)
        with patcher:
            with pytest.raises(RemoteConfigurationError) as exc_info:
                await m.initialize()

        assert exc_info.value.status == 500

    def test_url_source_requires_serialized_mode(self):
        with pytest.raises(ValueError):
            create_state_machine({}, source=URL, mode="sync")

    def test_file_source_loaded_immediately(self, tmp_path):
        path = tmp_path / "machine.json"
        path.write_text(json.dumps(REMOTE_CONFIG))

        m = create_state_machine({}, source=str(path))
        m.initialize()

        assert not m.is_serialized
        assert m.send("first") == "first"

    def test_file_url_source_loaded_immediately(self, tmp_path):
        path = tmp_path / "machine.json"
        path.write_text(json.dumps(REMOTE_CONFIG))

        m = create_state_machine({}, source=path.as_uri())
        m.initialize()

        assert not m.is_serialized
        assert m.send("first") == "first"

    def test_local_path(self, tmp_path):
        path = tmp_path / "machine config.json"

        assert local_path(path.as_uri()) == path
        assert local_path(str(path)) == path
