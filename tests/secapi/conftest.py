"""Pytest fixtures for client tests."""

from collections.abc import Callable

import httpx
import pytest

from secapi.client import Client
from secapi.config.settings import ClientSettings

from .fixtures.fakes import FakeClock

TEST_API_KEY = "test_api_key_12345"


@pytest.fixture
def settings() -> ClientSettings:
    """Valid settings isolated from .env files."""
    return ClientSettings(api_key=TEST_API_KEY, _env_file=None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_client(settings, clock):
    """Factory for clients backed by a mock transport and the fake clock."""
    clients: list[Client] = []

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> Client:
        client = Client(
            kwargs.pop("settings", settings),
            http_transport=httpx.MockTransport(handler),
            clock=kwargs.pop("clock", clock),
            sleep=kwargs.pop("sleep", clock.sleep),
            **kwargs,
        )
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()
