"""Shared test fixtures."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

import main as main_module
from core.cache import init_cache
from repositories.memory_repo import InMemoryGameRepository
from tests.factories import FakeTextGenerator, FakeTideProvider


@pytest.fixture
def repository():
    return InMemoryGameRepository()


@pytest.fixture
def provider():
    return FakeTideProvider()


@pytest.fixture
def generator():
    return FakeTextGenerator()


@pytest.fixture
async def state(repository, provider, generator):
    """Game services wired the way the app wires them, on a bare namespace."""
    state = SimpleNamespace()
    await main_module.init_services(state, repository, provider, generator)
    return state


@pytest.fixture
async def client(repository, provider, generator):
    await init_cache()
    await main_module.init_services(main_module.app.state, repository, provider, generator)

    transport = ASGITransport(app=main_module.app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
