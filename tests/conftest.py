"""Shared fixtures: a controllable clock, backends, the one-time store and an HTTP client."""
import pytest
from fastapi.testclient import TestClient

from secretdrop.application.services.one_time_secret_store import OneTimeSecretStore
from secretdrop.infrastructure.config.settings import Settings
from secretdrop.infrastructure.entrypoints.fastapi_app import create_app
from secretdrop.infrastructure.memory.in_memory_backend import InMemoryCredentialBackend
from tests.fakes import FakeClock, ScriptedBackend


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_backend(clock):
    return InMemoryCredentialBackend(clock=clock)


@pytest.fixture
def store(memory_backend):
    return OneTimeSecretStore(memory_backend)


@pytest.fixture
def scripted_backend():
    return ScriptedBackend()


@pytest.fixture
def settings():
    return Settings(http_binding_address=":8080", backend="memory")


@pytest.fixture
def client(store, settings):
    with TestClient(create_app(store, settings)) as test_client:
        yield test_client
