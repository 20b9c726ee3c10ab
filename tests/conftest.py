"""Pytest fixtures for the STK push relay tests."""

import pytest
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.database.transactions import TransactionStore
from src.integrations.clients.mocks.payments import LipiaMockClient
from src.reconciliation.reconciler import TransactionReconciler
from src.utils.config_loader import PaymentsConfig, ServerConfig
from tests.stubs import CALLBACK_URL, FakeClock, StubLipiaClient


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    """In-memory TransactionStore for tests."""
    return TransactionStore()


@pytest.fixture
def mock_client():
    return LipiaMockClient()


@pytest.fixture
def stub_client():
    return StubLipiaClient()


@pytest.fixture
def reconciler(store, mock_client):
    return TransactionReconciler(store=store, client=mock_client, callback_url=CALLBACK_URL)


@pytest.fixture
def make_http_client(store, tmp_path):
    """Build a TestClient around the app wired to the given provider client."""

    def _make(client, **config_overrides):
        cfg = PaymentsConfig(
            server=ServerConfig(static_dir=str(tmp_path / "no-public-dir")),
            public_base_url="https://relay.example.com",
            **config_overrides,
        )
        return TestClient(create_app(cfg, store=store, client=client))

    return _make
