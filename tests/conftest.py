"""
Pytest configuration and shared fixtures.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from api.config import APIConfig
from api.main import create_app
from library.accounts import AccountStore
from library.catalog import CatalogStore
from library.reviews import ReviewWorkflow
from library.tokens import TokenAuthenticator
from utilities.config import LibraryConfig

TEST_SECRET = "test-signing-secret-" + "0" * 44
TEST_HASH_ROUNDS = 1000


@pytest.fixture
def library_config():
    """Core configuration with a cheap hash cost and a known seeded password."""
    return LibraryConfig(
        environment="test",
        password_hash_rounds=TEST_HASH_ROUNDS,
        default_account_password="pass1",
    )


@pytest.fixture
def api_config():
    """API configuration with a fixed secret and generous rate limits."""
    return APIConfig(
        secret_key=TEST_SECRET,
        auth_transport="bearer",
        rate_limit_max=10000,
        login_rate_limit_max=10000,
        registration_rate_limit_max=10000,
        books_rate_limit_max=10000,
    )


@pytest.fixture
def app(api_config, library_config):
    """Fresh application with its own stores."""
    return create_app(api_config, library_config)


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def session_client(api_config, library_config):
    """Test client for a deployment using cookie-backed sessions."""
    settings = api_config.model_copy(update={"auth_transport": "session"})
    return TestClient(create_app(settings, library_config))


@pytest.fixture
def account_store():
    """Empty account store with a cheap hash cost."""
    return AccountStore(hash_rounds=TEST_HASH_ROUNDS)


@pytest.fixture
def catalog_store():
    """Catalog seeded with the default books."""
    return CatalogStore()


@pytest.fixture
def review_workflow(catalog_store):
    """Review workflow over the default catalog."""
    return ReviewWorkflow(catalog_store)


@pytest.fixture
def authenticator():
    """Token authenticator with the test secret."""
    return TokenAuthenticator(secret_key=TEST_SECRET, lifetime=timedelta(hours=1))


@pytest.fixture
def register_and_login():
    """Register an account through the API and return the login response."""

    def _register_and_login(client, username="u1", password="P@ssw0rd1"):
        response = client.post("/register", json={"username": username, "password": password})
        assert response.status_code == 201, response.text
        return client.post("/login", json={"username": username, "password": password})

    return _register_and_login


@pytest.fixture
def auth_headers(client, register_and_login):
    """Bearer headers for a freshly registered u1 account."""
    token = register_and_login(client).json()["data"]["token"]
    return {"Authorization": f"Bearer {token}"}
