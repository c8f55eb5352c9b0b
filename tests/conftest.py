# tests/conftest.py
import httpx
import pytest
from fastapi.testclient import TestClient

from catalog_admin.sdk import CatalogClient
from catalog_admin.viewmodel import ProductListViewModel
from stub_api import app, reset_store


@pytest.fixture(autouse=True)
def fresh_store():
    reset_store()
    yield
    reset_store()


@pytest.fixture
def sync_client():
    """CatalogClient whose requests go through the stub app's TestClient."""
    return CatalogClient(base_url="http://testserver", session=TestClient(app))


@pytest.fixture
def async_client():
    """CatalogClient whose httpx calls are served in-process by the stub app."""
    return CatalogClient(base_url="http://testserver", transport=httpx.ASGITransport(app=app))


@pytest.fixture
def vm(async_client, tmp_path):
    return ProductListViewModel(async_client, page_size=10, export_dir=str(tmp_path))
