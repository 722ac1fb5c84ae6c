"""
Pytest fixtures and configuration for Pet Store POS tests

This file provides shared fixtures that can be used across all test modules.
Every test gets its own in-memory datastore, so tests never touch a real
datastore file.
"""
import time
from datetime import date, datetime, time as dt_time, timedelta
from decimal import Decimal

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient

from petpos.core.record_store import RecordStore
from petpos.repositories.category_repository import CategoryRepository
from petpos.repositories.order_repository import OrderRepository
from petpos.repositories.product_repository import ProductRepository

# Load environment variables for tests
load_dotenv()


@pytest.fixture(scope="function")
def store():
    """
    Provides a fresh, open in-memory Record Store

    Scope: function (new store per test)
    Automatically closed after the test
    """
    store = RecordStore("sqlite://").open()
    yield store
    store.close()


@pytest.fixture
def product_repo(store):
    return ProductRepository(store)


@pytest.fixture
def category_repo(store):
    return CategoryRepository(store)


@pytest.fixture
def order_repo(store):
    return OrderRepository(store)


@pytest.fixture
def client(store):
    """
    Provides a TestClient for the API, serving the in-memory store
    """
    from petpos.main import create_app

    with TestClient(create_app(store)) as test_client:
        yield test_client


@pytest.fixture
def sample_product_data():
    """
    Provides sample product data for tests
    """
    return {
        "barcode": "8936012345678",
        "name": "Pedigree Adult 1.5kg",
        "category": "Thức ăn chó",
        "price": 120000,
        "cost": 95000,
        "stock": 20,
        "unit": "gói",
    }


@pytest.fixture
def sample_order_data():
    """
    Provides sample order data for tests (one line, 2 x 60.000)
    """
    return {
        "items": [
            {
                "productId": "p-1",
                "name": "Whiskas Tuna 400g",
                "price": 60000,
                "quantity": 2,
                "subtotal": 120000,
            }
        ],
        "total": 120000,
    }


@pytest.fixture
def today_at():
    """Builds aware local datetimes on today's date"""
    def _at(hour=12, minute=0, second=0, microsecond=0, days=0) -> datetime:
        day = date.today() + timedelta(days=days)
        return datetime.combine(day, dt_time(hour, minute, second, microsecond)).astimezone()
    return _at


@pytest.fixture
def new_york_time(monkeypatch):
    """Runs the test with the local timezone set to America/New_York"""
    if not hasattr(time, "tzset"):
        pytest.skip("timezone cannot be switched on this platform")

    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    try:
        if "EST" not in time.tzname:
            pytest.skip("America/New_York timezone data is not installed")
        yield
    finally:
        monkeypatch.undo()
        time.tzset()


@pytest.fixture
def money():
    """Shorthand for exact money values"""
    return lambda value: Decimal(str(value))
