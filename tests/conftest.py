"""Pytest configuration and fixtures"""
import os
import pytest
from datetime import timedelta
from unittest.mock import Mock

# Set test environment variables
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")

from kuadrat.cart import CartManager, InMemoryStorage


class FakeClock:
    """Epoch-millis clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += int(timedelta(**kwargs).total_seconds() * 1000)


@pytest.fixture
def clock():
    """Controllable clock"""
    return FakeClock()


@pytest.fixture
def storage():
    """Empty in-process storage"""
    return InMemoryStorage()


@pytest.fixture
def cart(storage, clock):
    """Empty cart backed by in-process storage"""
    return CartManager(storage, clock=clock)


@pytest.fixture
def mock_redis():
    """Mock Upstash Redis client backed by a dict"""
    data = {}
    client = Mock()
    client.data = data
    client.get.side_effect = lambda key: data.get(key)
    client.delete.side_effect = lambda *keys: [data.pop(key, None) for key in keys]

    # MULTI/EXEC: writes are queued and applied on exec()
    tx = Mock()
    queued = []
    tx.set.side_effect = lambda key, value, **kwargs: queued.append((key, value))

    def exec_():
        for key, value in queued:
            data[key] = value
        applied = ["OK"] * len(queued)
        queued.clear()
        return applied

    tx.exec.side_effect = exec_
    client.multi.return_value = tx
    client.tx = tx
    return client


@pytest.fixture
def sample_shipping():
    """Courier delivery, one item per parcel"""
    return {
        "method_id": "m1",
        "method_name": "Courier",
        "method_type": "delivery",
        "cost_per_shipment": 10,
        "max_items_per_shipment": 1,
        "estimated_days": 3,
    }


@pytest.fixture
def sample_art(sample_shipping):
    """Artwork entry from seller s1"""
    return {
        "product_id": 1,
        "product_type": "art",
        "name": "Blue Harbour",
        "unit_price": 100,
        "quantity": 1,
        "seller_id": "s1",
        "seller_name": "Marta Ruiz",
        "shipping": sample_shipping,
    }


@pytest.fixture
def sample_print():
    """Print with variants from seller s1, no shipping chosen yet"""
    return {
        "product_id": 7,
        "product_type": "other",
        "name": "Harbour print",
        "unit_price": "25.50",
        "seller_id": "s1",
        "seller_name": "Marta Ruiz",
        "variant_id": 3,
        "variant_key": "A4",
    }
