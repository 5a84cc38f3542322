"""
Shared fixtures and fake providers.
"""
import os
import asyncio

# Must be set before main is imported by the API tests
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")

import pytest

from reportsonic.core.performance import PerformanceMonitor
from reportsonic.core.schemas import AnalysisPayload
from reportsonic.services.providers import ProviderClient, ProviderError


class StaticProvider(ProviderClient):
    """Returns a fixed payload, optionally after a delay."""

    def __init__(self, name, payload=None, delay=0.0, timeout=5.0):
        super().__init__(timeout=timeout)
        self.name = name
        self.payload = payload if payload is not None else AnalysisPayload(summary=f"{name} summary", insights=[f"{name} insight"])
        self.delay = delay
        self.calls = []

    async def _analyze(self, rows, headers, custom_prompt=None, prompt=None):
        self.calls.append(custom_prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.payload


class FailingProvider(ProviderClient):
    """Fails the way a real backend does: by raising inside _analyze."""

    def __init__(self, name, message="service unavailable", timeout=5.0):
        super().__init__(timeout=timeout)
        self.name = name
        self.message = message

    async def _analyze(self, rows, headers, custom_prompt=None, prompt=None):
        raise ProviderError(self.message)


@pytest.fixture(autouse=True)
def clear_metrics():
    PerformanceMonitor.clear_metrics()
    yield
    PerformanceMonitor.clear_metrics()


@pytest.fixture
def static_provider():
    return StaticProvider


@pytest.fixture
def failing_provider():
    return FailingProvider


@pytest.fixture
def people_scores():
    """Name/Age/Score with five distinct names."""
    headers = ["Name", "Age", "Score"]
    rows = [
        ["Alice", 25, 85.5],
        ["Bob", 30, 90],
        ["Carol", 35, 88.5],
        ["Dan", 40, 92],
        ["Eve", 28, 79.25],
    ]
    return headers, rows


@pytest.fixture
def time_series():
    """20 days of revenue with ISO date strings."""
    headers = ["Date", "Revenue"]
    rows = [[f"2024-01-{day:02d}", 1000 + day * 25] for day in range(1, 21)]
    return headers, rows


@pytest.fixture
def sales_by_region():
    headers = ["Region", "Product", "Sales", "Units"]
    regions = ["North", "South", "East", "West"]
    products = ["Widget", "Gadget"]
    rows = [
        [regions[i % 4], products[i % 2], 100 + i * 10, 5 + i]
        for i in range(12)
    ]
    return headers, rows
