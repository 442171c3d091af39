from __future__ import annotations

import pytest

from xorack.backends.memory import MemoryBackend, MemoryConfig
from xorack.chain import AckChainStore
from xorack.settings import get_settings
from xorack.telemetry.logging import clear_context


# ---------- Pytest hooks ----------

def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("run-control")
    group.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="Run tests marked as 'integration'.",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "integration: tests that need a live backend")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--integration"):
        return
    skip_integration = pytest.mark.skip(reason="need --integration to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ---------- Fixtures ----------

@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch):
    for name in ("XORACK_BACKEND", "XORACK_ENV_FILE"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    clear_context()
    yield
    get_settings.cache_clear()
    clear_context()


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(memory_backend: MemoryBackend) -> AckChainStore:
    return AckChainStore(memory_backend)


@pytest.fixture
def slow_store() -> AckChainStore:
    """Store whose backend sleeps before every call, so concurrent stamps interleave."""
    return AckChainStore(MemoryBackend(MemoryConfig(latency_ms=5)))
