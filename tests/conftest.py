"""
Pytest configuration and fixtures for sentinel_session tests.

Provides:
- Configuration fixtures for various scenarios
- Fake Sentinel objects for resolver tests
- Mocked redis.Redis connections for Sentinel and data nodes
- Integration test markers and CLI options
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from typing import Dict, List, Optional, Tuple

from redis.exceptions import ConnectionError

from sentinel_session import (
    Endpoint,
    MonitorUnreachable,
    SentinelConfig,
    ClusterSession,
)


# ============================================================================
# Pytest Hooks for Integration Tests
# ============================================================================

def pytest_addoption(parser):
    """Add custom command line options for pytest."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires a running Sentinel topology)",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires running Sentinel)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (e.g., failover tests)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is provided."""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ============================================================================
# Sample Replies
# ============================================================================

SENTINEL_A = Endpoint("sentinel-a.example.com", 26379)
SENTINEL_B = Endpoint("sentinel-b.example.com", 26379)
SENTINEL_C = Endpoint("sentinel-c.example.com", 26380)

PRIMARY = Endpoint("10.0.0.5", 6379)


def replica_reply(
    ip: str,
    port: int,
    role: str = "slave",
    link: str = "ok",
) -> List[str]:
    """Build one flat ``SENTINEL slaves`` entry the way Sentinel reports it."""
    return [
        "name", f"{ip}:{port}",
        "ip", ip,
        "port", str(port),
        "runid", "9f2c1d0e",
        "flags", "slave",
        "link-pending-commands", "0",
        "role-reported", role,
        "master-link-down-time", "0",
        "master-link-status", link,
        "master-host", PRIMARY.host,
        "master-port", str(PRIMARY.port),
        "slave-priority", "100",
    ]


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def default_config() -> SentinelConfig:
    """Create a default Sentinel configuration."""
    return SentinelConfig()


@pytest.fixture
def sentinel_config() -> SentinelConfig:
    """Create a configuration with two Sentinels."""
    return SentinelConfig(
        master_name="mymaster",
        sentinel_hosts=[
            (SENTINEL_A.host, SENTINEL_A.port),
            (SENTINEL_B.host, SENTINEL_B.port),
        ],
    )


@pytest.fixture
def custom_config() -> SentinelConfig:
    """Create a customized Sentinel configuration."""
    return SentinelConfig(
        master_name="cache",
        sentinel_hosts=[("sentinel1", 26379)],
        password="secret123",
        sentinel_password="sentinel_secret",
        db=1,
        ssl=False,
        socket_timeout=10.0,
        socket_connect_timeout=5.0,
        sentinel_socket_timeout=1.5,
        sentinel_socket_connect_timeout=0.5,
        resolve_timeout=3.0,
        retry_attempts=5,
        retry_base_delay=0.2,
        client_name="custom_app",
    )


@pytest.fixture
def sentinels() -> List[Endpoint]:
    return [SENTINEL_A, SENTINEL_B, SENTINEL_C]


# ============================================================================
# Fake Sentinel (resolver tests)
# ============================================================================

class FakeMonitorClient:
    """
    Stands in for MonitorClient and records the order of contacts.

    Attributes:
        calls: Every endpoint passed to connect(), in order
        closed: Every connection passed to close(), in order
    """

    def __init__(
        self,
        down: Tuple[Endpoint, ...] = (),
        primary: Endpoint = PRIMARY,
        replicas: Optional[List[List[str]]] = None,
        primaries: Optional[Dict[Endpoint, Endpoint]] = None,
    ):
        self.down = set(down)
        self.primary = primary
        self.primaries = primaries or {}
        self.replicas = replicas if replicas is not None else []
        self.query_errors: Dict[Endpoint, Exception] = {}
        self.calls: List[Endpoint] = []
        self.closed: List[str] = []

    async def connect(self, endpoint: Endpoint) -> str:
        self.calls.append(endpoint)
        if endpoint in self.down:
            raise MonitorUnreachable(
                f"{endpoint}: Connection refused",
                stage="sentinel_connect",
                endpoint=endpoint,
            )
        return f"conn:{endpoint}"

    def _check_query(self, endpoint: Endpoint) -> None:
        if endpoint in self.query_errors:
            raise self.query_errors[endpoint]

    async def query_primary(self, conn, endpoint, master_name) -> Endpoint:
        self._check_query(endpoint)
        return self.primaries.get(endpoint, self.primary)

    async def query_replicas(self, conn, endpoint, master_name) -> List[List[str]]:
        self._check_query(endpoint)
        return self.replicas

    async def close(self, conn) -> None:
        self.closed.append(conn)


@pytest.fixture
def fake_monitor() -> FakeMonitorClient:
    return FakeMonitorClient()


# ============================================================================
# Mocked redis.Redis (monitor client and session tests)
# ============================================================================

def make_sentinel_connection(
    primary: Optional[Tuple[str, str]] = (PRIMARY.host, str(PRIMARY.port)),
    replicas: Optional[List[List[str]]] = None,
    ping_error: Optional[Exception] = None,
    query_error: Optional[Exception] = None,
) -> MagicMock:
    """Create a mock Sentinel connection answering the two discovery queries."""
    conn = MagicMock()
    conn.ping = AsyncMock(side_effect=ping_error, return_value=True)
    conn.aclose = AsyncMock()

    async def execute_command(*args):
        if query_error is not None:
            raise query_error
        subcommand = args[1]
        if subcommand == "get-master-addr-by-name":
            return list(primary) if primary is not None else None
        if subcommand == "slaves":
            return replicas if replicas is not None else []
        raise AssertionError(f"unexpected Sentinel command {args}")

    conn.execute_command = AsyncMock(side_effect=execute_command)
    return conn


def make_data_client(reply="OK", connect_error: Optional[Exception] = None) -> MagicMock:
    """Create a mock data-node connection."""
    client = MagicMock()
    client.initialize = AsyncMock(side_effect=connect_error)
    client.execute_command = AsyncMock(return_value=reply)
    client.aclose = AsyncMock()
    return client


class RedisFactory:
    """
    Replacement for ``redis.Redis`` routing each Sentinel address to a mock.

    Unknown Sentinel addresses refuse the connection.
    """

    def __init__(self):
        self.sentinels: Dict[Tuple[str, int], MagicMock] = {}
        self.data_client = make_data_client()
        self.redis_class = MagicMock(side_effect=self._create)
        self.redis_class.from_url = MagicMock(side_effect=lambda *a, **kw: self.data_client)

    def _create(self, *args, **kwargs):
        key = (kwargs["host"], kwargs["port"])
        if key not in self.sentinels:
            self.sentinels[key] = make_sentinel_connection(
                ping_error=ConnectionError("Connection refused")
            )
        return self.sentinels[key]

    def add_sentinel(self, endpoint: Endpoint, **kwargs) -> MagicMock:
        conn = make_sentinel_connection(**kwargs)
        self.sentinels[(endpoint.host, endpoint.port)] = conn
        return conn


@pytest.fixture
def redis_factory():
    """Patch redis.Redis inside sentinel_session with a RedisFactory."""
    factory = RedisFactory()
    with patch("sentinel_session.redis.Redis", factory.redis_class):
        yield factory


@pytest.fixture
def session(sentinel_config) -> ClusterSession:
    return ClusterSession(sentinel_config)


# ============================================================================
# Logger Fixtures
# ============================================================================

@pytest.fixture
def mock_logger() -> MagicMock:
    """Create a mock logger for testing log output."""
    logger = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.debug = MagicMock()
    return logger
