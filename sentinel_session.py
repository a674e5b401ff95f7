"""
Sentinel Session Module

Provides Sentinel-driven discovery and failover for a Redis master:
- Sentinel list scanned in order, with the last answering Sentinel tried first
- Primary lookup and random selection among healthy replicas
- One short-lived data-node connection per command

"""

import logging
import asyncio
import random
import urllib.parse
from dataclasses import dataclass, field
from enum import Enum
from collections.abc import Mapping
from typing import Optional, List, Tuple, Dict, Callable, Any, Sequence, Union
from functools import wraps
import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import (
    ConnectionError,
    TimeoutError,
    BusyLoadingError,
    ReadOnlyError,
    ResponseError,
    RedisError
)


# =========================================================================
# Errors
# =========================================================================

class SentinelSessionError(RedisError):
    """
    Base class for discovery and failover errors.

    The message is prefixed with the stage that raised it, e.g.
    ``(sentinel_connect) 10.0.0.1:26379: Connection refused``.

    Attributes:
        stage: Name of the step that failed
        endpoint: Sentinel or data node involved, when known
    """

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        endpoint: Optional["Endpoint"] = None,
    ):
        self.stage = stage
        self.endpoint = endpoint
        prefix = f"({stage}) " if stage else ""
        super().__init__(f"{prefix}{message}")


class MonitorUnreachable(SentinelSessionError):
    """A single Sentinel could not be contacted. The next one is tried."""


class NoMonitorReachable(SentinelSessionError):
    """Every configured Sentinel failed during one resolve call."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        failures: Optional[List[Tuple["Endpoint", Exception]]] = None,
    ):
        self.failures = failures or []
        super().__init__(message, stage=stage)


class NoUsableReplica(SentinelSessionError):
    """A replica was requested but Sentinel reports none that is usable."""


class DataNodeUnreachable(SentinelSessionError):
    """The resolved primary or replica refused the data-plane connection."""


class MonitorProtocolError(SentinelSessionError):
    """Sentinel answered with an error or a reply we cannot interpret."""


RETRYABLE_EXCEPTIONS = (
    NoMonitorReachable,
    DataNodeUnreachable,
    ConnectionError,
    TimeoutError,
    ReadOnlyError,
    BusyLoadingError,
)


# =========================================================================
# Data Model
# =========================================================================

@dataclass(frozen=True)
class Endpoint:
    """
    Network address of a Sentinel or a Redis data node.

    Attributes:
        host: Hostname or IP address
        port: TCP port
    """
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def parse(cls, address: str) -> "Endpoint":
        """Parse a ``host:port`` string."""
        host, sep, port = address.rpartition(":")
        if not sep or not host:
            raise ValueError(f"Invalid endpoint address: {address!r}")
        return cls(host, int(port))

    @classmethod
    def coerce(cls, value: Union["Endpoint", Tuple[str, int], str, Mapping[str, Any]]) -> "Endpoint":
        """
        Build an Endpoint from any of the accepted address forms.

        Args:
            value: An Endpoint, a ``(host, port)`` tuple, a ``"host:port"``
                   string or a ``{"host": ..., "port": ...}`` mapping.

        Returns:
            The corresponding Endpoint
        """
        if isinstance(value, Endpoint):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, Mapping):
            return cls(value["host"], int(value["port"]))
        host, port = value
        return cls(host, int(port))


class Role(Enum):
    """Which data node a command is sent to."""
    PRIMARY = "primary"
    REPLICA = "replica"


@dataclass
class ReplicaRecord:
    """
    One replica as reported by ``SENTINEL slaves``.

    Attributes:
        ip: Replica address
        port: Replica port
        role_reported: Role the replica reports for itself
        master_link_status: State of the replica's link to the primary
        attributes: Every recognized attribute, keyed by Sentinel's name
    """
    ip: str
    port: int
    role_reported: Optional[str] = None
    master_link_status: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def usable(self) -> bool:
        """A replica serves reads only while it is a slave with a healthy link."""
        return self.role_reported == "slave" and self.master_link_status == "ok"

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(self.ip, self.port)


@dataclass
class ResolvedTarget:
    """
    A data node chosen by the resolver for one call.

    Attributes:
        endpoint: Address of the primary or replica
        role: Which role the endpoint serves
        sentinel: The Sentinel that reported it
    """
    endpoint: Endpoint
    role: Role
    sentinel: Endpoint


# =========================================================================
# Configuration
# =========================================================================

@dataclass
class SentinelConfig:
    """
    Configuration for a Sentinel session.

    Attributes:
        master_name: Name of the master monitored by Sentinel
        sentinel_hosts: Sentinel addresses, tried in this order
        password: Optional password for the data nodes
        sentinel_password: Optional password for the Sentinel nodes themselves
        db: Redis database number on the data nodes
        ssl: Whether to use SSL/TLS for every connection
        socket_timeout: Timeout for data-node socket operations
        socket_connect_timeout: Timeout for establishing data-node connections
        sentinel_socket_timeout: Timeout for Sentinel queries
        sentinel_socket_connect_timeout: Timeout for connecting to one Sentinel
        resolve_timeout: Optional deadline for a whole Sentinel scan
        retry_attempts: Number of retry attempts for ``with_retry``
        retry_base_delay: Base delay for exponential backoff
        client_name: Name announced with CLIENT SETNAME
    """
    master_name: str = "mymaster"
    sentinel_hosts: List[Tuple[str, int]] = field(default_factory=list)
    password: Optional[str] = None
    sentinel_password: Optional[str] = None
    db: int = 0
    ssl: bool = False
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 2.0
    sentinel_socket_timeout: float = 5.0
    sentinel_socket_connect_timeout: float = 5.0
    resolve_timeout: Optional[float] = None
    retry_attempts: int = 3
    retry_base_delay: float = 0.1
    client_name: str = "sentinel_session"

    def url_for(self, endpoint: Endpoint) -> str:
        """Generate the Redis URL of a resolved data node."""
        scheme = "rediss" if self.ssl else "redis"
        auth = ""
        if self.password:
            encoded_password = urllib.parse.quote(self.password)
            auth = f":{encoded_password}@"
        return f"{scheme}://{auth}{endpoint.host}:{endpoint.port}/{self.db}"


# =========================================================================
# Replica Parsing
# =========================================================================

REPLICA_ATTRIBUTES = frozenset({
    "name",
    "ip",
    "port",
    "runid",
    "flags",
    "link-pending-commands",
    "link-refcount",
    "last-ping-sent",
    "last-ok-ping-reply",
    "last-ping-reply",
    "s-down-time",
    "o-down-time",
    "down-after-milliseconds",
    "info-refresh",
    "role-reported",
    "role-reported-time",
    "master-link-down-time",
    "master-link-status",
    "master-host",
    "master-port",
    "slave-priority",
    "slave-repl-offset",
    "replica-announced",
})


def random_index(low: int, high: int) -> int:
    """Return a uniformly random integer in the closed range [low, high]."""
    if low > high:
        raise ValueError(f"Empty range [{low}, {high}]")
    return random.randint(low, high)


def _decode(value: Any) -> Any:
    return value.decode("utf-8") if isinstance(value, bytes) else value


def parse_replica_record(reply: Union[Sequence[Any], Mapping[Any, Any]]) -> ReplicaRecord:
    """
    Build a ReplicaRecord from one replica's attribute reply.

    The reply is a flat ``[key, value, key, value, ...]`` list. Each
    recognized key takes the element right after it as its value; anything
    else is skipped one element at a time, so an unknown attribute does not
    shift the pairing of the keys that follow it. RESP3 map replies are
    accepted as well.

    Raises:
        ValueError: ip or port missing, port not an integer, or a
                    recognized key at the end of the reply
    """
    attributes: Dict[str, str] = {}

    if isinstance(reply, Mapping):
        for key, value in reply.items():
            key = _decode(key)
            if key in REPLICA_ATTRIBUTES:
                attributes[key] = _decode(value)
    else:
        items = iter(reply)
        for item in items:
            key = _decode(item)
            if key not in REPLICA_ATTRIBUTES:
                continue
            try:
                attributes[key] = _decode(next(items))
            except StopIteration:
                raise ValueError(f"Attribute {key!r} has no value") from None

    ip = attributes.get("ip")
    port = attributes.get("port")
    if not ip or port is None:
        raise ValueError(f"Replica reply lacks ip/port: {attributes}")

    return ReplicaRecord(
        ip=ip,
        port=int(port),
        role_reported=attributes.get("role-reported"),
        master_link_status=attributes.get("master-link-status"),
        attributes=attributes,
    )


def parse_replica_set(reply: Sequence[Any]) -> List[ReplicaRecord]:
    """Parse a ``SENTINEL slaves`` reply into one record per replica."""
    return [parse_replica_record(replica) for replica in reply]


def usable_replicas(records: Sequence[ReplicaRecord]) -> List[ReplicaRecord]:
    """Keep only replicas reported as ``slave`` with master link ``ok``."""
    return [record for record in records if record.usable]


# =========================================================================
# Sentinel Queries
# =========================================================================

class MonitorClient:
    """
    Talks to one Sentinel at a time.

    Every connection is a single-connection client with internal retries
    disabled: moving on to the next Sentinel is the resolver's job.
    """

    def __init__(
        self,
        config: Optional[SentinelConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config or SentinelConfig()
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def _create_connection(self, endpoint: Endpoint) -> redis.Redis:
        kwargs = {}
        if self.config.sentinel_password is not None:
            kwargs["password"] = self.config.sentinel_password
        if self.config.ssl:
            kwargs["ssl"] = True

        return redis.Redis(
            host=endpoint.host,
            port=endpoint.port,
            decode_responses=True,
            socket_timeout=self.config.sentinel_socket_timeout,
            socket_connect_timeout=self.config.sentinel_socket_connect_timeout,
            retry=Retry(NoBackoff(), 0),
            single_connection_client=True,
            client_name=f"{self.config.client_name}_sentinel",
            **kwargs,
        )

    async def connect(self, endpoint: Endpoint) -> redis.Redis:
        """
        Open a connection to a Sentinel and check that it answers.

        Args:
            endpoint: Sentinel address

        Returns:
            Connected client; release it with ``close()``

        Raises:
            MonitorUnreachable: Connection refused, timed out or rejected
                                during the handshake (auth, ACL, HELLO)
        """
        conn = self._create_connection(endpoint)
        try:
            await conn.ping()
        except RedisError as e:
            # No contact was made, so the next Sentinel gets its turn
            await conn.aclose()
            raise MonitorUnreachable(
                f"{endpoint}: {type(e).__name__}: {e}",
                stage="sentinel_connect",
                endpoint=endpoint,
            ) from e
        return conn

    async def _query(
        self,
        conn: redis.Redis,
        endpoint: Endpoint,
        stage: str,
        *args: str
    ) -> Any:
        try:
            return await conn.execute_command("SENTINEL", *args)
        except (ConnectionError, TimeoutError) as e:
            raise MonitorUnreachable(
                f"{endpoint}: {type(e).__name__}: {e}", stage=stage, endpoint=endpoint
            ) from e
        except ResponseError as e:
            raise MonitorProtocolError(
                f"{endpoint}: {e}", stage=stage, endpoint=endpoint
            ) from e

    async def query_primary(
        self,
        conn: redis.Redis,
        endpoint: Endpoint,
        master_name: str
    ) -> Endpoint:
        """
        Ask a Sentinel for the current primary of ``master_name``.

        Returns:
            Address of the primary

        Raises:
            MonitorUnreachable: Sentinel dropped the connection mid-query
            MonitorProtocolError: Error reply, unknown master or bad reply
        """
        reply = await self._query(
            conn, endpoint, "get_master", "get-master-addr-by-name", master_name
        )
        if not reply:
            raise MonitorProtocolError(
                f"{endpoint} does not know master {master_name!r}",
                stage="get_master",
                endpoint=endpoint,
            )
        try:
            host, port = (_decode(v) for v in reply)
            return Endpoint(host, int(port))
        except (TypeError, ValueError) as e:
            raise MonitorProtocolError(
                f"{endpoint} sent a malformed master address: {reply!r}",
                stage="get_master",
                endpoint=endpoint,
            ) from e

    async def query_replicas(
        self,
        conn: redis.Redis,
        endpoint: Endpoint,
        master_name: str
    ) -> List[Any]:
        """
        Ask a Sentinel for the replicas of ``master_name``.

        Returns:
            Raw reply, one flat attribute list per replica
        """
        reply = await self._query(conn, endpoint, "get_replicas", "slaves", master_name)
        if not isinstance(reply, list):
            raise MonitorProtocolError(
                f"{endpoint} sent a malformed replica list: {reply!r}",
                stage="get_replicas",
                endpoint=endpoint,
            )
        return reply

    async def close(self, conn: redis.Redis) -> None:
        await conn.aclose()


# =========================================================================
# Failover Resolution
# =========================================================================

class FailoverResolver:
    """
    Finds the current primary, or a healthy replica, through Sentinel.

    Sentinels are tried one after another in list order, never in parallel.
    The last Sentinel that answered is remembered and tried first on the
    next call; it is never moved within the list itself.
    """

    def __init__(
        self,
        master_name: str,
        sentinels: Sequence[Endpoint],
        monitor_client: MonitorClient,
        logger: Optional[logging.Logger] = None,
        pick_index: Callable[[int, int], int] = random_index,
        deadline: Optional[float] = None
    ):
        """
        Args:
            master_name: Name of the master monitored by Sentinel
            sentinels: Sentinel endpoints in contact order
            monitor_client: Client used to query each Sentinel
            logger: Custom logger instance. Creates one if not provided.
            pick_index: Chooses a replica index in a closed range
            deadline: Optional limit in seconds for one whole resolve call
        """
        if not master_name:
            raise ValueError("master_name must be non-empty")
        if not sentinels:
            raise ValueError("At least one Sentinel endpoint is required")

        self.master_name = master_name
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._sentinels: Tuple[Endpoint, ...] = tuple(sentinels)
        self._monitor = monitor_client
        self._pick_index = pick_index
        self._deadline = deadline
        self._preferred: Optional[Endpoint] = None
        self._lock = asyncio.Lock()

    @property
    def sentinels(self) -> Tuple[Endpoint, ...]:
        return self._sentinels

    @property
    def preferred_sentinel(self) -> Optional[Endpoint]:
        """The Sentinel that answered most recently, if any."""
        return self._preferred

    async def reset_preferred(self) -> None:
        async with self._lock:
            self._preferred = None

    async def _candidates(self) -> List[Endpoint]:
        async with self._lock:
            preferred = self._preferred
        if preferred is None:
            return list(self._sentinels)
        return [preferred, *self._sentinels]

    async def _set_preferred(self, endpoint: Endpoint) -> None:
        async with self._lock:
            self._preferred = endpoint

    async def resolve(self, want_replica: bool = False) -> ResolvedTarget:
        """
        Resolve the address to send the next command to.

        Args:
            want_replica: Pick a random usable replica instead of the primary

        Returns:
            ResolvedTarget for the primary or the chosen replica

        Raises:
            NoMonitorReachable: No Sentinel answered (or the deadline expired)
            NoUsableReplica: Replica requested but none is usable
            MonitorProtocolError: A Sentinel answered with an error
        """
        # Appended to by _resolve and still readable after a deadline cancels it
        failures: List[Tuple[Endpoint, Exception]] = []
        if self._deadline is None:
            return await self._resolve(want_replica, failures)

        try:
            return await asyncio.wait_for(
                self._resolve(want_replica, failures), self._deadline
            )
        except asyncio.TimeoutError as e:
            raise NoMonitorReachable(
                f"No Sentinel answered for {self.master_name!r} within {self._deadline}s",
                stage="resolve",
                failures=failures,
            ) from e

    async def _resolve(
        self,
        want_replica: bool,
        failures: List[Tuple[Endpoint, Exception]]
    ) -> ResolvedTarget:
        for endpoint in await self._candidates():
            try:
                conn = await self._monitor.connect(endpoint)
            except MonitorUnreachable as e:
                self.logger.warning(f"Sentinel {endpoint} unreachable: {e}")
                failures.append((endpoint, e))
                continue

            await self._set_preferred(endpoint)
            try:
                return await self._query(conn, endpoint, want_replica)
            except MonitorUnreachable as e:
                self.logger.warning(f"Sentinel {endpoint} stopped answering: {e}")
                failures.append((endpoint, e))
                continue
            finally:
                await self._monitor.close(conn)

        raise NoMonitorReachable(
            f"Unable to reach any of {len(self._sentinels)} Sentinel(s) "
            f"for {self.master_name!r}",
            stage="resolve",
            failures=failures,
        )

    async def _query(
        self,
        conn: redis.Redis,
        endpoint: Endpoint,
        want_replica: bool
    ) -> ResolvedTarget:
        if not want_replica:
            primary = await self._monitor.query_primary(conn, endpoint, self.master_name)
            self.logger.debug(f"Sentinel {endpoint} reports primary {primary}")
            return ResolvedTarget(primary, Role.PRIMARY, endpoint)

        reply = await self._monitor.query_replicas(conn, endpoint, self.master_name)
        try:
            records = parse_replica_set(reply)
        except (TypeError, ValueError) as e:
            raise MonitorProtocolError(
                f"{endpoint} sent a malformed replica entry: {e}",
                stage="get_replicas",
                endpoint=endpoint,
            ) from e

        usable = usable_replicas(records)
        if not usable:
            raise NoUsableReplica(
                f"{endpoint} reports {len(records)} replica(s) of "
                f"{self.master_name!r}, none usable",
                stage="get_replicas",
                endpoint=endpoint,
            )

        chosen = usable[self._pick_index(0, len(usable) - 1)]
        self.logger.debug(
            f"Sentinel {endpoint} reports {len(usable)} usable replica(s), "
            f"chose {chosen.endpoint}"
        )
        return ResolvedTarget(chosen.endpoint, Role.REPLICA, endpoint)


# =========================================================================
# Session Facade
# =========================================================================

class ClusterSession:
    """
    Issues Redis commands to whatever node Sentinel currently points at.

    Each ``execute()`` resolves the target afresh, opens one connection,
    runs one command and closes the connection again. There is no pooling
    and nothing is retried behind the caller's back; wrap calls with
    ``with_retry()`` to ride out a failover.

    Usage::

        config = SentinelConfig(
            master_name="mymaster",
            sentinel_hosts=[("sentinel1", 26379), ("sentinel2", 26379)],
        )
        session = ClusterSession(config)
        await session.init()
        await session.execute("SET", "key", "value")
        value = await session.execute("GET", "key", use_replica=True)
    """

    def __init__(
        self,
        config: Optional[SentinelConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the session (does not contact Sentinel yet).

        Args:
            config: Sentinel configuration. Uses defaults if not provided.
            logger: Custom logger instance. Creates one if not provided.
        """
        self.config = config or SentinelConfig()
        self.logger = logger or logging.getLogger(self.__class__.__name__)

        self._resolver: Optional[FailoverResolver] = None
        self._init_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._resolver is not None

    @property
    def master_name(self) -> Optional[str]:
        return self._resolver.master_name if self._resolver else None

    @property
    def sentinels(self) -> Tuple[Endpoint, ...]:
        return self._resolver.sentinels if self._resolver else ()

    @property
    def preferred_sentinel(self) -> Optional[Endpoint]:
        return self._resolver.preferred_sentinel if self._resolver else None

    def _create_resolver(
        self,
        master_name: str,
        sentinels: List[Endpoint]
    ) -> FailoverResolver:
        return FailoverResolver(
            master_name,
            sentinels,
            MonitorClient(self.config, self.logger),
            logger=self.logger,
            deadline=self.config.resolve_timeout,
        )

    def _create_data_client(self, endpoint: Endpoint) -> redis.Redis:
        return redis.Redis.from_url(
            self.config.url_for(endpoint),
            decode_responses=True,
            socket_timeout=self.config.socket_timeout,
            socket_connect_timeout=self.config.socket_connect_timeout,
            retry=Retry(NoBackoff(), 0),
            single_connection_client=True,
            client_name=self.config.client_name,
        )

    async def init(
        self,
        master_name: Optional[str] = None,
        sentinels: Optional[Sequence[Any]] = None
    ) -> None:
        """
        Bind the session to a master and verify it can be reached.

        Resolves the primary once and opens (then immediately closes) a
        connection to it. Safe to call concurrently; only the first call
        does the work.

        Args:
            master_name: Overrides ``config.master_name``
            sentinels: Overrides ``config.sentinel_hosts``; any form accepted
                       by ``Endpoint.coerce``

        Raises:
            ValueError: Empty name or Sentinel list, or a second init with
                        different values
            SentinelSessionError: Discovery or the primary connection failed
        """
        async with self._init_lock:
            if self._resolver is not None:
                self._check_rebind(master_name, sentinels)
                return

            name = master_name if master_name is not None else self.config.master_name
            hosts = sentinels if sentinels is not None else self.config.sentinel_hosts
            if not name:
                raise ValueError("(init) master_name must be non-empty")
            endpoints = [Endpoint.coerce(host) for host in hosts]
            if not endpoints:
                raise ValueError("(init) At least one Sentinel endpoint is required")

            resolver = self._create_resolver(name, endpoints)
            target = await resolver.resolve(want_replica=False)
            client = await self._connect_data_node(target, stage="init")
            await client.aclose()

            self._resolver = resolver
            self.logger.info(
                f"Sentinel session initialized: master={name} primary={target.endpoint} "
                f"(via {target.sentinel}, {len(endpoints)} Sentinel(s) configured)"
            )

    def _check_rebind(
        self,
        master_name: Optional[str],
        sentinels: Optional[Sequence[Any]]
    ) -> None:
        # Master name and Sentinel list are fixed once the session is bound
        if master_name is not None and master_name != self._resolver.master_name:
            raise ValueError(
                f"(init) Session already bound to {self._resolver.master_name!r}"
            )
        if sentinels is not None:
            endpoints = tuple(Endpoint.coerce(host) for host in sentinels)
            if endpoints != self._resolver.sentinels:
                raise ValueError(
                    f"(init) Session already bound to Sentinels "
                    f"{[str(s) for s in self._resolver.sentinels]}"
                )

    async def _connect_data_node(self, target: ResolvedTarget, stage: str) -> redis.Redis:
        client = self._create_data_client(target.endpoint)
        try:
            await client.initialize()
        except (ConnectionError, TimeoutError) as e:
            await client.aclose()
            raise DataNodeUnreachable(
                f"{target.role.value} {target.endpoint}: {type(e).__name__}: {e}",
                stage=stage,
                endpoint=target.endpoint,
            ) from e
        return client

    async def execute(self, command: str, *args: Any, use_replica: bool = False) -> Any:
        """
        Run one command against the primary or a random usable replica.

        Args:
            command: Redis command name, e.g. ``"SET"``
            *args: Command arguments
            use_replica: Send the command to a replica instead of the primary

        Returns:
            The command's reply

        Raises:
            NoMonitorReachable: No Sentinel answered
            NoUsableReplica: use_replica set but no replica qualifies
            DataNodeUnreachable: The resolved node refused the connection
            RedisError: The node answered the command with an error
        """
        if self._resolver is None:
            await self.init()

        target = await self._resolver.resolve(want_replica=use_replica)
        client = await self._connect_data_node(target, stage="execute")
        try:
            return await client.execute_command(command, *args)
        finally:
            await client.aclose()

    async def health_check(self, use_replica: bool = False) -> bool:
        """
        Ping the primary (or a replica) through Sentinel.

        Returns:
            True if the node answered PING, False otherwise
        """
        try:
            result = await self.execute("PING", use_replica=use_replica)
            return result is True
        except SentinelSessionError as e:
            self.logger.error(f"Health check failed: {e}")
            return False
        except RedisError as e:
            self.logger.error(f"Redis error during health check: {type(e).__name__}: {e}")
            return False

    def with_retry(
        self,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None
    ) -> Callable:
        """
        Decorator that retries failover-related errors.

        Defaults come from ``config.retry_attempts`` and
        ``config.retry_base_delay``. Each attempt resolves the target
        again, so a promoted replica is picked up on the next try.

        Example:
            @session.with_retry(max_retries=3)
            async def store():
                await session.execute("SET", "key", "value")
        """
        retries = max_retries if max_retries is not None else self.config.retry_attempts
        delay = base_delay if base_delay is not None else self.config.retry_base_delay
        return with_failover_retry(retries, delay, logger=self.logger)


def with_failover_retry(
    max_retries: int = 3,
    base_delay: float = 0.1,
    logger: Optional[logging.Logger] = None
) -> Callable:
    """
    Standalone decorator for retrying operations across a failover.

    Retries Sentinel exhaustion, unreachable data nodes and the Redis errors
    a node returns while it is being demoted or loading, with exponential
    backoff and jitter. Any other error is raised immediately.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds (doubles each retry)
        logger: Logger for retry messages

    Returns:
        Decorator function

    Example:
        @with_failover_retry(max_retries=3)
        async def critical_operation():
            ...
    """
    log = logger or logging.getLogger("FailoverRetry")

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            last_error = None

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except RETRYABLE_EXCEPTIONS as e:
                    last_error = e
                    if attempt < max_retries:
                        # Exponential backoff with jitter
                        backoff = base_delay * (2 ** attempt)
                        jitter = random.uniform(0, 0.1 * backoff)
                        sleep_time = backoff + jitter

                        log.warning(
                            f"Operation failed (attempt {attempt + 1}/{max_retries + 1}), "
                            f"retrying in {sleep_time:.2f}s: {e}"
                        )
                        await asyncio.sleep(sleep_time)
                    else:
                        log.error(
                            f"Operation failed after {max_retries + 1} attempts: {e}"
                        )

            raise last_error

        return wrapper
    return decorator
