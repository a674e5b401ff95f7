"""
sentinel_session: Sample
========================

Binds a session to a Sentinel-monitored master, writes through the primary
and reads back from a random healthy replica.

Prerequisites:
    A primary with at least one replica, watched by Sentinels on
    localhost:26379-26381 under the name "mymaster".
    pip install -e .

Run:
    python sample.py
"""

import asyncio
import logging

from sentinel_session import (
    ClusterSession,
    SentinelConfig,
    SentinelSessionError,
    with_failover_retry,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(name)-20s  %(levelname)-7s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("sample")


SENTINEL_CONFIG = SentinelConfig(
    master_name="mymaster",
    sentinel_hosts=[
        ("localhost", 26379),
        ("localhost", 26380),
        ("localhost", 26381),
    ],
    sentinel_socket_connect_timeout=1.0,
    resolve_timeout=10.0,
    client_name="sentinel_session_sample",
)


async def demo_commands(session: ClusterSession) -> None:
    await session.execute("SET", "clustering", "is cool!")
    log.info(f"SET clustering on primary (preferred Sentinel: {session.preferred_sentinel})")

    await session.execute("HSET", "fuster", "cluck", "bawk")
    value = await session.execute("HGET", "fuster", "cluck", use_replica=True)
    log.info(f"HGET fuster cluck from a replica -> {value}")


async def demo_retry(session: ClusterSession) -> None:
    @with_failover_retry(max_retries=5, base_delay=0.5, logger=log)
    async def resilient_incr() -> int:
        return await session.execute("INCR", "sample:counter")

    log.info(f"INCR with failover retry -> {await resilient_incr()}")


async def main() -> None:
    session = ClusterSession(SENTINEL_CONFIG)
    try:
        await session.init()
    except SentinelSessionError as e:
        log.error(f"Unable to reach the cluster: {e}")
        return

    await demo_commands(session)
    await demo_retry(session)
    log.info(f"Healthy: {await session.health_check()}")

    for key in ("clustering", "fuster", "sample:counter"):
        await session.execute("DEL", key)


if __name__ == "__main__":
    asyncio.run(main())
