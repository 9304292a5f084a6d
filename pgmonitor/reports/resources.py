"""
Resources report: connection usage, storage, buffer cache and host load.
"""

import asyncio
from typing import Any, Iterable, Mapping, Optional

import psutil

from pgmonitor.fanout import gather_outcomes
from pgmonitor.formatting import as_int, format_bytes, percent
from pgmonitor.host import collect_host_metrics
from pgmonitor.logger import get_logger
from pgmonitor.models import (
    CacheStats,
    ConnectionUsage,
    HostMetrics,
    Resources,
    Storage,
    TableSize,
)

logger = get_logger(__name__)

TOP_TABLES_LIMIT = 10

CONNECTIONS_SQL = """
    SELECT
        count(*) AS total_connections,
        count(*) FILTER (WHERE state = 'active') AS active_connections,
        count(*) FILTER (WHERE state = 'idle') AS idle_connections,
        (SELECT setting::int FROM pg_settings WHERE name = 'max_connections') AS max_connections
    FROM pg_stat_activity
"""

DATABASE_SIZE_SQL = """
    SELECT pg_database_size(current_database()) AS db_size_bytes
"""

TOP_TABLES_SQL = f"""
    SELECT
        schemaname,
        relname AS table_name,
        pg_total_relation_size(relid) AS size_bytes
    FROM pg_stat_user_tables
    ORDER BY pg_total_relation_size(relid) DESC
    LIMIT {TOP_TABLES_LIMIT}
"""

CACHE_SQL = """
    SELECT
        sum(blks_hit) AS blks_hit,
        sum(blks_read) AS blks_read
    FROM pg_stat_database
"""


def build_connection_usage(snapshot: Mapping[str, Any]) -> ConnectionUsage:
    total = as_int(snapshot.get("total_connections"))
    return ConnectionUsage(
        total=total,
        active=as_int(snapshot.get("active_connections")),
        idle=as_int(snapshot.get("idle_connections")),
        max=as_int(snapshot.get("max_connections")),
        usage_percent=percent(total, snapshot.get("max_connections"), 1),
    )


def build_cache_stats(snapshot: Mapping[str, Any]) -> CacheStats:
    hits = as_int(snapshot.get("blks_hit"))
    reads = as_int(snapshot.get("blks_read"))
    return CacheStats(hit_ratio=percent(hits, hits + reads, 2))


def build_storage(snapshot: Mapping[str, Any], tables: Iterable[Mapping[str, Any]]) -> Storage:
    top_tables = [
        TableSize(
            schema_name=row.get("schemaname") or "",
            table=row.get("table_name") or "",
            size=format_bytes(row.get("size_bytes")),
            size_bytes=as_int(row.get("size_bytes")),
        )
        for row in tables
    ]
    top_tables.sort(key=lambda t: t.size_bytes, reverse=True)

    db_size = as_int(snapshot.get("db_size_bytes"))
    return Storage(
        total_size=format_bytes(db_size),
        total_size_bytes=db_size,
        top_tables=top_tables[:TOP_TABLES_LIMIT],
    )


def build_resources(
    snapshot: Mapping[str, Any],
    tables: Iterable[Mapping[str, Any]],
    host: Optional[HostMetrics] = None,
) -> Resources:
    """
    Derive the Resources record.

    snapshot keys: total_connections, active_connections, idle_connections,
    max_connections, db_size_bytes, blks_hit, blks_read. A missing or zero
    max_connections gives usagePercent "0.0"; no block activity gives
    hitRatio "0.00".
    """
    return Resources(
        connections=build_connection_usage(snapshot),
        storage=build_storage(snapshot, tables),
        cache=build_cache_stats(snapshot),
        cpu=host.cpu if host else None,
        memory=host.memory if host else None,
        disk=host.disk if host else None,
    )


async def collect_resources(source, disk_path: str = "/") -> Resources:
    connections, size, tables, cache, host = await gather_outcomes(
        source.fetchrow(CONNECTIONS_SQL),
        source.fetchrow(DATABASE_SIZE_SQL),
        source.fetch(TOP_TABLES_SQL),
        source.fetchrow(CACHE_SQL),
        asyncio.to_thread(collect_host_metrics, disk_path),
    )

    snapshot = {}
    for outcome in (connections, size, cache):
        snapshot.update(outcome.unwrap())

    if not host.ok:
        if not isinstance(host.error, (OSError, psutil.Error)):
            host.unwrap()
        logger.warning(f"Host metrics unavailable: {host.error}")

    return build_resources(snapshot, tables.unwrap(), host.value_or(None))
