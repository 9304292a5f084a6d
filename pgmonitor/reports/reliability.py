"""
Reliability report: replication, conflicts, WAL volume and commit ratio.
"""

from decimal import Decimal
from typing import Any, Iterable, List, Mapping

from pgmonitor.errors import DataSourceError
from pgmonitor.fanout import gather_outcomes
from pgmonitor.formatting import as_float, as_int, format_gigabytes, percent
from pgmonitor.logger import get_logger
from pgmonitor.models import (
    Conflicts,
    Reliability,
    ReplicaStatus,
    Replication,
    TransactionStats,
    WalStats,
)

logger = get_logger(__name__)

REPLICATION_SQL = """
    SELECT
        client_addr,
        state,
        sync_state,
        COALESCE(EXTRACT(EPOCH FROM replay_lag), 0) AS lag_seconds
    FROM pg_stat_replication
"""

CONFLICTS_SQL = """
    SELECT
        sum(deadlocks) AS deadlocks,
        sum(conflicts) AS conflicts
    FROM pg_stat_database
    WHERE datname = current_database()
"""

WAL_SQL = """
    SELECT pg_wal_lsn_diff(pg_current_wal_lsn(), '0/0') AS wal_bytes
"""

TRANSACTIONS_SQL = """
    SELECT
        sum(xact_commit) AS commits,
        sum(xact_rollback) AS rollbacks
    FROM pg_stat_database
    WHERE datname = current_database()
"""


def build_replication(rows: Iterable[Mapping[str, Any]]) -> Replication:
    """Replicas are healthy only if there is at least one and all stream."""
    replicas: List[ReplicaStatus] = []
    for row in rows:
        client = row.get("client_addr")
        replicas.append(ReplicaStatus(
            client=str(client) if client is not None else None,
            state=row.get("state"),
            sync_state=row.get("sync_state"),
            lag_seconds=as_float(row.get("lag_seconds")),
        ))
    healthy = bool(replicas) and all(r.state == "streaming" for r in replicas)
    return Replication(replicas=replicas, count=len(replicas), healthy=healthy)


def build_transactions(snapshot: Mapping[str, Any]) -> TransactionStats:
    commits = as_int(snapshot.get("commits"))
    rollbacks = as_int(snapshot.get("rollbacks"))
    return TransactionStats(
        commits=commits,
        rollbacks=rollbacks,
        # No activity at all reads as a perfect commit ratio.
        commit_ratio=percent(commits, commits + rollbacks, 2, default=Decimal(100)),
    )


def build_reliability(snapshot: Mapping[str, Any], replicas: Iterable[Mapping[str, Any]]) -> Reliability:
    """
    Derive the Reliability record.

    snapshot keys: deadlocks, conflicts, wal_bytes, commits, rollbacks.
    """
    wal_bytes = as_int(snapshot.get("wal_bytes"))
    return Reliability(
        replication=build_replication(replicas),
        conflicts=Conflicts(
            deadlocks=as_int(snapshot.get("deadlocks")),
            conflicts=as_int(snapshot.get("conflicts")),
        ),
        wal=WalStats(bytes_generated=wal_bytes, bytes_formatted=format_gigabytes(wal_bytes)),
        transactions=build_transactions(snapshot),
    )


async def collect_reliability(source) -> Reliability:
    replication, conflicts, wal, transactions = await gather_outcomes(
        source.fetch(REPLICATION_SQL),
        source.fetchrow(CONFLICTS_SQL),
        source.fetchrow(WAL_SQL),
        source.fetchrow(TRANSACTIONS_SQL),
    )

    snapshot = {}
    for outcome in (conflicts, wal, transactions):
        snapshot.update(outcome.unwrap())

    replicas = []
    if replication.ok:
        replicas = replication.value
    elif isinstance(replication.error, DataSourceError):
        logger.warning(f"Replication status unavailable: {replication.error}")
    else:
        replication.unwrap()

    return build_reliability(snapshot, replicas)
