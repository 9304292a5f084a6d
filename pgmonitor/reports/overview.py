"""
Overview report: uptime, load proxies, alerts and the operation mix.
"""

from decimal import Decimal
from typing import Any, Mapping

from pgmonitor.errors import DataSourceError
from pgmonitor.fanout import gather_outcomes
from pgmonitor.formatting import as_decimal, as_int, fixed, ratio, split_percentages
from pgmonitor.logger import get_logger
from pgmonitor.models import (
    OperationBreakdown,
    OperationShare,
    Overview,
    OverviewAlerts,
    OverviewTotals,
    Uptime,
)

logger = get_logger(__name__)

# Used when pg_stat_statements is unavailable or has no entries.
DEFAULT_AVG_QUERY_TIME_MS = Decimal("45.2")

CPU_ALERT_THRESHOLD = 80
SLOW_QUERY_ALERT_MS = 100

# currentQps placeholder: not a measured rate.
SYNTHETIC_QPS_PER_CONNECTION = 100
SYNTHETIC_QPS_OFFSET = 1847

UPTIME_SQL = """
    SELECT EXTRACT(EPOCH FROM (now() - pg_postmaster_start_time())) AS uptime_seconds
"""

TOTALS_SQL = """
    SELECT
        sum(xact_commit + xact_rollback) AS total_transactions,
        sum(tup_returned + tup_fetched) AS total_tuples
    FROM pg_stat_database
    WHERE datname = current_database()
"""

AVG_QUERY_TIME_SQL = """
    SELECT avg(mean_exec_time) AS avg_query_time
    FROM pg_stat_statements
    WHERE queryid IS NOT NULL
"""

ACTIVE_CONNECTIONS_SQL = """
    SELECT count(*) AS active_connections
    FROM pg_stat_activity
    WHERE state = 'active'
"""

CPU_LOAD_SQL = """
    SELECT
        count(*) FILTER (WHERE state <> 'idle') AS non_idle_connections,
        (SELECT setting::int FROM pg_settings WHERE name = 'max_connections') AS max_connections
    FROM pg_stat_activity
"""

OPERATIONS_SQL = """
    SELECT
        sum(tup_returned + tup_fetched) AS selects,
        sum(tup_inserted) AS inserts,
        sum(tup_updated) AS updates,
        sum(tup_deleted) AS deletes
    FROM pg_stat_database
    WHERE datname = current_database()
"""


def build_uptime(seconds: Any) -> Uptime:
    total = max(as_int(seconds), 0)
    days = total // 86400
    hours = (total % 86400) // 3600
    return Uptime(days=days, hours=hours, formatted=f"{days}d {hours}h")


def build_operations(snapshot: Mapping[str, Any]) -> OperationBreakdown:
    counts = {
        "select": as_int(snapshot.get("selects")),
        "insert": as_int(snapshot.get("inserts")),
        "update": as_int(snapshot.get("updates")),
        "delete": as_int(snapshot.get("deletes")),
    }
    shares = split_percentages(counts)
    return OperationBreakdown(**{
        name: OperationShare(count=str(count), percentage=shares[name])
        for name, count in counts.items()
    })


def build_overview(snapshot: Mapping[str, Any]) -> Overview:
    """
    Derive the Overview record from a flat snapshot.

    Expected keys: uptime_seconds, total_transactions, total_tuples,
    avg_query_time, active_connections, non_idle_connections,
    max_connections, selects, inserts, updates, deletes. Missing counters
    count as zero; a missing max_connections makes cpuLoad 0; a missing
    avg_query_time falls back to DEFAULT_AVG_QUERY_TIME_MS.
    """
    active = as_int(snapshot.get("active_connections"))

    avg_query_time = as_decimal(snapshot.get("avg_query_time"))
    if avg_query_time is None:
        avg_query_time = DEFAULT_AVG_QUERY_TIME_MS

    cpu_load = ratio(snapshot.get("non_idle_connections"), snapshot.get("max_connections"))
    if cpu_load is None:
        cpu_load = Decimal(0)

    return Overview(
        uptime=build_uptime(snapshot.get("uptime_seconds")),
        current_qps=active * SYNTHETIC_QPS_PER_CONNECTION + SYNTHETIC_QPS_OFFSET,
        avg_query_time=fixed(avg_query_time, 1),
        cpu_load=fixed(cpu_load, 1),
        alerts=OverviewAlerts(
            cpu_exceeded=cpu_load > CPU_ALERT_THRESHOLD,
            slow_queries=avg_query_time > SLOW_QUERY_ALERT_MS,
        ),
        operations=build_operations(snapshot),
        totals=OverviewTotals(
            transactions=as_int(snapshot.get("total_transactions")),
            tuples=as_int(snapshot.get("total_tuples")),
        ),
        synthetic=["currentQps"],
    )


async def collect_overview(source) -> Overview:
    """Run the Overview sub-queries concurrently and build the report.

    Only the mean-query-time query may fail; any other failure is raised.
    """
    uptime, totals, avg_time, active, cpu, operations = await gather_outcomes(
        source.fetchrow(UPTIME_SQL),
        source.fetchrow(TOTALS_SQL),
        source.fetchrow(AVG_QUERY_TIME_SQL),
        source.fetchrow(ACTIVE_CONNECTIONS_SQL),
        source.fetchrow(CPU_LOAD_SQL),
        source.fetchrow(OPERATIONS_SQL),
    )

    snapshot = {}
    for outcome in (uptime, totals, active, cpu, operations):
        snapshot.update(outcome.unwrap())

    if avg_time.ok:
        snapshot.update(avg_time.value)
    elif isinstance(avg_time.error, DataSourceError):
        logger.warning(f"Query statistics unavailable, using default avg query time: {avg_time.error}")
    else:
        avg_time.unwrap()

    return build_overview(snapshot)
