"""
Performance report: cluster activity series and slow statements.

The cluster activity series is generated, not read from history: there is
no metrics store behind it. The values are a fixed base plus random
jitter and the response is marked synthetic.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Mapping, Optional

from pgmonitor.errors import DataSourceError
from pgmonitor.formatting import as_int, fixed, truncate
from pgmonitor.logger import get_logger
from pgmonitor.models import ActivityDatasets, ClusterActivity, SlowQueries, SlowQuery

logger = get_logger(__name__)

TPS_BASE, TPS_JITTER = 1500, 500
QPS_BASE, QPS_JITTER = 800, 300

SLOW_QUERY_MIN_MS = 10
SLOW_QUERY_LIMIT = 20
QUERY_TEXT_LENGTH = 100

SLOW_QUERIES_SQL = f"""
    SELECT
        queryid,
        LEFT(query, {QUERY_TEXT_LENGTH}) AS query_text,
        calls,
        mean_exec_time,
        total_exec_time
    FROM pg_stat_statements
    WHERE mean_exec_time > {SLOW_QUERY_MIN_MS}
    ORDER BY mean_exec_time DESC
    LIMIT {SLOW_QUERY_LIMIT}
"""


def parse_days(raw: Optional[str], default: int = 30, maximum: int = 365) -> int:
    """
    Parse the ?days= parameter.

    Missing, non-numeric and negative values fall back to the default;
    values above maximum are clamped.
    """
    if raw is None:
        return default
    try:
        days = int(str(raw).strip())
    except ValueError:
        logger.warning(f"Ignoring malformed days parameter: {raw!r}")
        return default
    if days < 0:
        return default
    return min(days, maximum)


def build_cluster_activity(
    days: int,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> ClusterActivity:
    """One point per calendar day from now - days to now, inclusive."""
    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()

    labels: List[str] = []
    tps: List[int] = []
    qps: List[int] = []
    for offset in range(days, -1, -1):
        day = now - timedelta(days=offset)
        labels.append(day.strftime("%b %d"))
        tps.append(TPS_BASE + rng.randint(0, TPS_JITTER))
        qps.append(QPS_BASE + rng.randint(0, QPS_JITTER))

    return ClusterActivity(labels=labels, datasets=ActivityDatasets(qps=qps, tps=tps))


def build_slow_queries(rows: Iterable[Mapping[str, Any]]) -> SlowQueries:
    slow = []
    for row in rows:
        query_id = row.get("queryid")
        slow.append(SlowQuery(
            query_id=str(query_id) if query_id is not None else None,
            query=truncate(row.get("query_text"), QUERY_TEXT_LENGTH),
            calls=as_int(row.get("calls")),
            avg_time=fixed(row.get("mean_exec_time"), 2),
            total_time=fixed(row.get("total_exec_time"), 2),
        ))
    return SlowQueries(slow_queries=slow[:SLOW_QUERY_LIMIT])


async def collect_slow_queries(source) -> SlowQueries:
    """Slow statements from pg_stat_statements; empty when it is unavailable."""
    try:
        rows = await source.fetch(SLOW_QUERIES_SQL)
    except DataSourceError as e:
        logger.warning(f"Query statistics unavailable, returning no slow queries: {e}")
        rows = []
    return build_slow_queries(rows)
