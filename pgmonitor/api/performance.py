"""
Performance API endpoints.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from pgmonitor.api.deps import get_datasource, get_settings
from pgmonitor.config import Settings
from pgmonitor.datasource import DataSource
from pgmonitor.errors import DataSourceError, ReportFailed
from pgmonitor.models import ClusterActivity, SlowQueries
from pgmonitor.reports import build_cluster_activity, collect_slow_queries, parse_days

router = APIRouter()


@router.get("/cluster-activity", response_model=ClusterActivity)
async def get_cluster_activity(
    settings: Annotated[Settings, Depends(get_settings)],
    days: Optional[str] = None,
) -> ClusterActivity:
    """
    Daily TPS/QPS series for the last ``days`` days (inclusive of today).

    There is no metrics history behind this endpoint; the values are
    generated and the response carries ``synthetic: true``.
    """
    days_back = parse_days(days, settings.DEFAULT_ACTIVITY_DAYS, settings.MAX_ACTIVITY_DAYS)
    return build_cluster_activity(days_back)


@router.get("/slow-queries", response_model=SlowQueries)
async def get_slow_queries(
    source: Annotated[DataSource, Depends(get_datasource)],
) -> SlowQueries:
    """Slowest statements by mean execution time (empty without pg_stat_statements)."""
    try:
        return await collect_slow_queries(source)
    except DataSourceError as e:
        raise ReportFailed("Failed to fetch slow queries", e) from e
