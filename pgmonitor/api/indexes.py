"""
Indexes API endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from pgmonitor.api.deps import get_datasource
from pgmonitor.datasource import DataSource
from pgmonitor.errors import DataSourceError, ReportFailed
from pgmonitor.models import IndexHitRatios, Indexes
from pgmonitor.reports import collect_hit_ratios, collect_indexes

router = APIRouter()


@router.get("", response_model=Indexes)
async def get_indexes(
    source: Annotated[DataSource, Depends(get_datasource)],
) -> Indexes:
    """
    Unused, most used and potentially missing indexes plus per-table index
    size. Sections whose query failed are empty and listed in ``failed``.
    """
    try:
        return await collect_indexes(source)
    except DataSourceError as e:
        raise ReportFailed("Failed to fetch index metrics", e) from e


@router.get("/hit-ratio", response_model=IndexHitRatios)
async def get_index_hit_ratio(
    source: Annotated[DataSource, Depends(get_datasource)],
) -> IndexHitRatios:
    """Tables served mostly by sequential scans."""
    try:
        return await collect_hit_ratios(source)
    except DataSourceError as e:
        raise ReportFailed("Failed to fetch index hit ratios", e) from e
