"""
Reliability API endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from pgmonitor.api.deps import get_datasource
from pgmonitor.datasource import DataSource
from pgmonitor.errors import DataSourceError, ReportFailed
from pgmonitor.models import Reliability
from pgmonitor.reports import collect_reliability

router = APIRouter()


@router.get("", response_model=Reliability)
async def get_reliability(
    source: Annotated[DataSource, Depends(get_datasource)],
) -> Reliability:
    try:
        return await collect_reliability(source)
    except DataSourceError as e:
        raise ReportFailed("Failed to fetch reliability metrics", e) from e
