"""
Connections API endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from pgmonitor.api.deps import get_datasource
from pgmonitor.datasource import DataSource
from pgmonitor.errors import DataSourceError, ReportFailed
from pgmonitor.models import Connections
from pgmonitor.reports import collect_connections

router = APIRouter()


@router.get("", response_model=Connections)
async def get_connections(
    source: Annotated[DataSource, Depends(get_datasource)],
) -> Connections:
    """Open client backends, longest running first."""
    try:
        return await collect_connections(source)
    except DataSourceError as e:
        raise ReportFailed("Failed to fetch connections", e) from e
