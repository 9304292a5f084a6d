"""
Resources API endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from pgmonitor.api.deps import get_datasource, get_settings
from pgmonitor.config import Settings
from pgmonitor.datasource import DataSource
from pgmonitor.errors import DataSourceError, ReportFailed
from pgmonitor.models import Resources
from pgmonitor.reports import collect_resources

router = APIRouter()


@router.get("", response_model=Resources)
async def get_resources(
    source: Annotated[DataSource, Depends(get_datasource)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Resources:
    """Connection usage, storage, cache hit ratio and API host load."""
    try:
        return await collect_resources(source, disk_path=settings.HOST_DISK_PATH)
    except DataSourceError as e:
        raise ReportFailed("Failed to fetch resource metrics", e) from e
