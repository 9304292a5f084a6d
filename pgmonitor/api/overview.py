"""
Overview API endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from pgmonitor.api.deps import get_datasource
from pgmonitor.datasource import DataSource
from pgmonitor.errors import DataSourceError, ReportFailed
from pgmonitor.models import Overview
from pgmonitor.reports import collect_overview

router = APIRouter()


@router.get("", response_model=Overview)
async def get_overview(
    source: Annotated[DataSource, Depends(get_datasource)],
) -> Overview:
    """
    Uptime, load proxies, alerts and the select/insert/update/delete mix.

    currentQps is a placeholder derived from active connections, not a
    measured rate; it is listed under ``synthetic``.
    """
    try:
        return await collect_overview(source)
    except DataSourceError as e:
        raise ReportFailed("Failed to fetch overview metrics", e) from e
