"""
Request dependencies.
"""

from fastapi import Request

from pgmonitor.config import Settings
from pgmonitor.datasource import DataSource


def get_datasource(request: Request) -> DataSource:
    """The data source created by the application factory."""
    return request.app.state.datasource


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
