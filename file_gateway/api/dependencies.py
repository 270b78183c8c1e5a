"""
FastAPI dependency injection.

Dependencies provide the settings and the gateway to route handlers.
Both are built once in create_app() and parked on app.state; these
providers only hand out those shared instances, so no request
constructs its own storage client.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..config.settings import Settings
from ..core.files.gateway import FileGateway


def get_app_settings(request: Request) -> Settings:
    """Provide the settings the application was created with."""
    return request.app.state.settings


def get_file_gateway(request: Request) -> FileGateway:
    """Provide the process-wide file gateway."""
    return request.app.state.gateway


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
FileGatewayDep = Annotated[FileGateway, Depends(get_file_gateway)]
