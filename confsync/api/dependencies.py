"""FastAPI dependencies exposing the per-app configuration objects."""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from ..config_handle import ConfigHandle
from ..core.config import Settings
from ..services.config_service import ConfigService


def get_config_handle(request: Request) -> ConfigHandle:
    return request.app.state.config


def get_config_service(request: Request) -> ConfigService:
    return request.app.state.config_service


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def require_admin_token(
    x_admin_token: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings_dep),
) -> None:
    """Reject the call unless ``X-Admin-Token`` matches ``CONFSYNC_ADMIN_TOKEN``."""
    if settings.admin_token is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin configuration API is disabled",
        )
    expected = settings.admin_token.get_secret_value()
    if not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")
