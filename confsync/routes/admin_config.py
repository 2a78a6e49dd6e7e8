"""Admin configuration routes."""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..api.dependencies import get_config_handle, get_config_service, require_admin_token
from ..config_handle import ConfigHandle, redact
from ..core.exceptions import DomainException, StoreWriteFailure
from ..services.config_service import ConfigService

router = APIRouter(
    prefix="/api/admin/config",
    tags=["admin-config"],
    dependencies=[Depends(require_admin_token)],
)


class ConfigResponse(BaseModel):
    version: str
    setup: bool
    config: Dict[str, Any]


class ConfigUpdatePayload(BaseModel):
    values: Dict[str, Any] = Field(..., min_length=1, description="Dotted key -> new value")
    propagate: bool = Field(True, description="Notify the other nodes after saving")


def _response(config: ConfigHandle) -> ConfigResponse:
    return ConfigResponse(
        version=config.version,
        setup=config.snapshot.setup,
        config=redact(config.as_dict()),
    )


@router.get("", response_model=ConfigResponse)
async def get_config(config: ConfigHandle = Depends(get_config_handle)) -> ConfigResponse:
    return _response(config)


@router.patch("", response_model=ConfigResponse)
async def update_config(
    payload: ConfigUpdatePayload,
    config: ConfigHandle = Depends(get_config_handle),
    service: ConfigService = Depends(get_config_service),
) -> ConfigResponse:
    previous = config.snapshot
    try:
        for key, value in payload.values.items():
            config.set(key, value)
    except DomainException as exc:
        config.replace(previous)
        raise exc.to_http_exception() from exc

    keys = list(payload.values)
    saved = await service.save_to_db(keys, propagate=payload.propagate)
    if not saved:
        config.revert(previous, keys)
        raise StoreWriteFailure(None, "see server logs").to_http_exception()
    return _response(config)
