from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from typing import List, Optional
import logging

from workbench.core.config import Settings, get_app_settings
from workbench.core.storage import Storage, get_storage
from workbench.models import ApiConfiguration, Namespace
from workbench.providers import ProviderError
from workbench.schemas.api_config import ApiConfigurationIn, ApiConfigurationList, ConnectionTestResult
from workbench.services.chat_service import ChatService, ConfigurationMissingError

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api", tags=["configs"])


def get_namespace(google: Optional[str] = None) -> Namespace:
    """?google=true selects the Google namespace, anything else the generic one."""
    return Namespace.from_flag(google == "true")


@router.get("/config", response_model=Optional[ApiConfiguration])
async def get_active_config(
    namespace: Namespace = Depends(get_namespace),
    storage: Storage = Depends(get_storage),
):
    return storage.get_active_config(namespace)


@router.get("/configs", response_model=ApiConfigurationList)
async def list_configs(
    namespace: Namespace = Depends(get_namespace),
    storage: Storage = Depends(get_storage),
):
    active = storage.get_active_config(namespace)
    return ApiConfigurationList(
        configs=storage.list_configs(namespace),
        active_id=active.id if active else None,
    )


@router.post("/config", response_model=ApiConfiguration)
async def save_config(
    payload: ApiConfigurationIn,
    namespace: Namespace = Depends(get_namespace),
    storage: Storage = Depends(get_storage),
):
    try:
        data = payload.for_namespace(namespace)
    except ValueError as e:
        logger.warning(f"Rejected {namespace.value} configuration: {e}")
        raise HTTPException(status_code=400, detail="Invalid configuration data")
    config = storage.save_config(data, namespace)
    logger.info(f"Saved {namespace.value} configuration {config.id} ({config.name}), now active")
    return config


@router.post("/configs/{config_id}/activate", response_model=ApiConfiguration)
async def activate_config(
    config_id: int,
    namespace: Namespace = Depends(get_namespace),
    storage: Storage = Depends(get_storage),
):
    config = storage.set_active_config(config_id, namespace)
    if not config:
        raise HTTPException(status_code=404, detail="Configuration not found")
    return config


@router.delete("/configs/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_config(
    config_id: int,
    namespace: Namespace = Depends(get_namespace),
    storage: Storage = Depends(get_storage),
):
    if not storage.delete_config(config_id, namespace):
        raise HTTPException(status_code=404, detail="Configuration not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/config/test", response_model=ConnectionTestResult)
async def test_config(
    namespace: Namespace = Depends(get_namespace),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    service = ChatService(storage, settings)
    try:
        response = await service.test_connection(namespace)
    except ConfigurationMissingError:
        raise HTTPException(status_code=400, detail="API configuration not found")
    except ProviderError as e:
        logger.warning(f"Connection test failed ({e.status_code}): {e.message}")
        result = ConnectionTestResult(success=False, message=e.message, details=e.details)
        return JSONResponse(status_code=e.status_code, content=result.model_dump(exclude_none=True))

    return ConnectionTestResult(success=True, message="API connection successful", response=response.body)
