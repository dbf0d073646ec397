from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
import logging

from workbench.core.config import Settings, get_app_settings
from workbench.core.storage import Storage, get_storage
from workbench.models import Namespace
from workbench.providers import ProviderError
from workbench.routers.configs import get_namespace
from workbench.schemas.chat import ChatRequest
from workbench.services.chat_service import ChatService, ConfigurationMissingError

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat")
async def chat(
    payload: ChatRequest,
    namespace: Namespace = Depends(get_namespace),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    service = ChatService(storage, settings)
    try:
        response = await service.chat(namespace, payload)
    except ConfigurationMissingError:
        raise HTTPException(status_code=400, detail="API configuration not found")
    except ProviderError as e:
        logger.error(f"Chat request failed ({e.status_code}): {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.to_json())

    # Provider body is forwarded untouched
    return JSONResponse(status_code=200, content=response.body)
