from fastapi import APIRouter, Depends, Response, status
from typing import List

from workbench.core.storage import Storage, get_storage
from workbench.models import ChatMessage
from workbench.schemas.chat import MessageCreate

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("", response_model=List[ChatMessage])
async def list_messages(storage: Storage = Depends(get_storage)):
    return storage.list_messages()


@router.post("", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
async def create_message(payload: MessageCreate, storage: Storage = Depends(get_storage)):
    return storage.create_message(role=payload.role, content=payload.content)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_messages(storage: Storage = Depends(get_storage)):
    storage.clear_messages()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
