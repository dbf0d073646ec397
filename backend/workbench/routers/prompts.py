from fastapi import APIRouter, Depends, HTTPException, Response, status
from typing import List

from workbench.core.storage import Storage, get_storage
from workbench.models import SystemPrompt
from workbench.schemas.prompt import PromptCreate

router = APIRouter(prefix="/api/prompts", tags=["prompts"])


@router.get("", response_model=List[SystemPrompt])
async def list_prompts(storage: Storage = Depends(get_storage)):
    return storage.list_prompts()


@router.post("", response_model=SystemPrompt, status_code=status.HTTP_201_CREATED)
async def create_prompt(payload: PromptCreate, storage: Storage = Depends(get_storage)):
    return storage.create_prompt(name=payload.name, content=payload.content)


@router.put("/{prompt_id}", response_model=SystemPrompt)
async def update_prompt(prompt_id: int, payload: PromptCreate, storage: Storage = Depends(get_storage)):
    prompt = storage.update_prompt(prompt_id, name=payload.name, content=payload.content)
    if not prompt:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return prompt


@router.delete("/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_prompt(prompt_id: int, storage: Storage = Depends(get_storage)):
    if not storage.delete_prompt(prompt_id):
        raise HTTPException(status_code=404, detail="Prompt not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
