from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status
from typing import List

from workbench.core.config import Settings, get_app_settings
from workbench.core.storage import Storage, get_storage
from workbench.models import Note
from workbench.schemas.note import NoteCreate, NoteUpdate
from workbench.services.chat_service import ChatService
from workbench.services.note_service import NoteService

router = APIRouter(prefix="/api/notes", tags=["notes"])


def schedule_summary(
    background_tasks: BackgroundTasks, note: Note, storage: Storage, settings: Settings
) -> None:
    if not settings.NOTE_SUMMARY_ENABLED or not note.content.strip() or note.summary:
        return
    service = NoteService(storage, ChatService(storage, settings))
    background_tasks.add_task(service.summarize_in_background, note.id)


@router.get("", response_model=List[Note])
async def list_notes(storage: Storage = Depends(get_storage)):
    return storage.list_notes()


@router.post("", response_model=Note, status_code=status.HTTP_201_CREATED)
async def create_note(
    payload: NoteCreate,
    background_tasks: BackgroundTasks,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    note = storage.create_note(content=payload.content, title=payload.title)
    schedule_summary(background_tasks, note, storage, settings)
    return note


@router.put("/{note_id}", response_model=Note)
async def update_note(
    note_id: int,
    payload: NoteUpdate,
    background_tasks: BackgroundTasks,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    note = storage.update_note(note_id, content=payload.content, title=payload.title)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    schedule_summary(background_tasks, note, storage, settings)
    return note


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: int, storage: Storage = Depends(get_storage)):
    if not storage.delete_note(note_id):
        raise HTTPException(status_code=404, detail="Note not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_notes(storage: Storage = Depends(get_storage)):
    storage.clear_notes()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
