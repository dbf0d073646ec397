from fastapi import APIRouter, Depends
from typing import List

from workbench.core.storage import Storage, get_storage
from workbench.models import UsageEntry

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.get("", response_model=List[UsageEntry])
async def list_usage(storage: Storage = Depends(get_storage)):
    """Daily usage per API key, newest day first."""
    return storage.list_usage()
