"""Time entry endpoints."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..core.access import Actor
from ..core.auth import require_auth
from ..database import get_db
from ..schemas.time_entry import ReassignRequest, TimeEntryCreate, TimeEntryResponse, TimeEntryUpdate
from ..services import TimeEntryService
from ..services.time_entry_service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/api/time-entries", tags=["Time entries"])


@router.post("", response_model=TimeEntryResponse, status_code=201)
def create_entry(body: TimeEntryCreate, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return TimeEntryService(db).create_entry(actor, body)


@router.get("", response_model=List[TimeEntryResponse], summary="List visible time entries")
def list_entries(
    project_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None, description="Entries starting at or after"),
    end: Optional[datetime] = Query(None, description="Entries starting before"),
    skip: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return TimeEntryService(db).list_entries(
        actor, project_id=project_id, user_id=user_id, start=start, end=end, skip=skip, limit=limit
    )


@router.get("/{entry_id}", response_model=TimeEntryResponse)
def get_entry(entry_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return TimeEntryService(db).get_entry(actor, entry_id)


@router.put("/{entry_id}", response_model=TimeEntryResponse)
def update_entry(
    entry_id: str,
    body: TimeEntryUpdate,
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return TimeEntryService(db).update_entry(actor, entry_id, body)


@router.put("/{entry_id}/owner", response_model=TimeEntryResponse, summary="Reassign to another user")
def reassign_entry(
    entry_id: str,
    body: ReassignRequest,
    actor: Actor = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return TimeEntryService(db).reassign_entry(actor, entry_id, body.user_id)


@router.delete("/{entry_id}", status_code=204)
def delete_entry(entry_id: str, actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    TimeEntryService(db).delete_entry(actor, entry_id)
    return Response(status_code=204)
