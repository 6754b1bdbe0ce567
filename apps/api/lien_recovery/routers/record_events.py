"""Calendar, notification and hearing endpoints for records."""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lien_recovery.core.deps import get_current_actor, get_db, require_roles
from lien_recovery.db.enums import Role
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.events import HearingEvent, Notification, OverdueEvent, ScheduledEvent
from lien_recovery.services import event_service

router = APIRouter()


@router.get("/scheduled-events", response_model=list[ScheduledEvent])
def get_scheduled_events(
    start_date: date | None = None,
    end_date: date | None = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Latest open follow-up per visible record, soonest first."""
    return event_service.get_scheduled_events(db, actor, start_date, end_date)


@router.get("/notifications", response_model=list[Notification])
def get_notifications(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return event_service.get_notifications(db, actor)


@router.get("/overdue-events", response_model=list[OverdueEvent])
def get_overdue_events(
    actor: Actor = Depends(require_roles([Role.ADMIN, Role.SUPER_ADMIN])),
    db: Session = Depends(get_db),
):
    """Org-wide sweep of missed follow-ups."""
    return event_service.get_overdue_events(db)


@router.get("/hearing-events", response_model=list[HearingEvent])
def get_hearing_events(
    start_date: date | None = None,
    end_date: date | None = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return event_service.get_hearing_events(db, start_date, end_date, actor=actor)
