"""
Operational endpoints: manual campaign runs, system events, scheduler health.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Security
from sqlalchemy.orm import Session

from app.api.auth import get_ops_auth
from app.core.config import settings
from app.db.deps import get_db
from app.schemas.ops import BroadcastRequest, SystemEventResponse
from app.services.campaigns import run_template_broadcast
from app.services.location_reminders import run_location_reminders
from app.services.messaging.whatsapp_templates import get_all_templates
from app.services.scheduler import get_scheduler_health
from app.services.support_reminders import run_support_reminders
from app.services.system_event_service import cleanup_old_events, list_events

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/campaigns/location/run")
async def run_location_campaign(
    db: Session = Depends(get_db),
    _auth: bool = Security(get_ops_auth),
):
    """Run one location-reminder tick now (only vendors opening this minute)."""
    return await run_location_reminders(db)


@router.post("/campaigns/support/run")
async def run_support_campaign(
    db: Session = Depends(get_db),
    _auth: bool = Security(get_ops_auth),
):
    return await run_support_reminders(db)


@router.post("/campaigns/broadcast")
async def run_broadcast(
    body: BroadcastRequest,
    db: Session = Depends(get_db),
    _auth: bool = Security(get_ops_auth),
):
    """
    Send a template to every consenting vendor, once per local day per dispatch type.
    The template must be registered or configured as a campaign template.
    """
    allowed = set(get_all_templates()) | {
        t for t in (settings.announcement_template, settings.weekly_campaign_template) if t
    }
    if body.template_name not in allowed:
        raise HTTPException(status_code=400, detail=f"Unknown template '{body.template_name}'")
    return await run_template_broadcast(
        db, body.template_name, body.dispatch_type, body_params=body.body_params
    )


@router.get("/events", response_model=list[SystemEventResponse])
def get_system_events(
    limit: int = Query(100, ge=1, le=1000),
    level: str | None = None,
    event_type: str | None = None,
    db: Session = Depends(get_db),
    _auth: bool = Security(get_ops_auth),
):
    """Most recent SystemEvents; event_type matches as a prefix (e.g. "campaign.")."""
    return list_events(db, limit=limit, level=level, event_type=event_type)


@router.post("/events/retention-cleanup")
def cleanup_system_events_retention(
    retention_days: int = Query(90, ge=1),
    db: Session = Depends(get_db),
    _auth: bool = Security(get_ops_auth),
):
    """
    Delete SystemEvents older than retention_days (default 90).
    Admin-only. Use for periodic retention or manual cleanup.
    """
    deleted = cleanup_old_events(db, retention_days=retention_days)
    return {"deleted": deleted, "retention_days": retention_days}


@router.get("/scheduler/health")
def scheduler_health(_auth: bool = Security(get_ops_auth)):
    return get_scheduler_health()
