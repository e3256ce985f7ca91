"""Operational endpoints: invariant health, healing, build info."""

import os
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from zapdesk.database import get_db
from zapdesk.services.alert_service import alert_conversations_healed
from zapdesk.services.health_service import check_and_heal_conversations, get_system_health

router = APIRouter(prefix="/admin", tags=["admin"])


class VersionResponse(BaseModel):
    version: str
    git_commit: Optional[str] = None
    build_time: Optional[str] = None


def require_admin_token(provided: Optional[str]) -> None:
    expected = os.environ.get("ADMIN_TOKEN")
    if not expected:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="ADMIN_TOKEN not configured")
    if not provided or provided != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


@router.get("/health")
async def system_health(db: Session = Depends(get_db)):
    """Conversation counts per status and agents online."""
    return get_system_health(db)


@router.post("/heal")
async def heal_system(
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    """Check and heal status/assignment invariant violations."""
    require_admin_token(x_admin_token)
    result = check_and_heal_conversations(db)
    if result["healed_count"]:
        alert_conversations_healed(result["details"])
    return result


@router.get("/version", response_model=VersionResponse)
async def get_version():
    """Return build metadata for diagnostics."""
    return VersionResponse(
        version=os.environ.get("APP_VERSION", "unknown"),
        git_commit=os.environ.get("GIT_COMMIT"),
        build_time=os.environ.get("BUILD_TIME"),
    )
