"""Price drop alert endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.search import AlertListResponse, AlertResponse
from app.services.alert_emitter import list_alerts, mark_read

router = APIRouter()


@router.get("/", response_model=AlertListResponse)
async def get_alerts(
    user_id: str = Query(..., description="Alert owner"),
    unread_only: bool = Query(False),
    limit: int = Query(50, le=200),
    db: AsyncSession = Depends(get_db),
):
    alerts = await list_alerts(db, user_id, unread_only=unread_only, limit=limit)
    return AlertListResponse(
        alerts=[AlertResponse.model_validate(a) for a in alerts],
        count=len(alerts),
    )


@router.post("/{alert_id}/read", response_model=AlertResponse)
async def read_alert(
    alert_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Mark an alert read. There is no way back to unread; once read, the
    product can alert again for the same search on its next drop.
    """
    alert = await mark_read(db, alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertResponse.model_validate(alert)
