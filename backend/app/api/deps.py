"""Shared endpoint dependencies"""
import secrets
from typing import Optional

from fastapi import Header, HTTPException

from app.core.config import settings


async def verify_webhook_token(authorization: Optional[str] = Header(None)):
    """Require `Authorization: Bearer <WEBHOOK_TOKEN>` when a token is configured."""
    expected = settings.require_webhook_token()
    if not expected:
        return

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(token, expected):
        raise HTTPException(status_code=401, detail="Invalid webhook credentials")
