# app/api/v1/deps.py
"""
FastAPI dependencies for the v1 API layer.

``get_current_user`` extracts and validates a Bearer JWT issued by the auth
service and returns who is calling and which business they act for.
``get_invoice_service`` wires an InvoiceService to the request's session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, Header, status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.core.db import get_db
from app.domain.services.invoice_service import InvoiceService

logger = logging.getLogger("api.v1.deps")


@dataclass(frozen=True)
class CurrentUser:
    user_id: UUID
    business_id: UUID


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: str | None = Header(None),
) -> CurrentUser:
    """
    FastAPI dependency that validates the ``Authorization: Bearer <jwt>`` header.

    The token must carry ``sub`` (user id) and ``business_id`` claims.
    Raises HTTP 401 if the token is missing, invalid, expired or incomplete.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized(
            "Missing or invalid Authorization header. Expected: Bearer <token>"
        )

    token = authorization[7:]  # strip "Bearer "

    try:
        payload = jwt.decode(
            token,
            settings.USER_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as exc:
        logger.debug("JWT decode failed: %s", exc)
        raise _unauthorized("Invalid or expired token")

    try:
        return CurrentUser(
            user_id=UUID(str(payload["sub"])),
            business_id=UUID(str(payload["business_id"])),
        )
    except (KeyError, ValueError):
        raise _unauthorized("Token missing subject or business")


async def get_invoice_service(db: AsyncSession = Depends(get_db)) -> InvoiceService:
    return InvoiceService(db)
