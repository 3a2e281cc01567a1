"""Admin / Audit API router."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hostpanel.db.session import get_db
from hostpanel.schemas.schemas import AuditLogOut
from hostpanel.services.audit_service import audit_service
from hostpanel.services.cache_service import cache_service
from hostpanel.core.identity import CallerIdentity
from hostpanel.core.security import require_permission

logger = logging.getLogger("hostpanel")

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit")
async def get_audit_logs(
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    actor_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_permission("settings.view")),
):
    """Query audit logs."""
    result = audit_service.query_logs(db, actor_id, action, resource_type, page, page_size)
    return {
        "logs": [AuditLogOut.model_validate(log) for log in result["logs"]],
        "total": result["total"],
        "page": result["page"],
    }


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Readiness report for the database and Redis.

    Answers 503 while the database is unreachable. Liveness is ``GET /api/health``.
    """
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning("Readiness check: database unreachable: %s", e)

    body = {
        "database": "ok" if db_ok else "error",
        "redis": "ok" if cache_service.health_check() else "unavailable",
        "status": "healthy" if db_ok else "degraded",
    }
    return JSONResponse(status_code=200 if db_ok else 503, content=body)
