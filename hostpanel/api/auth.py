"""Auth API router: login and current caller."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from hostpanel.db.session import get_db
from hostpanel.schemas.schemas import LoginRequest, TokenResponse, CallerOut
from hostpanel.services.auth_service import auth_service
from hostpanel.services.audit_service import audit_service
from hostpanel.core.config import settings
from hostpanel.core.identity import CallerIdentity
from hostpanel.core.rate_limiter import limiter
from hostpanel.core.security import get_current_caller

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Authenticate and return a JWT access token."""
    result = auth_service.authenticate(db, body.email, body.password)
    audit_service.log_from_request(
        db, request,
        actor_id=result["user"]["id"],
        actor_email=result["user"]["email"],
        action="user.login",
        resource_type="user",
        resource_id=str(result["user"]["id"]),
    )
    return result


@router.get("/me", response_model=CallerOut)
async def get_me(caller: CallerIdentity = Depends(get_current_caller)):
    """Resolved identity and permission set of the current caller."""
    return caller.to_dict()
