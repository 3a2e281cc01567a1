"""Auth service: password login and account creation."""

from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from hostpanel.models.user import User, UserRoleEnum, UserStatusEnum
from hostpanel.core.security import hash_password, verify_password, create_access_token
from hostpanel.core.exceptions import (
    AuthenticationError, PermissionDeniedError, ResourceConflictError, ResourceNotFoundError,
)
from hostpanel.db.session import retry_on_transient


class AuthService:
    """Handles authentication and user accounts."""

    @staticmethod
    @retry_on_transient
    def authenticate(db: Session, email: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return a JWT access token.

        Raises:
            AuthenticationError: If credentials are invalid.
            PermissionDeniedError: If the account is not active.
        """
        user = db.query(User).filter(User.email == email.lower().strip()).first()
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid email or password")

        if user.status != UserStatusEnum.active:
            raise PermissionDeniedError("Account is not active")

        token = create_access_token({
            "sub": str(user.id),
            "uuid": user.uuid,
            "email": user.email,
            "role": user.role.value,
        })
        return {
            "access_token": token,
            "token_type": "bearer",
            "user": {
                "id": user.id,
                "uuid": user.uuid,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "role": user.role.value,
                "role_id": user.role_id,
            },
        }

    @staticmethod
    @retry_on_transient
    def _create_user_tx(
        db: Session,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: UserRoleEnum = UserRoleEnum.user,
        role_id: Optional[int] = None,
    ) -> int:
        email = email.lower().strip()
        if db.query(User.id).filter(User.email == email).first():
            raise ResourceConflictError(f"User with email {email} already exists")

        user = User(
            email=email,
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            role_id=role_id,
            status=UserStatusEnum.active,
        )
        db.add(user)
        db.flush()
        user_id = user.id
        db.commit()
        return user_id

    @staticmethod
    def create_user(
        db: Session,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: UserRoleEnum = UserRoleEnum.user,
        role_id: Optional[int] = None,
    ) -> User:
        """Create a new user."""
        user_id = AuthService._create_user_tx(db, email, password, first_name, last_name, role, role_id)
        return AuthService.get_user(db, user_id)

    @staticmethod
    @retry_on_transient
    def get_user(db: Session, user_id: int) -> User:
        """Get a user by id."""
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError(f"User {user_id} not found")
        return user


auth_service = AuthService()
