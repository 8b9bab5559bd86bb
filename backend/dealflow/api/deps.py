from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from dealflow.config import settings
from dealflow.core.security import decode_access_token_subject
from dealflow.database import get_db
from dealflow.models import PartnerMember, RoleName, User
from dealflow.services.workflow import Caller


def _token_url() -> str:
    if settings.api_prefix:
        return f"{settings.api_prefix.rstrip('/')}/auth/token"
    return "/auth/token"


oauth2_optional = OAuth2PasswordBearer(tokenUrl=_token_url(), auto_error=False)

_DB_DEP = Depends(get_db)
_TOKEN_OPT_DEP = Depends(oauth2_optional)


def _extract_bearer_from_headers(request: Request) -> Optional[str]:
    raw = request.headers.get("authorization") or request.headers.get("x-authorization")
    if not raw:
        return None
    s = str(raw).strip()
    if s.lower().startswith("bearer "):
        return s.split(" ", 1)[1].strip() or None
    return s or None


def get_current_user(
    request: Request,
    db: Session = _DB_DEP,
    token: Optional[str] = _TOKEN_OPT_DEP,
) -> User:
    if not token:
        token = _extract_bearer_from_headers(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    subject = decode_access_token_subject(token)
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    user = db.query(User).filter(User.email == subject, User.active.is_(True)).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def _role_value(user) -> str:
    role_name = getattr(getattr(user, "role", None), "name", None)
    if isinstance(role_name, RoleName):
        return role_name.value
    return str(role_name) if role_name is not None else ""


def require_roles(*roles: RoleName) -> Callable:
    _CURRENT_USER_DEP = Depends(get_current_user)
    allowed = {r.value if isinstance(r, RoleName) else str(r) for r in roles}

    def dependency(user: User = _CURRENT_USER_DEP) -> User:
        if roles:
            user_role = _role_value(user)
            # Admin has access to everything
            if user_role == RoleName.admin.value:
                return user
            if user_role not in allowed:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role"
                )
        return user

    return dependency


def get_caller(
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = _DB_DEP,
) -> Caller:
    """Resolve the explicit caller identity, including the partner binding if any."""

    role = RoleName(_role_value(user))
    partner_id = None
    if role == RoleName.partner:
        binding = db.query(PartnerMember).filter(PartnerMember.user_id == user.id).first()
        partner_id = binding.partner_id if binding else None
    return Caller(
        user_id=int(user.id),
        role=role,
        partner_id=partner_id,
        request_id=getattr(request.state, "request_id", None),
    )
