import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from volunteer_booking.auth import jwt_handler

security = HTTPBearer()


class Principal(BaseModel):
    """The caller as asserted by the identity provider's token."""
    subject: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == jwt_handler.ADMIN_ROLE


def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    role = payload.get("role") or jwt_handler.VOLUNTEER_ROLE
    if role not in {jwt_handler.VOLUNTEER_ROLE, jwt_handler.ADMIN_ROLE}:
        raise HTTPException(status_code=403, detail="Unknown role")

    return Principal(subject=subject, role=role)


def require_volunteer(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != jwt_handler.VOLUNTEER_ROLE:
        raise HTTPException(status_code=403, detail="Only volunteers can access this resource.")
    return principal


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can access this resource.")
    return principal
