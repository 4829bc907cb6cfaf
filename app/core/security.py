from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from typing import List, Optional
from jose import jwt, JWTError
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.config import settings
from app.core.enums import UserRole

JWT_ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    uid: str
    email: Optional[str] = None
    roles: List[str] = field(default_factory=list)

    def has_role(self, role: UserRole) -> bool:
        return role.value in self.roles


def create_access_token(uid: str, email: Optional[str] = None, roles: Optional[List[str]] = None,
                        expires_minutes: int | None = None) -> str:
    expires = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expire_dt = datetime.now(timezone.utc) + timedelta(minutes=expires)
    to_encode = {
        "sub": str(uid),
        "email": email,
        "roles": [str(role) for role in roles or []],
        "exp": expire_dt,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> AuthenticatedUser:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    uid = payload.get("sub")
    if uid is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    roles = payload.get("roles")
    if not isinstance(roles, list) or not all(isinstance(role, str) for role in roles):
        roles = []
    return AuthenticatedUser(uid=uid, email=payload.get("email"), roles=roles)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return decode_access_token(credentials.credentials)


def require_admin(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    if not user.has_role(UserRole.ADMIN):
        raise HTTPException(status_code=403, detail="FORBIDDEN")
    return user
