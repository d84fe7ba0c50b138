from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel, ValidationError as PydanticValidationError

from marketapi.config import settings
from marketapi.core.exceptions import AuthenticationError, AuthorizationError

# 토큰 발급은 외부 인증 서비스 담당, 이 서비스는 검증만 수행
security = HTTPBearer(auto_error=False)

ADMIN_ROLES = ("admin", "super_admin")


class CurrentUser(BaseModel):
    """JWT 클레임에서 복원한 인증 사용자"""

    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> CurrentUser:
    """JWT 토큰을 검증하고 사용자 정보를 반환합니다."""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return CurrentUser(
            user_id=str(payload.get("user_id") or payload.get("sub") or ""),
            role=payload.get("role", "user"),
        )
    except (JWTError, PydanticValidationError):
        raise AuthenticationError("Invalid authentication credentials")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """필수 사용자 인증 - 유효한 토큰이 필요함"""
    if not credentials:
        raise AuthenticationError("Authentication required")

    user = decode_access_token(credentials.credentials)
    if not user.user_id:
        raise AuthenticationError("Token has no subject")
    return user


def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """관리자 권한이 필요한 엔드포인트용 의존성"""
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user
