from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import HTTPException
from jose import JWTError, jwt

from .config import Settings

SESSION_COOKIE = "__session"


@dataclass
class CurrentUser:
    user_id: str
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def claims_admin(self) -> bool:
        # Session claims only carry metadata when the provider's session
        # template is customized, so absence means "ask the provider".
        meta = self.claims.get("metadata") or {}
        return meta.get("role") == "admin" or bool(meta.get("isAdmin"))


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        return ""
    return authorization.split(" ", 1)[1].strip()


def decode_session_token(token: str, settings: Settings) -> Dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            settings.auth_key,
            algorithms=[settings.auth_algorithm],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    if settings.authorized_parties:
        azp = payload.get("azp")
        if azp and azp not in settings.authorized_parties:
            raise HTTPException(status_code=401, detail="Invalid token")
    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")
    return payload


def resolve_user(authorization: Optional[str], session_cookie: Optional[str], settings: Settings) -> CurrentUser:
    if authorization and not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid auth header")
    token = bearer_token(authorization) or (session_cookie or "")
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    payload = decode_session_token(token, settings)
    return CurrentUser(user_id=payload["sub"], claims=payload)
