from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, Field

from .errors import Forbidden, Unauthenticated
from .settings import settings


bearer_scheme = HTTPBearer(auto_error=False)

OWNER_ROLES = {"owner", "admin"}
CREATOR_ROLES = {"owner", "admin", "creator", "staff", "moderator"}


class Caller(BaseModel):
	user_id: str
	# experience id -> role name, as issued by the identity provider
	roles: Dict[str, str] = Field(default_factory=dict)
	plan: str = "free"


class RoleInfo(BaseModel):
	is_owner: bool = False
	is_admin_or_creator: bool = False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
	to_encode.update({"exp": expire})
	if settings.jwt_audience:
		to_encode.setdefault("aud", settings.jwt_audience)
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_caller(token: Optional[str]) -> Caller:
	if not token:
		raise Unauthenticated("Missing bearer token")
	options: Dict[str, Any] = {"verify_aud": bool(settings.jwt_audience)}
	try:
		payload = jwt.decode(
			token,
			settings.jwt_secret_key,
			algorithms=[settings.jwt_algorithm],
			audience=settings.jwt_audience,
			options=options,
		)
	except JWTError:
		raise Unauthenticated("Could not validate credentials") from None
	user_id = payload.get("sub")
	if not isinstance(user_id, str) or not user_id:
		raise Unauthenticated("Could not validate credentials")
	roles = payload.get("roles") or {}
	if not isinstance(roles, dict):
		roles = {}
	plan = payload.get("plan") if payload.get("plan") in ("free", "pro") else "free"
	return Caller(user_id=user_id, roles={str(k): str(v) for k, v in roles.items()}, plan=plan)


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Caller:
	return verify_caller(credentials.credentials if credentials else None)


def check_role(experience_id: str, caller: Caller) -> RoleInfo:
	if caller.user_id in settings.owner_ids:
		return RoleInfo(is_owner=True, is_admin_or_creator=True)
	role = (caller.roles.get(experience_id) or "").strip().lower()
	return RoleInfo(is_owner=role in OWNER_ROLES, is_admin_or_creator=role in CREATOR_ROLES)


def require_owner(experience_id: str, caller: Caller) -> RoleInfo:
	info = check_role(experience_id, caller)
	if not info.is_owner:
		raise Forbidden("Owner access required")
	return info


def require_admin_or_creator(experience_id: str, caller: Caller) -> RoleInfo:
	info = check_role(experience_id, caller)
	if not info.is_admin_or_creator:
		raise Forbidden("Admin or creator access required")
	return info
