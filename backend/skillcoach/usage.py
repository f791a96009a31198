"""Completion ledger and the free-tier daily ceiling."""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db import store_call
from .errors import UsageCapped, ValidationFailed
from .identity import RoleInfo
from .models import ProgressEvent
from .presets import CUSTOM_KEY
from .settings import settings


logger = logging.getLogger(__name__)

FREE = "free"
PRO = "pro"


def start_of_today_utc(now: Optional[datetime] = None) -> datetime:
	now = now or datetime.now(timezone.utc)
	if now.tzinfo is None:
		now = now.replace(tzinfo=timezone.utc)
	now = now.astimezone(timezone.utc)
	return now.replace(hour=0, minute=0, second=0, microsecond=0)


def ceiling_for(plan: str) -> Optional[int]:
	"""Daily completion ceiling; ``None`` means unlimited."""
	return None if plan == PRO else settings.free_daily_completions


def resolve_plan(plan_claim: str, role: Optional[RoleInfo] = None, *, user_id: Optional[str] = None) -> str:
	# Owning the experience always grants pro, whatever the subscription says
	if role is not None and role.is_owner:
		return PRO
	if user_id is not None and user_id in settings.owner_ids:
		return PRO
	return PRO if plan_claim == PRO else FREE


def used_today(db: Session, user_id: str, now: Optional[datetime] = None) -> int:
	since = start_of_today_utc(now)
	with store_call(db, "count completions"):
		return db.execute(
			select(func.count()).select_from(ProgressEvent).where(
				ProgressEvent.user_id == user_id,
				ProgressEvent.created_at >= since,
			)
		).scalar() or 0


def usage_status(db: Session, user_id: str, plan: str, now: Optional[datetime] = None) -> Dict[str, Any]:
	limit = ceiling_for(plan)
	used = used_today(db, user_id, now)
	if limit is None:
		return {"plan": plan, "limit": None, "used": used, "remaining": None, "capped": False}
	remaining = max(0, limit - used)
	return {"plan": plan, "limit": limit, "used": used, "remaining": remaining, "capped": remaining == 0}


def ensure_can_generate(db: Session, user_id: str, plan: str, now: Optional[datetime] = None) -> Dict[str, Any]:
	status = usage_status(db, user_id, plan, now)
	if status["capped"]:
		logger.warning("free limit reached user=%s used=%s", user_id, status["used"])
		raise UsageCapped(
			f"Free includes {status['limit']} drill sets per day. Upgrade to Pro for unlimited drills.",
			details={"limit": status["limit"], "completedToday": status["used"]},
		)
	return status


def _niche_filter(niche_key: str, custom_niche: Optional[str]):
	clauses = [ProgressEvent.niche_key == niche_key]
	if niche_key == CUSTOM_KEY:
		clauses.append(ProgressEvent.custom_niche == custom_niche)
	return clauses


def _ledger_niche(niche_key: str, custom_niche: Optional[str]) -> Tuple[str, Optional[str]]:
	key = (niche_key or "").strip().lower()
	if not key:
		raise ValidationFailed("niche required")
	text = (custom_niche or "").strip() or None
	if key == CUSTOM_KEY and not text:
		raise ValidationFailed("customNiche required when niche is custom")
	return key, (text if key == CUSTOM_KEY else None)


def record_completion(
	db: Session,
	user_id: str,
	niche_key: str,
	client_completion_id: str,
	custom_niche: Optional[str] = None,
) -> int:
	"""Append a completion event, idempotent on ``client_completion_id``.

	Returns the user's total completions in that niche.
	"""
	completion_id = (client_completion_id or "").strip()
	if not completion_id:
		raise ValidationFailed("clientCompletionId required")
	key, text = _ledger_niche(niche_key, custom_niche)

	with store_call(db, "record completion"):
		existing = db.execute(
			select(ProgressEvent.id).where(ProgressEvent.client_completion_id == completion_id)
		).scalar_one_or_none()
		if existing is None:
			db.add(ProgressEvent(user_id=user_id, niche_key=key, custom_niche=text, client_completion_id=completion_id))
			try:
				db.commit()
				logger.info("completion recorded user=%s niche=%s", user_id, key)
			except IntegrityError:
				# A concurrent retry with the same id got there first
				db.rollback()
		else:
			logger.info("duplicate completion ignored user=%s niche=%s", user_id, key)
		total = db.execute(
			select(func.count()).select_from(ProgressEvent).where(
				ProgressEvent.user_id == user_id, *_niche_filter(key, text)
			)
		).scalar() or 0
	return total


def progress_summary(
	db: Session,
	user_id: str,
	niche_key: str,
	custom_niche: Optional[str] = None,
) -> Dict[str, Any]:
	"""Completion count and most recent completion time for one niche."""
	key, text = _ledger_niche(niche_key, custom_niche)
	with store_call(db, "load progress summary"):
		total, last = db.execute(
			select(func.count(), func.max(ProgressEvent.created_at)).where(
				ProgressEvent.user_id == user_id, *_niche_filter(key, text)
			)
		).one()
	if last is not None and last.tzinfo is None:
		# SQLite hands back naive values; the ledger is written in UTC
		last = last.replace(tzinfo=timezone.utc)
	return {
		"niche": key,
		"totalCompletedInNiche": total or 0,
		"lastCompletedAt": last.isoformat() if last else None,
	}
