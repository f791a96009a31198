"""Per-(user, niche) practice sessions and their reset semantics."""
from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db import store_call
from .errors import InvalidMode, NotFound, ValidationFailed
from .models import PracticeSession, UserProfile, utcnow


logger = logging.getLogger(__name__)


class ResetMode(str, Enum):
	KEEP_NICHE = "KEEP_NICHE"
	CHANGE_NICHE = "CHANGE_NICHE"

	@classmethod
	def parse(cls, value: Any) -> "ResetMode":
		try:
			return cls(value)
		except ValueError:
			raise InvalidMode("mode must be KEEP_NICHE or CHANGE_NICHE", details={"mode": value}) from None


def merge_patch(existing: Optional[Mapping[str, Any]], patch: Mapping[str, Any]) -> Dict[str, Any]:
	"""Overlay ``patch`` onto ``existing``.

	Keys missing from the patch are kept, ``None`` or ``""`` removes the key,
	anything else replaces it.
	"""
	merged = dict(existing or {})
	for key, value in patch.items():
		if value is None or value == "":
			merged.pop(key, None)
		else:
			merged[key] = value
	return merged


def session_to_dict(row: Optional[PracticeSession]) -> Dict[str, Any]:
	return {
		"data": dict(row.data or {}) if row else None,
		"updatedAt": row.updated_at.isoformat() if row and row.updated_at else None,
		"lastCompletionSummary": row.last_completion_summary if row else None,
	}


def _require_key(niche_key: str) -> None:
	if not (niche_key or "").strip():
		raise ValidationFailed("nicheKey required")


def get_session(db: Session, user_id: str, niche_key: str) -> Optional[PracticeSession]:
	_require_key(niche_key)
	with store_call(db, "load session"):
		return db.get(PracticeSession, (user_id, niche_key))


def upsert_session(db: Session, user_id: str, niche_key: str, patch: Mapping[str, Any]) -> PracticeSession:
	_require_key(niche_key)
	if not isinstance(patch, Mapping):
		raise ValidationFailed("data must be an object")
	with store_call(db, "upsert session"):
		row = db.get(PracticeSession, (user_id, niche_key))
		if row is None:
			row = PracticeSession(user_id=user_id, niche_key=niche_key, data=merge_patch({}, patch), updated_at=utcnow())
			db.add(row)
			try:
				db.commit()
			except IntegrityError:
				# Lost a create race for the same pair; apply as an update instead
				db.rollback()
				row = db.get(PracticeSession, (user_id, niche_key))
				row.data = merge_patch(row.data, patch)
				row.updated_at = utcnow()
				db.commit()
		else:
			# Assign a fresh dict so the JSON column is flagged dirty
			row.data = merge_patch(row.data, patch)
			row.updated_at = utcnow()
			db.commit()
		db.refresh(row)
	return row


def set_completion_summary(db: Session, user_id: str, niche_key: str, summary: Optional[str]) -> PracticeSession:
	_require_key(niche_key)
	with store_call(db, "store completion summary"):
		row = db.get(PracticeSession, (user_id, niche_key))
		if row is None:
			raise NotFound("session not found", details={"nicheKey": niche_key})
		row.last_completion_summary = (summary or "").strip() or None
		row.updated_at = utcnow()
		db.commit()
		db.refresh(row)
	return row


def reset_sessions(db: Session, user_id: str, mode: Any) -> int:
	"""Clear every session the user has, across all niches.

	CHANGE_NICHE also forgets the user's niche selection so the picker runs
	again. Returns the number of session rows removed.
	"""
	reset_mode = ResetMode.parse(mode)
	with store_call(db, "reset sessions"):
		res = db.execute(delete(PracticeSession).where(PracticeSession.user_id == user_id))
		removed = res.rowcount or 0
		if reset_mode is ResetMode.CHANGE_NICHE:
			profile = db.get(UserProfile, user_id)
			if profile is not None:
				profile.niche_key = None
				profile.custom_niche = None
		db.commit()
	logger.info("sessions reset user=%s mode=%s removed=%d", user_id, reset_mode.value, removed)
	return removed
