"""Experience-wide creator settings and per-niche context overrides."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from .db import store_call
from .errors import ValidationFailed
from .models import CreatorNicheContext, CreatorSettings
from .presets import normalize_key


logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _clean(value: Optional[str]) -> Optional[str]:
	return (value or "").strip() or None


def settings_to_dict(row: CreatorSettings) -> Dict[str, Any]:
	return {
		"experienceId": row.experience_id,
		"allowAutoDefaults": bool(row.allow_auto_defaults),
		"globalContext": row.global_context,
	}


def get_or_create_settings(db: Session, experience_id: str) -> CreatorSettings:
	# Lazy creation: an upsert whose update half is a no-op
	with store_call(db, "load creator settings"):
		row = db.get(CreatorSettings, experience_id)
		if row is None:
			row = CreatorSettings(experience_id=experience_id, allow_auto_defaults=True)
			db.add(row)
			db.commit()
			db.refresh(row)
	return row


def global_context(db: Session, experience_id: str) -> Optional[str]:
	with store_call(db, "load global context"):
		row = db.get(CreatorSettings, experience_id)
	return _clean(row.global_context) if row else None


def update_settings(db: Session, experience_id: str, *, global_context: Any = _UNSET) -> CreatorSettings:
	row = get_or_create_settings(db, experience_id)
	with store_call(db, "update creator settings"):
		if global_context is not _UNSET:
			row.global_context = _clean(global_context)
		db.commit()
		db.refresh(row)
	logger.info("creator settings updated experience=%s", experience_id)
	return row


def get_niche_override(db: Session, experience_id: str, niche_key: str) -> Optional[CreatorNicheContext]:
	with store_call(db, "load niche override"):
		return db.get(CreatorNicheContext, (experience_id, niche_key))


def upsert_niche_override(
	db: Session,
	experience_id: str,
	niche_key: str,
	*,
	label: Any = _UNSET,
	context: Any = _UNSET,
) -> CreatorNicheContext:
	key = normalize_key(niche_key)
	if not key:
		raise ValidationFailed("nicheKey required")
	with store_call(db, "upsert niche override"):
		row = db.get(CreatorNicheContext, (experience_id, key))
		if row is None:
			row = CreatorNicheContext(experience_id=experience_id, niche_key=key)
			db.add(row)
		if label is not _UNSET:
			row.label = _clean(label)
		if context is not _UNSET:
			row.context = _clean(context)
		db.commit()
		db.refresh(row)
	return row


def override_to_dict(row: Optional[CreatorNicheContext]) -> Optional[Dict[str, Any]]:
	if row is None:
		return None
	return {"nicheKey": row.niche_key, "label": row.label, "context": row.context}
