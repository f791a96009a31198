"""A user's niche selection and the clarifying answers kept per niche."""
from __future__ import annotations
import logging
import re
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.orm import Session

from .db import store_call
from .errors import InvalidKey, ValidationFailed
from .models import UserNicheProfile, UserProfile
from .presets import CUSTOM_KEY, enabled_anywhere, get_preset, normalize_key


logger = logging.getLogger(__name__)

# Old fixed taxonomy, exported for consumers that still read it
LEGACY_NICHES: Dict[str, str] = {
	"trading": "TRADING",
	"sports": "SPORTS",
	"social_media": "SOCIAL_MEDIA",
	"reselling": "RESELLING",
	"fitness": "FITNESS",
}

PROFILE_FIELDS = {"state": "state", "country": "country", "testType": "test_type"}


def legacy_niche(niche_key: Optional[str]) -> Optional[str]:
	if not niche_key:
		return None
	return LEGACY_NICHES.get(niche_key, "CUSTOM")


def _selection_key(raw: str) -> str:
	key = normalize_key(raw)
	key = re.sub(r"\s+", "_", key)
	return re.sub(r"[^a-z0-9_-]", "", key)


def profile_to_dict(row: Optional[UserProfile]) -> Dict[str, Any]:
	niche_key = row.niche_key if row else None
	return {
		"nicheKey": niche_key,
		"customNiche": row.custom_niche if row else None,
		"primaryNiche": legacy_niche(niche_key),
	}


def get_profile(db: Session, user_id: str) -> Optional[UserProfile]:
	with store_call(db, "load user profile"):
		return db.get(UserProfile, user_id)


def select_niche(
	db: Session,
	user_id: str,
	niche_key: str,
	custom_niche: Optional[str] = None,
	*,
	experience_id: Optional[str] = None,
) -> UserProfile:
	key = _selection_key(niche_key or "")
	if not key:
		raise ValidationFailed("niche required")
	text = (custom_niche or "").strip() or None
	if key == CUSTOM_KEY and not text:
		raise ValidationFailed("customNiche required when niche is custom")
	if key != CUSTOM_KEY:
		if experience_id is not None:
			preset = get_preset(db, experience_id, key)
			valid = preset is not None and preset.enabled
		else:
			# Without an experience any enabled preset of that key will do
			valid = enabled_anywhere(db, key)
		if not valid:
			raise InvalidKey(f"Invalid niche value: {key}", details={"key": key})
	with store_call(db, "select niche"):
		row = db.get(UserProfile, user_id)
		if row is None:
			row = UserProfile(user_id=user_id)
			db.add(row)
		row.niche_key = key
		row.custom_niche = text if key == CUSTOM_KEY else None
		db.commit()
		db.refresh(row)
	return row


def set_custom_niche(db: Session, user_id: str, custom_niche: str) -> UserProfile:
	return select_niche(db, user_id, CUSTOM_KEY, custom_niche)


def _profile_key(experience_id: str, user_id: str, niche_key: str, custom_niche: Optional[str]):
	key = (niche_key or "").strip()
	if not key:
		raise ValidationFailed("nicheKey required")
	return (experience_id, user_id, key, (custom_niche or "").strip())


def niche_profile_to_dict(row: Optional[UserNicheProfile]) -> Optional[Dict[str, Any]]:
	if row is None:
		return None
	return {
		"nicheKey": row.niche_key,
		"customNiche": row.custom_niche,
		"state": row.state,
		"country": row.country,
		"testType": row.test_type,
	}


def get_niche_profile(
	db: Session, experience_id: str, user_id: str, niche_key: str, custom_niche: Optional[str] = None
) -> Optional[UserNicheProfile]:
	pk = _profile_key(experience_id, user_id, niche_key, custom_niche)
	with store_call(db, "load niche profile"):
		return db.get(UserNicheProfile, pk)


def answers_for(row: Optional[UserNicheProfile]) -> Dict[str, Optional[str]]:
	if row is None:
		return {}
	return {name: getattr(row, attr) for name, attr in PROFILE_FIELDS.items()}


def patch_niche_profile(
	db: Session,
	experience_id: str,
	user_id: str,
	niche_key: str,
	custom_niche: Optional[str],
	patch: Mapping[str, Any],
) -> UserNicheProfile:
	pk = _profile_key(experience_id, user_id, niche_key, custom_niche)
	changes = {
		attr: (str(patch[name]).strip() or None) if patch[name] is not None else None
		for name, attr in PROFILE_FIELDS.items()
		if name in patch
	}
	with store_call(db, "patch niche profile"):
		row = db.get(UserNicheProfile, pk)
		if row is None:
			row = UserNicheProfile(experience_id=pk[0], user_id=pk[1], niche_key=pk[2], custom_niche=pk[3])
			db.add(row)
		for attr, value in changes.items():
			setattr(row, attr, value)
		db.commit()
		db.refresh(row)
	return row
