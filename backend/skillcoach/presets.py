"""Per-experience niche presets.

Stored rows live in ``niche_presets``. The ``custom`` niche is never stored:
it is synthesised at read time so it can never be edited, disabled or lost.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from .db import store_call
from .errors import InvalidKey, NotFound, ReservedKey, ValidationFailed
from .models import CreatorSettings, NichePreset


logger = logging.getLogger(__name__)

CUSTOM_KEY = "custom"
KEY_PATTERN = re.compile(r"^[a-z0-9_-]+$")
MAX_KEY_LENGTH = 40
# Tenants with at least this many stored rows are never auto-seeded
SEED_THRESHOLD = 5

DEFAULT_PRESETS: List[Dict[str, str]] = [
	{"key": "trading_investing", "label": "Trading & Investing"},
	{"key": "sports_betting", "label": "Sports Betting"},
	{"key": "social_media", "label": "Social Media & Clipping"},
	{"key": "reselling_ecommerce", "label": "Reselling & Ecommerce"},
	{"key": "fitness_health", "label": "Fitness & Health"},
]


@dataclass(frozen=True)
class PresetView:
	key: str
	label: str
	ai_context: Optional[str]
	enabled: bool
	sort_order: int

	@property
	def is_custom(self) -> bool:
		return self.key == CUSTOM_KEY

	def to_dict(self) -> Dict[str, Any]:
		return {
			"key": self.key,
			"label": self.label,
			"aiContext": self.ai_context,
			"enabled": self.enabled,
			"sortOrder": self.sort_order,
		}


ALWAYS_CUSTOM = PresetView(
	key=CUSTOM_KEY,
	label="Custom",
	ai_context="Adapt to the user-provided niche and keep examples aligned.",
	enabled=True,
	sort_order=999999,
)


@dataclass(frozen=True)
class StoredNiche:
	preset: PresetView


@dataclass(frozen=True)
class AlwaysCustomNiche:
	# True when a stored key was requested but missing or disabled
	fallback: bool = False

	@property
	def preset(self) -> PresetView:
		return ALWAYS_CUSTOM


NicheReference = Union[StoredNiche, AlwaysCustomNiche]


def _view(row: NichePreset) -> PresetView:
	return PresetView(
		key=row.key,
		label=row.label,
		ai_context=row.ai_context,
		enabled=bool(row.enabled),
		sort_order=int(row.sort_order),
	)


def slugify_key(raw: str) -> str:
	text = (raw or "").strip().lower()
	text = re.sub(r"['\"]", "", text)
	text = re.sub(r"[^a-z0-9]+", "_", text)
	return text.strip("_")[:MAX_KEY_LENGTH]


def normalize_key(raw: Optional[str]) -> str:
	"""Canonical form of a niche key arriving from a client.

	Handles the legacy ``CUSTOM:<text>`` spelling and upper-case enum names.
	"""
	key = (raw or "").strip()
	if key.upper().startswith("CUSTOM:"):
		return CUSTOM_KEY
	return key.lower()


def _check_mutable_key(key: str) -> None:
	if key == CUSTOM_KEY:
		raise ReservedKey("custom is reserved", details={"key": key})
	if not key or not KEY_PATTERN.match(key):
		raise InvalidKey("key must match [a-z0-9_-]+", details={"key": key})


def _ordered(query):
	return query.order_by(NichePreset.sort_order.asc(), NichePreset.id.asc())


def list_presets(db: Session, experience_id: str, include_disabled: bool = False) -> List[PresetView]:
	"""Stored rows only, ordered by sort order then insertion order."""
	query = select(NichePreset).where(NichePreset.experience_id == experience_id)
	if not include_disabled:
		query = query.where(NichePreset.enabled.is_(True))
	with store_call(db, "list presets"):
		rows = db.execute(_ordered(query)).scalars().all()
	return [_view(r) for r in rows]


def public_presets(db: Session, experience_id: str) -> List[PresetView]:
	return list_presets(db, experience_id) + [ALWAYS_CUSTOM]


def get_preset(db: Session, experience_id: str, key: str) -> Optional[PresetView]:
	with store_call(db, "get preset"):
		row = db.execute(
			select(NichePreset).where(NichePreset.experience_id == experience_id, NichePreset.key == key)
		).scalar_one_or_none()
	return _view(row) if row else None


def enabled_anywhere(db: Session, key: str) -> bool:
	"""True when some experience has an enabled preset with this key."""
	with store_call(db, "find preset"):
		found = db.execute(
			select(NichePreset.id).where(NichePreset.key == key, NichePreset.enabled.is_(True)).limit(1)
		).first()
	return found is not None


def resolve_reference(db: Session, experience_id: str, niche_key: str) -> NicheReference:
	if niche_key == CUSTOM_KEY:
		return AlwaysCustomNiche()
	preset = get_preset(db, experience_id, niche_key)
	if preset is None or not preset.enabled:
		return AlwaysCustomNiche(fallback=True)
	return StoredNiche(preset)


def upsert_preset(
	db: Session,
	experience_id: str,
	*,
	key: Optional[str] = None,
	label: Optional[str] = None,
	ai_context: Optional[str] = None,
	enabled: Optional[bool] = None,
	sort_order: Optional[int] = None,
) -> PresetView:
	raw_key = key or label or ""
	if raw_key.strip().lower() == CUSTOM_KEY:
		raise ReservedKey("custom is reserved", details={"key": CUSTOM_KEY})
	norm_key = slugify_key(raw_key)
	_check_mutable_key(norm_key)
	clean_label = (label or raw_key).strip()
	if not clean_label:
		raise ValidationFailed("label required")
	context_value = (ai_context or "").strip() or None

	with store_call(db, "upsert preset"):
		row = db.execute(
			select(NichePreset).where(NichePreset.experience_id == experience_id, NichePreset.key == norm_key)
		).scalar_one_or_none()
		if row is None:
			if sort_order is None:
				current_max = db.execute(
					select(func.max(NichePreset.sort_order)).where(NichePreset.experience_id == experience_id)
				).scalar()
				sort_order = (current_max or 0) + 1
			row = NichePreset(
				experience_id=experience_id,
				key=norm_key,
				label=clean_label,
				ai_context=context_value,
				enabled=True if enabled is None else bool(enabled),
				sort_order=sort_order,
			)
			db.add(row)
		else:
			row.label = clean_label
			row.ai_context = context_value
			if enabled is not None:
				row.enabled = bool(enabled)
			if sort_order is not None:
				row.sort_order = sort_order
		db.commit()
		db.refresh(row)
	logger.info("preset upserted experience=%s key=%s", experience_id, norm_key)
	return _view(row)


def delete_preset(db: Session, experience_id: str, key: str) -> None:
	norm_key = (key or "").strip().lower()
	if norm_key == CUSTOM_KEY:
		raise ReservedKey("custom cannot be deleted", details={"key": norm_key})
	if not norm_key:
		raise InvalidKey("key required")

	with store_call(db, "delete preset"):
		res = db.execute(
			delete(NichePreset).where(NichePreset.experience_id == experience_id, NichePreset.key == norm_key)
		)
		if not res.rowcount:
			db.rollback()
			raise NotFound("preset not found", details={"key": norm_key})
		# The creator is curating the list by hand now; stop auto-seeding
		settings_row = _settings_row(db, experience_id)
		settings_row.allow_auto_defaults = False
		db.commit()
	logger.info("preset deleted experience=%s key=%s", experience_id, norm_key)


def _settings_row(db: Session, experience_id: str) -> CreatorSettings:
	row = db.get(CreatorSettings, experience_id)
	if row is None:
		row = CreatorSettings(experience_id=experience_id, allow_auto_defaults=True)
		db.add(row)
		db.flush()
	return row


def _stored_count(db: Session, experience_id: str) -> int:
	return db.execute(
		select(func.count()).select_from(NichePreset).where(NichePreset.experience_id == experience_id)
	).scalar() or 0


def seed_defaults_if_allowed(db: Session, experience_id: str) -> int:
	"""Insert missing default presets unless the creator opted out.

	Returns the number of rows inserted.
	"""
	with store_call(db, "seed default presets"):
		settings_row = _settings_row(db, experience_id)
		if not settings_row.allow_auto_defaults or _stored_count(db, experience_id) >= SEED_THRESHOLD:
			db.commit()
			return 0
		existing = set(db.execute(
			select(NichePreset.key).where(NichePreset.experience_id == experience_id)
		).scalars())
		inserted = 0
		for index, preset in enumerate(DEFAULT_PRESETS):
			if preset["key"] in existing:
				continue
			db.add(NichePreset(
				experience_id=experience_id,
				key=preset["key"],
				label=preset["label"],
				enabled=True,
				sort_order=index,
			))
			inserted += 1
		db.commit()
	if inserted:
		logger.info("seeded %d default presets experience=%s", inserted, experience_id)
	return inserted


def restore_defaults_enabled(db: Session, experience_id: str) -> int:
	with store_call(db, "re-enable default presets"):
		_settings_row(db, experience_id).allow_auto_defaults = True
		db.commit()
	return seed_defaults_if_allowed(db, experience_id)


def replace_with_defaults(db: Session, experience_id: str) -> List[PresetView]:
	"""Delete every stored preset and recreate the defaults atomically."""
	with store_call(db, "replace presets with defaults"):
		db.execute(delete(NichePreset).where(NichePreset.experience_id == experience_id))
		for index, preset in enumerate(DEFAULT_PRESETS):
			db.add(NichePreset(
				experience_id=experience_id,
				key=preset["key"],
				label=preset["label"],
				enabled=True,
				sort_order=index,
			))
		db.commit()
	logger.info("presets replaced with defaults experience=%s", experience_id)
	return list_presets(db, experience_id, include_disabled=True)


@dataclass(frozen=True)
class KeyCheck:
	niche_key: str
	was_changed: bool
	message: Optional[str] = None


def validate_niche_key(db: Session, experience_id: str, niche_key: Optional[str]) -> KeyCheck:
	if not niche_key:
		return KeyCheck(CUSTOM_KEY, True)
	normalized = normalize_key(niche_key)
	if normalized == CUSTOM_KEY:
		return KeyCheck(CUSTOM_KEY, normalized != niche_key)
	preset = get_preset(db, experience_id, normalized)
	if preset is not None and preset.enabled:
		return KeyCheck(normalized, normalized != niche_key)

	enabled = list_presets(db, experience_id)
	fallback = enabled[0] if enabled else ALWAYS_CUSTOM
	logger.info("niche key %s unavailable, falling back to %s", normalized, fallback.key)
	return KeyCheck(
		fallback.key,
		True,
		message=f"Creator updated niches, moved you to {fallback.label}",
	)
