from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text, UniqueConstraint
from .db import Base


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


class NichePreset(Base):
	__tablename__ = "niche_presets"
	__table_args__ = (UniqueConstraint("experience_id", "key", name="uq_niche_presets_experience_key"),)
	# Autoincrement id doubles as insertion order for sort ties
	id = Column(Integer, primary_key=True, autoincrement=True)
	experience_id = Column(String(128), nullable=False, index=True)
	key = Column(String(64), nullable=False)
	label = Column(String(256), nullable=False)
	ai_context = Column(Text, nullable=True)
	enabled = Column(Boolean, default=True, nullable=False)
	sort_order = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
	updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class CreatorSettings(Base):
	__tablename__ = "creator_settings"
	experience_id = Column(String(128), primary_key=True)
	allow_auto_defaults = Column(Boolean, default=True, nullable=False)
	global_context = Column(Text, nullable=True)
	created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
	updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class CreatorNicheContext(Base):
	__tablename__ = "creator_niche_contexts"
	# One override per (experience, niche key)
	experience_id = Column(String(128), primary_key=True)
	niche_key = Column(String(64), primary_key=True)
	label = Column(String(256), nullable=True)
	context = Column(Text, nullable=True)
	updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class UserProfile(Base):
	__tablename__ = "user_profiles"
	user_id = Column(String(128), primary_key=True)
	niche_key = Column(String(64), nullable=True)
	custom_niche = Column(Text, nullable=True)
	created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
	updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class PracticeSession(Base):
	__tablename__ = "practice_sessions"
	user_id = Column(String(128), primary_key=True)
	niche_key = Column(String(64), primary_key=True)
	data = Column(JSON, nullable=False, default=dict)
	last_completion_summary = Column(Text, nullable=True)
	created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
	updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class UserNicheProfile(Base):
	__tablename__ = "user_niche_profiles"
	experience_id = Column(String(128), primary_key=True)
	user_id = Column(String(128), primary_key=True)
	niche_key = Column(String(64), primary_key=True)
	# Empty string (never NULL) so it can take part in the key
	custom_niche = Column(String(512), primary_key=True, default="")
	state = Column(String(128), nullable=True)
	country = Column(String(128), nullable=True)
	test_type = Column(String(128), nullable=True)
	updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class ProgressEvent(Base):
	__tablename__ = "progress_events"
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(128), nullable=False, index=True)
	niche_key = Column(String(64), nullable=False)
	custom_niche = Column(Text, nullable=True)
	client_completion_id = Column(String(128), nullable=False, unique=True)
	created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
