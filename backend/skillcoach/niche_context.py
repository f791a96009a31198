"""Compose the niche context handed to the generation pipeline.

Precedence, lowest to highest: built-in Custom preset, stored preset,
creator override. The creator's global context and the user's own niche
text are added as separate segments around it.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .creator import get_niche_override, global_context
from .presets import CUSTOM_KEY, AlwaysCustomNiche, NicheReference, resolve_reference


DEFAULT_CONTEXT = "Use practical examples and focused training drills."


@dataclass(frozen=True)
class ComposedContext:
	label: str
	context: str
	niche_key: str
	reference: NicheReference
	# Preset or override segment alone, without global or user text
	niche_context: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return {
			"label": self.label,
			"context": self.context,
			"nicheKey": self.niche_key,
			"fallback": isinstance(self.reference, AlwaysCustomNiche) and self.reference.fallback,
		}


def _base_context(reference: NicheReference) -> Optional[str]:
	# A stored key that vanished keeps only the Custom label, not its prompt
	if isinstance(reference, AlwaysCustomNiche) and reference.fallback:
		return None
	return reference.preset.ai_context


def compose(
	global_ctx: Optional[str],
	label: str,
	niche_ctx: Optional[str],
	custom_text: Optional[str],
) -> str:
	parts: List[str] = []
	if global_ctx:
		parts.append(f"Creator global context: {global_ctx}")
	if niche_ctx:
		parts.append(f"Niche context ({label}): {niche_ctx}")
	if custom_text:
		parts.append(f"User niche: {custom_text}")
	return "\n\n".join(parts) if parts else DEFAULT_CONTEXT


def resolve_context(
	db: Session,
	experience_id: str,
	niche_key: str,
	custom_niche: Optional[str] = None,
) -> ComposedContext:
	reference = resolve_reference(db, experience_id, niche_key)
	label = reference.preset.label
	niche_ctx = _base_context(reference)

	fell_back = isinstance(reference, AlwaysCustomNiche) and reference.fallback
	# A missing or disabled niche must not surface its old override either
	override = None if fell_back else get_niche_override(db, experience_id, niche_key)
	if override is not None:
		label = (override.label or "").strip() or label
		niche_ctx = (override.context or "").strip() or niche_ctx

	is_custom = niche_key == CUSTOM_KEY
	custom_text = (custom_niche or "").strip() if is_custom else ""
	context = compose(global_context(db, experience_id), label, niche_ctx, custom_text)

	display = label
	if is_custom and custom_text and not (override is not None and (override.label or "").strip()):
		display = custom_text
	return ComposedContext(
		label=display,
		context=context,
		niche_key=niche_key,
		reference=reference,
		niche_context=niche_ctx,
	)
