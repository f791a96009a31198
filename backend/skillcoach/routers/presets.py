from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..identity import Caller, get_current_user, require_admin_or_creator, require_owner
from .. import presets


router = APIRouter(prefix="/experiences/{experience_id}", tags=["niche_presets"])


class PresetRequest(BaseModel):
	key: Optional[str] = None
	label: Optional[str] = None
	aiContext: Optional[str] = None
	enabled: Optional[bool] = None
	sortOrder: Optional[int] = None


@router.get("/niche-presets")
def public_presets(experience_id: str, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	presets.seed_defaults_if_allowed(db, experience_id)
	return {"presets": [p.to_dict() for p in presets.public_presets(db, experience_id)]}


@router.get("/admin/niche-presets")
def admin_presets(experience_id: str, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	require_owner(experience_id, user)
	rows = presets.list_presets(db, experience_id, include_disabled=True)
	return {"presets": [p.to_dict() for p in rows]}


@router.post("/admin/niche-presets")
def upsert_preset(experience_id: str, req: PresetRequest, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	require_owner(experience_id, user)
	preset = presets.upsert_preset(
		db,
		experience_id,
		key=req.key,
		label=req.label,
		ai_context=req.aiContext,
		enabled=req.enabled,
		sort_order=req.sortOrder,
	)
	return {"preset": preset.to_dict()}


@router.delete("/admin/niche-presets")
def delete_preset(experience_id: str, key: str = "", user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	require_owner(experience_id, user)
	presets.delete_preset(db, experience_id, key)
	return {"ok": True}


@router.post("/admin/niche-presets/restore-defaults")
def restore_defaults(experience_id: str, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	require_admin_or_creator(experience_id, user)
	inserted = presets.restore_defaults_enabled(db, experience_id)
	return {"ok": True, "inserted": inserted}


@router.post("/admin/niche-presets/restore")
def replace_with_defaults(experience_id: str, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	require_admin_or_creator(experience_id, user)
	rows = presets.replace_with_defaults(db, experience_id)
	return {"ok": True, "presets": [p.to_dict() for p in rows]}
