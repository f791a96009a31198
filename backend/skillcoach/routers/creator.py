from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import creator
from ..db import get_db
from ..identity import Caller, get_current_user, require_owner


router = APIRouter(prefix="/creator", tags=["creator"])


class SettingsRequest(BaseModel):
	experienceId: str
	globalContext: Optional[str] = None


class NicheContextRequest(BaseModel):
	experienceId: str
	nicheKey: str
	label: Optional[str] = None
	context: Optional[str] = None


@router.get("/settings")
def get_settings(experienceId: str, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	require_owner(experienceId, user)
	row = creator.get_or_create_settings(db, experienceId)
	return {"ok": True, "settings": creator.settings_to_dict(row)}


@router.post("/settings")
def save_settings(req: SettingsRequest, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	require_owner(req.experienceId, user)
	fields = req.model_dump(exclude_unset=True)
	kwargs = {"global_context": fields["globalContext"]} if "globalContext" in fields else {}
	row = creator.update_settings(db, req.experienceId, **kwargs)
	return {"ok": True, "saved": creator.settings_to_dict(row)}


@router.get("/niche-context")
def get_niche_context(experienceId: str, nicheKey: str, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	require_owner(experienceId, user)
	row = creator.get_niche_override(db, experienceId, nicheKey)
	return {"override": creator.override_to_dict(row)}


@router.post("/niche-context")
def save_niche_context(req: NicheContextRequest, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	require_owner(req.experienceId, user)
	fields = req.model_dump(exclude_unset=True)
	kwargs = {k: fields[k] for k in ("label", "context") if k in fields}
	row = creator.upsert_niche_override(db, req.experienceId, req.nicheKey, **kwargs)
	return {"ok": True, "override": creator.override_to_dict(row)}
