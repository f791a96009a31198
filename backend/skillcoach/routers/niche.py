from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import profiles
from ..db import get_db
from ..identity import Caller, get_current_user
from ..niche_context import resolve_context
from ..niche_requirements import missing_fields, required_fields
from ..presets import validate_niche_key


router = APIRouter(tags=["niche"])


class NicheRequest(BaseModel):
	niche: Optional[str] = None
	nicheKey: Optional[str] = None
	customNiche: Optional[str] = None
	experienceId: Optional[str] = None


class CustomNicheRequest(BaseModel):
	customNiche: str = ""


class NicheProfileRequest(BaseModel):
	nicheKey: str
	customNiche: Optional[str] = None
	patch: Dict[str, Any] = Field(default_factory=dict)


@router.post("/niche")
def select_niche(req: NicheRequest, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	row = profiles.select_niche(
		db, user.user_id, req.niche or req.nicheKey or "", req.customNiche, experience_id=req.experienceId
	)
	return {"ok": True, "niche": row.niche_key, "profile": profiles.profile_to_dict(row)}


@router.post("/profile/custom-niche")
def save_custom_niche(req: CustomNicheRequest, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	row = profiles.set_custom_niche(db, user.user_id, req.customNiche)
	return {"ok": True, "profile": profiles.profile_to_dict(row)}


@router.get("/experiences/{experience_id}/niche-profile")
def get_niche_profile(
	experience_id: str,
	nicheKey: str = "",
	customNiche: str = "",
	user: Caller = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	row = profiles.get_niche_profile(db, experience_id, user.user_id, nicheKey, customNiche)
	return {"profile": profiles.niche_profile_to_dict(row)}


@router.post("/experiences/{experience_id}/niche-profile")
def patch_niche_profile(
	experience_id: str,
	req: NicheProfileRequest,
	user: Caller = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	row = profiles.patch_niche_profile(db, experience_id, user.user_id, req.nicheKey, req.customNiche, req.patch)
	return {"profile": profiles.niche_profile_to_dict(row)}


@router.get("/experiences/{experience_id}/niche-context")
def niche_context(
	experience_id: str,
	nicheKey: Optional[str] = None,
	customNiche: Optional[str] = None,
	user: Caller = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	profile = profiles.get_profile(db, user.user_id)
	requested = nicheKey if nicheKey is not None else (profile.niche_key if profile else None)
	if customNiche is None and profile is not None:
		customNiche = profile.custom_niche
	check = validate_niche_key(db, experience_id, requested)
	ctx = resolve_context(db, experience_id, check.niche_key, customNiche)
	fields = required_fields(check.niche_key, ctx.label, ctx.niche_context, customNiche)
	answers = profiles.answers_for(
		profiles.get_niche_profile(db, experience_id, user.user_id, check.niche_key, customNiche)
	)
	return {
		"nicheKey": check.niche_key,
		"wasChanged": check.was_changed,
		"message": check.message,
		"context": ctx.to_dict(),
		"requiredFields": [f.to_dict() for f in fields],
		"missingFields": [f.to_dict() for f in missing_fields(fields, answers)],
	}
