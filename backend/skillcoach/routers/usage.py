from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import usage
from ..db import get_db
from ..identity import Caller, check_role, get_current_user


router = APIRouter(tags=["usage"])


class CompleteRequest(BaseModel):
	niche: Optional[str] = None
	customNiche: Optional[str] = None
	clientCompletionId: Optional[str] = None


def _plan(user: Caller, experience_id: Optional[str]) -> str:
	role = check_role(experience_id, user) if experience_id else None
	return usage.resolve_plan(user.plan, role, user_id=user.user_id)


@router.get("/usage")
def get_usage(experienceId: Optional[str] = None, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	return usage.usage_status(db, user.user_id, _plan(user, experienceId))


@router.get("/pro/status")
def pro_status(experienceId: Optional[str] = None, user: Caller = Depends(get_current_user)):
	if experienceId and check_role(experienceId, user).is_owner:
		return {"isPro": True, "reason": "owner"}
	return {"isPro": _plan(user, None) == usage.PRO}


@router.post("/progress/complete")
def complete(req: CompleteRequest, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	niche = req.niche or ""
	total = usage.record_completion(
		db, user.user_id, niche, req.clientCompletionId or "", custom_niche=req.customNiche
	)
	return {"ok": True, "niche": niche.strip().lower(), "totalCompletedInNiche": total}


@router.get("/progress/summary")
def progress_summary(
	niche: str = "",
	customNiche: Optional[str] = None,
	user: Caller = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	return {"ok": True, **usage.progress_summary(db, user.user_id, niche, customNiche)}
