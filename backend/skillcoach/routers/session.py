from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import sessions
from ..db import get_db
from ..errors import ValidationFailed
from ..generation import suggest_objective
from ..identity import Caller, get_current_user
from ..llm_client import get_llm_client


router = APIRouter(prefix="/session", tags=["session"])


class SessionWriteRequest(BaseModel):
	nicheKey: str
	data: Dict[str, Any] = Field(default_factory=dict)


class ResetRequest(BaseModel):
	experienceId: Optional[str] = None
	mode: Optional[str] = None


class SummaryRequest(BaseModel):
	nicheKey: str
	summary: Optional[str] = None


class StartRequest(BaseModel):
	niche: Optional[str] = None
	struggle: str = ""


@router.get("")
def get_session(nicheKey: str = "", user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	row = sessions.get_session(db, user.user_id, nicheKey)
	return {"ok": True, **sessions.session_to_dict(row)}


@router.post("")
def save_session(req: SessionWriteRequest, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	row = sessions.upsert_session(db, user.user_id, req.nicheKey, req.data)
	return {"ok": True, "updatedAt": row.updated_at.isoformat()}


@router.post("/reset")
def reset_session(req: ResetRequest, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	if not req.experienceId:
		raise ValidationFailed("Missing experienceId")
	removed = sessions.reset_sessions(db, user.user_id, req.mode)
	return {"ok": True, "removed": removed}


@router.post("/summary")
def save_summary(req: SummaryRequest, user: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
	row = sessions.set_completion_summary(db, user.user_id, req.nicheKey, req.summary)
	return {"ok": True, **sessions.session_to_dict(row)}


@router.post("/start")
async def start_session(req: StartRequest, user: Caller = Depends(get_current_user), client=Depends(get_llm_client)):
	struggle = req.struggle.strip()
	if not struggle:
		raise ValidationFailed("Missing struggle")
	return await suggest_objective(client, req.niche or "GENERAL", struggle)
