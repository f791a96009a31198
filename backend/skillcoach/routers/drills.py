from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import profiles, sessions
from ..db import get_db
from ..drill_plan import has_more, next_cursor, parse_cursor, plan_for
from ..errors import ClarificationRequired, ValidationFailed
from ..generation import build_generation_request, generate_drills
from ..identity import Caller, check_role, get_current_user
from ..llm_client import get_llm_client
from ..niche_context import resolve_context
from ..niche_requirements import missing_fields, required_fields
from ..presets import normalize_key
from ..usage import ensure_can_generate, resolve_plan


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/drills", tags=["drills"])


class GenerateRequest(BaseModel):
	experienceId: str
	nicheKey: Optional[str] = None
	customNiche: Optional[str] = None
	struggle: Optional[str] = None
	objective: Optional[str] = None
	practicePreference: Optional[str] = None
	cursor: Optional[str] = None
	existingCount: Optional[int] = None


@router.post("/generate")
async def generate(
	req: GenerateRequest,
	user: Caller = Depends(get_current_user),
	db: Session = Depends(get_db),
	client=Depends(get_llm_client),
):
	plan_name = resolve_plan(user.plan, check_role(req.experienceId, user), user_id=user.user_id)
	ensure_can_generate(db, user.user_id, plan_name)

	struggle = (req.struggle or "").strip()
	objective = (req.objective or "").strip()
	preference = (req.practicePreference or "").strip()
	if not struggle:
		raise ValidationFailed("Missing struggle")
	if not objective:
		raise ValidationFailed("Missing objective")
	if not preference:
		raise ValidationFailed("Missing practicePreference")
	offset = req.existingCount if req.existingCount is not None else parse_cursor(req.cursor)

	niche_key = normalize_key(req.nicheKey) or "custom"
	custom_niche = (req.customNiche or "").strip() or None
	ctx = resolve_context(db, req.experienceId, niche_key, custom_niche)
	fields = required_fields(niche_key, ctx.label, ctx.niche_context, custom_niche)
	answers = profiles.answers_for(
		profiles.get_niche_profile(db, req.experienceId, user.user_id, niche_key, custom_niche)
	)
	missing = missing_fields(fields, answers)
	if missing:
		raise ClarificationRequired(
			"More details are needed before drills can be generated",
			details={"requiredFields": [f.to_dict() for f in missing]},
		)

	row = sessions.upsert_session(db, user.user_id, niche_key, {
		"struggle": struggle,
		"objective": objective,
		"practice_preference": preference,
	})
	plan = plan_for(preference)
	request = build_generation_request(ctx, answers, plan, row.data)
	drills = await generate_drills(client, request, offset=offset, cursor=req.cursor)
	total = offset + len(drills)
	logger.info("drills generated user=%s niche=%s count=%d", user.user_id, niche_key, len(drills))
	return {
		"drill_plan": plan.to_dict(),
		"drills": drills,
		"has_more": has_more(plan, total),
		"next_cursor": next_cursor(plan, total),
	}
