from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..identity import Caller, get_current_user
from ..onboarding import OnboardingState, advance_state, should_show_onboarding


router = APIRouter(prefix="/onboarding", tags=["onboarding"])


class AdvanceRequest(BaseModel):
	state: OnboardingState = Field(default_factory=OnboardingState)
	nicheKey: Optional[str] = None


@router.post("/advance")
def advance(req: AdvanceRequest, user: Caller = Depends(get_current_user)):
	state = advance_state(req.state, niche_key=req.nicheKey)
	return {"state": state.model_dump(mode="json"), "showOnboarding": should_show_onboarding(state)}
