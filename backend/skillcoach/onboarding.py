"""First-run onboarding funnel.

State is held by the client; the server only computes transitions, so a
user who clears local storage simply goes through orientation again.
"""
from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class OnboardingStep(str, Enum):
	NOT_STARTED = "not_started"
	ORIENTATION_COMPLETE = "orientation_complete"
	FIRST_SESSION_STARTED = "first_session_started"
	FIRST_SESSION_COMPLETE = "first_session_complete"
	PROGRESS_CONFIRMED = "progress_confirmed"
	PRO_OFFERED = "pro_offered"
	COMPLETED = "completed"


STEP_ORDER = list(OnboardingStep)


class OnboardingState(BaseModel):
	step: OnboardingStep = OnboardingStep.NOT_STARTED
	lastNicheKey: Optional[str] = None
	firstSessionNiche: Optional[str] = None
	completedAt: Optional[datetime] = None


def advance(step: OnboardingStep) -> OnboardingStep:
	index = STEP_ORDER.index(OnboardingStep(step))
	return STEP_ORDER[min(index + 1, len(STEP_ORDER) - 1)]


def advance_state(state: OnboardingState, *, niche_key: Optional[str] = None, now: Optional[datetime] = None) -> OnboardingState:
	nxt = advance(state.step)
	update = {"step": nxt}
	if niche_key:
		update["lastNicheKey"] = niche_key
		if nxt == OnboardingStep.FIRST_SESSION_STARTED and not state.firstSessionNiche:
			update["firstSessionNiche"] = niche_key
	if nxt == OnboardingStep.COMPLETED and state.completedAt is None:
		update["completedAt"] = now or datetime.now(timezone.utc)
	return state.model_copy(update=update)


def should_show_onboarding(state: OnboardingState) -> bool:
	return state.step != OnboardingStep.COMPLETED


def is_first_time_user(progress_count: int, state: OnboardingState) -> bool:
	return progress_count == 0 and should_show_onboarding(state)
