from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ValidationFailed


MODES = ("checklist", "test", "coaching", "walkthrough")


@dataclass(frozen=True)
class DrillPlan:
    mode: str
    target_count: int
    chunk_size: int
    stop_rule: str
    rationale: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "targetCount": self.target_count,
            "chunkSize": self.chunk_size,
            "stopRule": self.stop_rule,
            "rationale": self.rationale,
        }


_PLANS: Dict[str, DrillPlan] = {
    "checklist": DrillPlan(
        mode="checklist",
        target_count=1,
        chunk_size=1,
        stop_rule="fixed",
        rationale="Checklist mode is best delivered as one actionable plan with checkpoints.",
    ),
    "test": DrillPlan(
        mode="test",
        target_count=20,
        chunk_size=10,
        stop_rule="mastery_2_sets_80",
        rationale="Test mode benefits from enough reps to identify weak areas.",
    ),
    "coaching": DrillPlan(
        mode="coaching",
        target_count=6,
        chunk_size=2,
        stop_rule="user_stop",
        rationale="Coaching mode works best as a short sequence of targeted prompts with feedback.",
    ),
    "walkthrough": DrillPlan(
        mode="walkthrough",
        target_count=3,
        chunk_size=1,
        stop_rule="scenario_complete",
        rationale="Walkthrough mode works best as a few scenarios, each with steps.",
    ),
}

DEFAULT_PLAN = DrillPlan(mode="test", target_count=10, chunk_size=5, stop_rule="fixed", rationale="Default plan.")

_SYNONYMS: Dict[str, str] = {
    "A": "checklist",
    "B": "test",
    "C": "coaching",
    "D": "walkthrough",
    "scenarios": "walkthrough",
}


def _canonical(preference: Optional[str]) -> Optional[str]:
    code = (preference or "").strip()
    code = _SYNONYMS.get(code, code)
    return code if code in _PLANS else None


def plan_for(preference: Optional[str]) -> DrillPlan:
    """Total: unknown or empty preferences get the default plan."""
    code = _canonical(preference)
    return _PLANS[code] if code else DEFAULT_PLAN


def mode_for(preference: Optional[str]) -> str:
    return _canonical(preference) or "test"


def has_more(plan: DrillPlan, total: int) -> bool:
    return total < plan.target_count and plan.stop_rule != "fixed"


def next_cursor(plan: DrillPlan, total: int) -> Optional[str]:
    return f"offset:{total}" if has_more(plan, total) else None


def parse_cursor(cursor: Optional[str]) -> int:
    """Offset encoded in a continuation cursor; no cursor means the first chunk."""
    if not cursor:
        return 0
    prefix, _, value = cursor.partition(":")
    if prefix != "offset" or not value.isdigit():
        raise ValidationFailed("Invalid cursor", details={"cursor": cursor})
    return int(value)
