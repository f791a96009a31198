from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class RequiredField:
    key: str
    question: str
    placeholder: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"key": self.key, "question": self.question}
        if self.placeholder:
            out["placeholder"] = self.placeholder
        return out


# Exam, licensing and handbook niches whose rules differ by jurisdiction
JURISDICTION_KEYWORDS: List[str] = [
    "permit test",
    "driving permit",
    "dmv",
    "driver's test",
    "drivers test",
    "cdl",
    "license test",
    "licensing exam",
    "real estate exam",
    "insurance exam",
    "state exam",
    "handbook",
]

STATE_FIELD = RequiredField(
    key="state",
    question="What state are you in? (So I can generate accurate practice questions.)",
    placeholder="Example: Indiana",
)


def _includes_any(text: str, words: List[str]) -> bool:
    lowered = text.lower()
    return any(w in lowered for w in words)


def required_fields(
    niche_key: str,
    niche_label: str,
    ai_context: Optional[str] = None,
    custom_niche: Optional[str] = None,
) -> List[RequiredField]:
    """Fields to collect before drills can be generated.

    Deliberately conservative: only asks when the niche text clearly names a
    jurisdiction-specific exam.
    """
    text = " ".join([niche_key or "", niche_label or "", ai_context or "", custom_niche or ""])
    if _includes_any(text, JURISDICTION_KEYWORDS):
        return [STATE_FIELD]
    return []


def missing_fields(fields: List[RequiredField], answers: Dict[str, Optional[str]]) -> List[RequiredField]:
    return [f for f in fields if not (answers.get(f.key) or "").strip()]
