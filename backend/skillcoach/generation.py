"""Thin adapter over the language-model content pipeline.

The core only assembles the inputs (composed context, clarifying answers,
drill plan, session data) and stores what comes back; prompt wording lives
here and nowhere else.
"""
from __future__ import annotations
import json
import re
from typing import Any, Dict, List, Optional, Protocol

from .drill_plan import DrillPlan
from .errors import GenerationFailed
from .niche_context import ComposedContext


class TextGenerator(Protocol):
	async def generate(self, prompt: str) -> str: ...


PRACTICE_FORMATS = [
	"Checklist / routine (step-by-step you can follow today)",
	"Multiple-choice quiz (test me and explain the right answers)",
	"Coaching Q&A (ask me questions and coach me through my answers)",
	"Scenarios / examples (walk me through realistic situations step by step)",
]


def extract_json(text: str) -> Any:
	try:
		return json.loads(text)
	except ValueError:
		pass
	code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
	if code_block:
		try:
			return json.loads(code_block.group(1))
		except ValueError:
			pass
	first = text.find("{")
	last = text.rfind("}")
	if first != -1 and last > first:
		try:
			return json.loads(text[first : last + 1])
		except ValueError:
			pass
	raise GenerationFailed("Language model did not return valid JSON")


def build_generation_request(
	context: ComposedContext,
	answers: Dict[str, Optional[str]],
	plan: DrillPlan,
	session_data: Dict[str, Any],
) -> Dict[str, Any]:
	return {
		"composedContext": {"label": context.label, "context": context.context},
		"requiredFieldAnswers": {k: v for k, v in answers.items() if v},
		"drillPlan": plan.to_dict(),
		"sessionData": dict(session_data),
	}


def _drills_prompt(request: Dict[str, Any], count: int, offset: int, cursor: Optional[str] = None) -> str:
	ctx = request["composedContext"]
	plan = request["drillPlan"]
	session = request["sessionData"]
	answers = request["requiredFieldAnswers"]
	lines = [
		"You are an AI mentor generating focused practice drills.",
		f"Niche label: {ctx['label']}",
		f"Niche context: {ctx['context']}",
	]
	if answers.get("state"):
		location = answers["state"] + (f", {answers['country']}" if answers.get("country") else "")
		lines.append(f"User's location: {location}. Align questions to local rules; these are practice questions, not official text.")
	if answers.get("testType"):
		lines.append(f"Test type: {answers['testType']}")
	if cursor or offset:
		chunk_note = f"This is a continuation chunk (cursor {cursor or 'offset:' + str(offset)}); {offset} drills already exist, do not repeat them."
	else:
		chunk_note = "This is the first chunk."
	lines += [
		f"User struggle: {session.get('struggle', '')}",
		f"Session objective: {session.get('objective', '')}",
		f"Practice mode: {plan['mode']}. Generate {count} drills (items {offset + 1}-{offset + count} of {plan['targetCount']}).",
		chunk_note,
		'Return ONLY JSON: {"drills": [{"question": string, "options": [string], "answer": string, "explanation": string}]}',
	]
	return "\n".join(lines)


async def generate_drills(
	client: TextGenerator,
	request: Dict[str, Any],
	*,
	offset: int = 0,
	cursor: Optional[str] = None,
) -> List[Dict[str, Any]]:
	plan = request["drillPlan"]
	count = max(1, min(plan["chunkSize"], plan["targetCount"] - offset))
	raw = await client.generate(_drills_prompt(request, count, offset, cursor))
	data = extract_json(raw)
	drills = data.get("drills") if isinstance(data, dict) else data
	if not isinstance(drills, list):
		raise GenerationFailed("Language model response missing drills")
	return [d for d in drills if isinstance(d, dict)]


async def suggest_objective(client: TextGenerator, niche: str, struggle: str) -> Dict[str, Any]:
	formats = "\n".join(f"- {f}" for f in PRACTICE_FORMATS)
	prompt = (
		"You are an AI mentor inside an interactive learning app.\n"
		"1) Summarize the user's struggle as one actionable sentence formatted exactly: \"Today's Focus: ...\"\n"
		"2) Ask how they want to practice, with exactly 4 options keyed A-D, each a learning FORMAT based on:\n"
		f"{formats}\n"
		'Return ONLY JSON: {"objective": string, "clarificationQuestion": string, "options": [{"key": string, "label": string}]}\n\n'
		f"Niche: {niche}\nUser struggle/goal:\n{struggle}"
	)
	data = extract_json(await client.generate(prompt))
	if (
		not isinstance(data, dict)
		or not data.get("objective")
		or not data.get("clarificationQuestion")
		or not isinstance(data.get("options"), list)
		or len(data["options"]) < 3
	):
		raise GenerationFailed("Language model response missing required fields")
	return {
		"objective": data["objective"],
		"clarificationQuestion": data["clarificationQuestion"],
		"options": data["options"],
	}
