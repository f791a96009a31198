"""Error kinds raised by the coaching core.

Every error carries a stable ``code`` for clients, an HTTP status for the
router layer and optional structured ``details``.
"""
from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class CoachError(Exception):
	code = "ERROR"
	status_code = 500

	def __init__(self, message: str = "", *, details: Optional[Dict[str, Any]] = None) -> None:
		super().__init__(message or self.code)
		self.message = message or self.code
		self.details: Dict[str, Any] = details or {}

	def to_dict(self) -> Dict[str, Any]:
		return {"error": self.code, "message": self.message, **self.details}


class Unauthenticated(CoachError):
	code = "UNAUTHENTICATED"
	status_code = 401


class Forbidden(CoachError):
	code = "FORBIDDEN"
	status_code = 403


class InvalidKey(CoachError):
	code = "INVALID_KEY"
	status_code = 400


class ReservedKey(InvalidKey):
	code = "RESERVED_KEY"


class ValidationFailed(CoachError):
	code = "VALIDATION_FAILED"
	status_code = 400


class NotFound(CoachError):
	code = "NOT_FOUND"
	status_code = 404


class InvalidMode(CoachError):
	code = "INVALID_MODE"
	status_code = 400


class UsageCapped(CoachError):
	code = "FREE_LIMIT"
	status_code = 429


class ClarificationRequired(CoachError):
	code = "CLARIFICATION_REQUIRED"
	status_code = 409


class StoreUnavailable(CoachError):
	code = "STORE_UNAVAILABLE"
	status_code = 503


class GenerationFailed(CoachError):
	code = "GENERATION_FAILED"
	status_code = 502


async def _coach_error_handler(request: Request, exc: CoachError) -> JSONResponse:
	return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
	app.add_exception_handler(CoachError, _coach_error_handler)
