import logging

from fastapi import FastAPI

from .db import init_db
from .errors import register_error_handlers
from .settings import settings
from .routers import creator, drills, niche, onboarding, presets, session, usage


logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Skill Coach API")
register_error_handlers(app)
app.include_router(presets.router)
app.include_router(creator.router)
app.include_router(niche.router)
app.include_router(session.router)
app.include_router(drills.router)
app.include_router(usage.router)
app.include_router(onboarding.router)


@app.get("/info")
def root():
	return {"status": "ok", "llm_configured": bool(settings.gemini_api_key)}


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	init_db()
	logger.info("skill coach API started")
