from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.responses import RedirectResponse
from .settings import settings
from .routers import session
import logging

BASE_DIR = Path(__file__).resolve().parents[2]
FRONTEND_DIR = BASE_DIR / "frontend"

logging.basicConfig(
	level=settings.log_level.upper(),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("studybuddy")

app = FastAPI(title="StudyBuddy API")
app.include_router(session.router)

# Static page at /app (absolute path so cwd doesn't matter when launching)
if FRONTEND_DIR.is_dir():
	app.mount("/app", StaticFiles(directory=FRONTEND_DIR, html=True), name="frontend")
else:
	logger.warning("Frontend directory %s not found; serving API only", FRONTEND_DIR)

@app.get("/", include_in_schema=False)
async def redirect_root_to_app():
	return RedirectResponse(url="/app")

@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}

@app.on_event("startup")
async def startup_event():
	logger.info("Speech backend: %s (%s)", settings.speech_backend, settings.speech_language)
	if not settings.gemini_api_key:
		logger.warning("GEMINI_API_KEY is not configured; question generation will be refused")

@app.on_event("shutdown")
async def shutdown_event():
	await session.close_controller()
