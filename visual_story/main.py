import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from pathlib import Path

from visual_story.core.config import settings
from visual_story.core.logger import logger, log_api_request
from visual_story.web import routes as web_routes

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} starting")
    if not settings.GROQ_API_KEY:
        logger.warning("GROQ_API_KEY is not set; generation requests will fail until it is configured.")
    yield
    web_routes.sessions.clear()

app = FastAPI(title="Visual Story Studio", version=settings.VERSION, lifespan=lifespan)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    if request.url.path.startswith("/api"):
        log_api_request(request.method, request.url.path, response.status_code, (time.perf_counter() - start) * 1000)
    return response

#Mount Static Files
BASE_DIR = Path(__file__).resolve().parent
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

#Include Routers
app.include_router(web_routes.router)
