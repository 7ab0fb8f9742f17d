# chefscript/app/main.py
from __future__ import annotations

import logging
import sys

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chefscript.app.config import settings
from chefscript.app.deps import build_image_scheduler
from chefscript.app.routers.auth import router as auth_router
from chefscript.app.routers.feedspy import router as feedspy_router
from chefscript.app.routers.plagiarism import router as plagiarism_router
from chefscript.app.routers.recipes import router as recipes_router
from chefscript.app.routers.styles import router as styles_router
from chefscript.app.routers.templates import router as templates_router
from chefscript.app.routers.tokens import router as tokens_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

app = FastAPI(title="ChefScript API", version="0.3.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(recipes_router)
app.include_router(plagiarism_router)
app.include_router(templates_router)
app.include_router(styles_router)
app.include_router(feedspy_router)
app.include_router(tokens_router)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Uncaught exception: %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


@app.on_event("startup")
async def startup() -> None:
    # one image queue per process, shared by every Recraft call
    app.state.image_scheduler = build_image_scheduler()
    await app.state.image_scheduler.start()


@app.on_event("shutdown")
async def shutdown() -> None:
    scheduler = getattr(app.state, "image_scheduler", None)
    if scheduler is not None:
        await scheduler.stop()


@app.get("/health")
def health():
    return {"status": "ok"}
