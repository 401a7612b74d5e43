import logging
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import JSONResponse

from .config import Settings, get_settings
from .db.monitoring import get_pool_snapshot
from .db.session import get_engine
from .errors import SkillQuestError
from .logging_config import configure_logging
from .routes import router, skillquest_error_status


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="SkillQuest Engine", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)

settings_snapshot = get_settings()
logger.info("Engine starting with explorer=%s facilitator=%s", settings_snapshot.explorer_mode_enabled, settings_snapshot.facilitator_mode_enabled)
logger.info("Database configured: %s", bool(settings_snapshot.database_url))


@app.exception_handler(SkillQuestError)
async def skillquest_error_handler(request: Request, exc: SkillQuestError) -> JSONResponse:
    code = skillquest_error_status(exc)
    logger.warning("Request %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "explorer_mode": settings.explorer_mode_enabled,
        "facilitator_mode": settings.facilitator_mode_enabled,
    }


@app.get("/healthz/database")
def database_health() -> Dict[str, Any]:
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except (RuntimeError, SQLAlchemyError) as exc:
        logger.error("Database health check failed: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"status": "ok", "pool": get_pool_snapshot(engine)}
