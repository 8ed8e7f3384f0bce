import asyncio

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from codearena import __version__
from codearena.config import ENABLE_DAILY_SCHEDULER
from codearena.daily_challenge.router import router as daily_challenge_router
from codearena.daily_challenge.scheduler import run_daily_jobs
from codearena.database import create_indexes, get_database
from codearena.errors import ArenaError
from codearena.playground.router import router as playground_router
from codearena.submissions.router import router as submissions_router
from codearena.system.health_router import router as health_router
from codearena.utils import setup_logging

logger = setup_logging(__name__)

app = FastAPI(title="CodeArena Evaluation Service", version=__version__)

_background_tasks = []


@app.on_event("startup")
async def startup_event():
    db = get_database()
    await create_indexes(db)

    if ENABLE_DAILY_SCHEDULER:
        _background_tasks.append(asyncio.create_task(run_daily_jobs(db)))
        logger.info("Daily challenge scheduler started")


@app.on_event("shutdown")
async def shutdown_event():
    for task in _background_tasks:
        task.cancel()
    _background_tasks.clear()


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ArenaError)
async def arena_error_handler(request: Request, exc: ArenaError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message, "type": type(exc).__name__},
    )


# ==================== ROUTER REGISTRATION ====================
app.include_router(submissions_router)
app.include_router(daily_challenge_router)
app.include_router(playground_router)
app.include_router(health_router)
# ============================================================


@app.get("/")
async def root():
    return {"service": "codearena", "version": __version__}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
