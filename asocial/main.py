# asocial/main.py
import os
import uvicorn
from fastapi import FastAPI
import structlog

from asocial.routers.user_router import router as user_router
from asocial.routers.post_router import router as post_router
from asocial.routers.platforms_router import router as platforms_router
from asocial.routers.activity_router import router as activity_router
from asocial.infrastructure.database import engine, init_db
from asocial.infrastructure.job_store import JobStore
from asocial.infrastructure.logging_setup import configure_structlog
from asocial.middleware.logging import RequestIdMiddleware
from asocial.services.activity import ActivityFeed
from asocial.services.dispatcher import Dispatcher
from asocial.services.poller import Poller

configure_structlog()
logger = structlog.get_logger()

POLLER_ENABLED = os.getenv("POLLER_ENABLED", "true").lower() == "true"

app = FastAPI(title="Asocial")

app.add_middleware(RequestIdMiddleware)

app.include_router(user_router)
app.include_router(post_router)
app.include_router(platforms_router)
app.include_router(activity_router)

app.state.activity = ActivityFeed()
app.state.poller = None


@app.on_event("startup")
async def on_startup():
    await init_db()
    if POLLER_ENABLED:
        store = JobStore(engine)
        poller = Poller(store, Dispatcher(store, activity=app.state.activity))
        poller.start()
        app.state.poller = poller
    logger.info("app_startup", poller=POLLER_ENABLED)


@app.on_event("shutdown")
async def on_shutdown():
    if app.state.poller is not None:
        await app.state.poller.stop()
    await engine.dispose()
    logger.info("app_shutdown")


if __name__ == "__main__":
    uvicorn.run("asocial.main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)), reload=True)
