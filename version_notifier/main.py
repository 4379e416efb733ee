import asyncio
from pathlib import Path
from fastapi import FastAPI
from starlette.staticfiles import StaticFiles
from version_notifier.core.config import settings
from version_notifier.core.broadcaster import build_broadcaster
from version_notifier.core.logging import setup_logging

app = FastAPI(title=settings.APP_NAME)

setup_logging()

# One broadcaster per process; handlers reach it through get_broadcaster
app.state.broadcaster = build_broadcaster(settings)


@app.on_event("startup")
async def on_startup():
    app.state.broadcaster.poller.bind_loop(asyncio.get_running_loop())


@app.on_event("shutdown")
async def on_shutdown():
    await app.state.broadcaster.poller.aclose()


from version_notifier.api.stream_routes import router as stream_router

app.include_router(stream_router)


@app.get("/health")
def health():
    notifier = app.state.broadcaster
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "subscribers": notifier.subscriber_count,
        "polling": notifier.poller.is_running,
    }


# Serve the build-time public dir (version.txt) last so API routes win
if Path(settings.PUBLIC_DIR).is_dir():
    app.mount("/", StaticFiles(directory=settings.PUBLIC_DIR), name="public")
