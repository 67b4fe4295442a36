from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wiki_console.auth_router import router as auth_router
from wiki_console.config import settings
from wiki_console.exception_handlers import register_exception_handlers
from wiki_console.imports.router import router as imports_router
from wiki_console.logging_config import setup_logging
from wiki_console.notifications.router import router as notifications_router
from wiki_console.runtime import close_runtime, init_runtime
from wiki_console.system_status.router import router as system_status_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_runtime(getattr(app.state, "runtime", None))
    yield
    await close_runtime()


app = FastAPI(
    title="Wiki Console",
    description="Page import workflow and background job status for the wiki",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(imports_router, prefix="/api/v1/import", tags=["import"])
app.include_router(system_status_router, prefix="/api/v1/system", tags=["system"])
app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])


@app.get("/api/v1/health")
async def health():
    from wiki_console.runtime import get_runtime

    runtime = get_runtime()
    return {"status": "healthy", "job_status": runtime.overlay.synchronizer.state}
