from contextlib import asynccontextmanager
from fastapi import FastAPI
from .logging import setup_logging
from .api.routes import router as api_router
from .api.proxy import router as proxy_router
from .pipeline.scheduler import schedule_jobs, shutdown_scheduler, run_startup

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    await run_startup()
    schedule_jobs()
    yield
    shutdown_scheduler()

app = FastAPI(title="folio-service", lifespan=lifespan)
app.include_router(api_router)
app.include_router(proxy_router)
