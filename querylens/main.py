from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from querylens.api.routes import research
from querylens.config import settings
from querylens.models.schemas import HealthResponse
from querylens.services import logger as _log_setup  # noqa: F401  configures sinks


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"QueryLens starting (provider={settings.llm_provider}, model={settings.default_model})")
    yield
    # Shutdown


app = FastAPI(
    title="QueryLens",
    description="Multi-stage research pipeline: decompose, gather, filter, synthesize",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(research.router)


@app.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", service="querylens")
