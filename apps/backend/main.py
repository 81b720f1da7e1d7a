from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from contextlib import asynccontextmanager
import os
import logging
import traceback

from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi.errors import RateLimitExceeded
from slowapi import _rate_limit_exceeded_handler

from app.config import Capabilities, get_env_presence
from app.ingest import router as ingest_router
from app.rate_limit import limiter
from crawler.plugins import get_plugin_registry

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def is_dev_mode() -> bool:
    return os.getenv("KLARO_ENV", "").lower() == "dev"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application lifecycle events."""
    klaro_env = os.getenv("KLARO_ENV", "production").lower()
    logger.info(f"[klaro] env: KLARO_ENV={klaro_env}")

    missing = [name for name, present in get_env_presence().items() if not present]
    if missing:
        logger.warning(f"[klaro] Missing environment variables: {', '.join(missing)}")

    sources = [p["source"] for p in get_plugin_registry().list_plugins()]
    logger.info(f"[klaro] Ingestion sources: {', '.join(sources)}")

    yield

    logger.info("[klaro] Shutting down")


app = FastAPI(title="Klaro Ingestion API", version="0.1.0", lifespan=lifespan)

# Add rate limiter state
app.state.limiter = limiter

# Rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Error masking middleware
@app.middleware("http")
async def error_masking_middleware(request: Request, call_next):
    """Mask detailed errors in production; show full errors in dev."""
    try:
        response = await call_next(request)
        return response
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unhandled error: {str(e)}")
        if is_dev_mode():
            logger.error(traceback.format_exc())
            return JSONResponse(
                status_code=500,
                content={
                    "status": "error",
                    "error": str(e),
                    "traceback": traceback.format_exc()
                }
            )

        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "error": "An internal error occurred. Please try again later."
            }
        )


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5000",
        "https://*.vercel.app",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(ingest_router)


@app.get("/api/healthz")
async def healthz():
    return Capabilities.get_status()


@app.get("/api/capabilities")
async def capabilities():
    return Capabilities.get_capabilities()


@app.get("/metrics")
async def metrics_endpoint():
    """Prometheus scrape endpoint"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
