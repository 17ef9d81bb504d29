import logging
from contextlib import asynccontextmanager

import sentry_sdk
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from jobpost.api.deps import fingerprint_store
from jobpost.api.v1.health import router as health_router
from jobpost.api.v1.postings import router as postings_router
from jobpost.core.config import settings
from jobpost.core.fingerprint_store import SqliteFingerprintStore
from jobpost.core.rate_limit import limiter

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    logger.info("startup llm_provider=%s rate_limit_enabled=%s", settings.llm_provider, settings.rate_limit_enabled)
    yield
    store = fingerprint_store()
    if isinstance(store, SqliteFingerprintStore):
        store.close()


app = FastAPI(title="Job Posting Quality API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(postings_router, prefix="/v1", tags=["Postings"])
