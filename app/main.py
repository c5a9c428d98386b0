# ============================================================
#   Fit Intent API
#   Event ingestion + intent pipeline + dashboard read views
# ============================================================

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# ============================================================
# ENV
# ============================================================
load_dotenv()

from app.core.config import get_intent_config, get_settings  # noqa: E402
from app.core.rate_limit import limiter  # noqa: E402
from app.api.v1.router import api_router  # noqa: E402
from app.api.v1 import health  # noqa: E402
from app.utils.sentry import init_sentry  # noqa: E402

settings = get_settings()

# ============================================================
# LOGGING + SENTRY
# ============================================================
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

init_sentry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail at startup, not on the first event, if the policy file is bad.
    config = get_intent_config()
    logger.info(
        "Intent policy loaded: window=%ss combo=%ss thresholds=%s/%s/%s",
        config.rolling_window_seconds,
        config.combo_window_seconds,
        config.thresholds.medium,
        config.thresholds.strong,
        config.thresholds.very_strong,
    )
    yield


# ============================================================
# FASTAPI APP + RATE LIMITING
# ============================================================
app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================
# CORS
# ============================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# REGISTER ROUTERS
# ============================================================
app.include_router(api_router, prefix=settings.API_PREFIX)
app.include_router(health.router)


@app.get("/")
def root():
    return {"message": settings.PROJECT_NAME, "status": "OK"}


# ============================================================
# UVICORN ENTRYPOINT
# ============================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
