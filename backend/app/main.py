"""
Pharmacy Distribution Backend.

ARCHITECTURE:
- Operator UI: builds a distribution cart against an inventory snapshot
- FastAPI Backend: inventory, staff lookup, distribution engine, ledger
- SQL database: source of truth for stock and the distribution log
- Identity provider: issues operator tokens (verified here, never minted)

SAFETY MODEL:
- The cart check is advisory; the distribution engine re-checks live stock
- A distribution is all-or-nothing across every line
- Distribution rows are append-only
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import distributions, medicines, users
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.db.init_db import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup. No background tasks: all work is request-triggered."""
    logger.info("Initializing database...")
    init_db()
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="Pharmacy Distribution API",
    description="Medicine inventory and staff distribution log.",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
    ],
    max_age=600,
    expose_headers=["Content-Type"],
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Cache-Control"] = "no-store"
    return response


register_exception_handlers(app)

app.include_router(medicines.router, prefix="/pharmacy", tags=["medicines"])
app.include_router(distributions.router, prefix="/pharmacy", tags=["distributions"])
app.include_router(users.router, prefix="/users", tags=["users"])


@app.get("/health")
def health():
    return {"status": "ok"}
