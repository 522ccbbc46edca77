import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from walletgate.api.endpoints import auth, health, user
from walletgate.core.config import settings
from walletgate.core.dependencies import get_current_user
from walletgate.core.errors import Unauthenticated, WalletAuthError
from walletgate.db.base import Base
from walletgate.db.session import SessionLocal, engine
from walletgate.schemas.auth import MeResponse
from walletgate.services.credentials import VerifiedIdentity
from walletgate.services.session_sweeper import SessionCleanupSweeper

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, then run the session sweeper for the lifetime of the API."""
    Base.metadata.create_all(bind=engine)

    sweeper = SessionCleanupSweeper(SessionLocal)
    app.state.session_sweeper = sweeper
    sweeper.start()
    try:
        yield
    finally:
        await sweeper.stop()


# Define the FastAPI application instance
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WalletAuthError)
async def wallet_auth_error_handler(request: Request, exc: WalletAuthError) -> JSONResponse:
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    elif exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


# Include your API routers
g_prefix = "/api"
app.include_router(health.router)
app.include_router(auth.router, prefix=f"{g_prefix}/auth")
app.include_router(user.router, prefix=f"{g_prefix}/user")


@app.get("/api/me", tags=["Auth"], response_model=MeResponse)
def api_me(identity: VerifiedIdentity = Depends(get_current_user)) -> MeResponse:
    """Alias of /api/auth/me kept for older clients."""
    return MeResponse(authenticated=True, address=identity.address, expires_at=identity.expires_at)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
