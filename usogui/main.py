"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from usogui.api.v1 import router as v1_router
from usogui.core.config import settings
from usogui.core.csrf import build_allowed_origins, verify_request_origin

app = FastAPI(
    title="Usogui Wiki API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    # Every route: state-changing requests must show same-origin evidence.
    dependencies=[Depends(verify_request_origin)],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=build_allowed_origins(
        settings.CORS_ALLOWED_ORIGINS, settings.FRONTEND_URL, settings.NODE_ENV
    ),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Usogui Wiki API"}
