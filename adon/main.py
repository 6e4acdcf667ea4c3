import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from adon.api.v1.api import api_router
from adon.core.components import Components, build_components
from adon.core.config import settings
from adon.core.errors import AdonError, error_to_http
from adon.core.firebase import initialize_firebase

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "components", None) is None:
        firebase_app = None
        if settings.STORE_BACKEND == "firestore" or settings.PUSH_BACKEND == "fcm":
            firebase_app = initialize_firebase(settings)
        app.state.components = build_components(settings, firebase_app=firebase_app)
    logger.info(f"🚀 {settings.PROJECT_NAME} ready ({settings.FUNCTIONS_REGION})")
    yield


def create_app(components: Optional[Components] = None) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )
    # Injected components (tests) skip Firebase initialization in the lifespan
    app.state.components = components

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(AdonError)
    async def adon_error_handler(request: Request, exc: AdonError):
        if exc.code.value == "internal":
            logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message}")
        return error_to_http(exc)

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME}"}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
