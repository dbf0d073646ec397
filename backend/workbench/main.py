from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from workbench.core.config import Settings, get_settings
from workbench.core.session_middleware import SessionMiddleware
from workbench.core.session_store import JsonFileSessionStore
from workbench.core.storage import SESSIONS_FILE, Storage
from workbench.routers import auth, chat, configs, messages, notes, prompts, usage
from workbench.utils.logger import configure_logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn.error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)
    data_dir = Path(settings.DATA_DIR)

    storage = Storage(data_dir, settings.AUTH_USERNAME, settings.AUTH_PASSWORD)
    session_store = JsonFileSessionStore(
        data_dir / SESSIONS_FILE, save_delay=settings.SESSION_SAVE_DELAY_SECONDS
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Workbench started, data dir: {data_dir.resolve()}")
        yield
        # pending debounced session writes
        session_store.close()

    app = FastAPI(
        title="LLM Workbench API",
        description="Chat playground for OpenAI-compatible and Google Gemini endpoints",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.storage = storage
    app.state.session_store = session_store

    @app.middleware("http")
    async def require_login(request: Request, call_next):
        path = request.url.path
        if path.startswith("/api") and path not in auth.PUBLIC_PATHS and not auth.is_authenticated(request):
            return JSONResponse(status_code=401, content={"message": "Unauthorized"})
        return await call_next(request)

    app.add_middleware(
        SessionMiddleware,
        store=session_store,
        secret_key=settings.SESSION_SECRET,
        session_cookie=settings.SESSION_COOKIE,
        max_age_ms=settings.SESSION_MAX_AGE_MS,
        https_only=settings.SECURE_COOKIES,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {e}")
            return JSONResponse(status_code=500, content={"message": "Internal Server Error"})
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({time.time() - start:.4f}s)"
        )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        content = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        details = {"loc": list(first.get("loc", [])), "msg": first.get("msg", "")}
        logger.warning(f"Invalid request data on {request.url.path}: {details}")
        return JSONResponse(status_code=400, content={"message": "Invalid request data", "details": details})

    app.include_router(auth.router)
    app.include_router(prompts.router)
    app.include_router(messages.router)
    app.include_router(configs.router)
    app.include_router(chat.router)
    app.include_router(notes.router)
    app.include_router(usage.router)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("workbench.main:create_app", factory=True, host="0.0.0.0", port=5000)
