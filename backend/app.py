from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from backend import runtime
from backend.routes import router
from story_relay.config import RelayConfig
from story_relay.engine import ProcessLauncher
from story_relay.models import TurnOutcome
from story_relay.relay import MISSING_INPUT

load_dotenv(Path(__file__).parent.parent / ".env")

# URL prefix → directory under the project root, served as-is when present
STATIC_MOUNTS = ("data", "assets", "dist")


def create_app(config: RelayConfig | None = None, launcher: ProcessLauncher | None = None) -> FastAPI:
    resolved = config or RelayConfig.from_env()
    relay = runtime.init_runtime(resolved, launcher)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # engine processes must not outlive the server
        await relay.close()

    app = FastAPI(title="Story Relay", lifespan=lifespan)
    app.include_router(router, prefix="/api")

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        # turn submission keeps its {ok, error} shape even for unparseable bodies
        if request.url.path == "/api/prompt":
            outcome = TurnOutcome.failure("input", MISSING_INPUT)
            return JSONResponse(outcome.to_response(), status_code=400)
        return await request_validation_exception_handler(request, exc)

    for name in STATIC_MOUNTS:
        directory = resolved.root_dir / name
        if directory.is_dir():
            app.mount(f"/{name}", StaticFiles(directory=directory), name=name)

    web_dir = resolved.root_dir / "web"
    if web_dir.is_dir():
        app.mount("/", StaticFiles(directory=web_dir, html=True), name="web")

    return app


# Default app instance for uvicorn (configured from RELAY_* env vars)
app = create_app()
