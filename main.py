import inspect
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from dal.history_dal import HistoryStore
from routes.history_route import router as history_router
from routes.realtime_ws import router as realtime_router
from routes.upload_route import router as upload_router
from services.capabilities import AnswerGenerator, TextRecognizer
from services.provider_factory import (
    build_answer_client,
    build_generator,
    build_recognizer,
    build_vision_client,
)
from services.realtime.broadcast_hub import BroadcastHub
from services.realtime.pipeline_coordinator import PipelineCoordinator
from services.realtime.subscriber_registry import SubscriberRegistry
from utils.database_init import AsyncDatabaseInitializer
from utils.logging_setup import configure_logging
from utils.settings import Settings

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logger = logging.getLogger(__name__)


async def _aclose(client) -> None:
    """Close an async client if it exposes aclose/close; shutdown errors are logged."""
    if client is None:
        return
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception as exc:
        logger.warning("Error while closing %s: %s", type(client).__name__, exc)


def create_app(
    settings: Optional[Settings] = None,
    recognizer: Optional[TextRecognizer] = None,
    generator: Optional[AnswerGenerator] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Settings are read from the environment at startup unless given. The
    recognizer and generator are built from settings unless injected.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan manager to initialize:
          - the SQLite history store (at DATABASE_DIR/screensage.db)
          - the recognizer and answer generator capabilities
          - the subscriber registry, broadcast hub and pipeline coordinator
        and attach them to `app.state`.
        """
        app_settings = settings or Settings.from_env()
        configure_logging(app_settings.log_level)
        app.state.settings = app_settings

        db_initializer = AsyncDatabaseInitializer(app_settings.database_path)
        await db_initializer.ensure_database()
        app.state.db_initializer = db_initializer
        app.state.history_store = HistoryStore(db_initializer)

        http_client = httpx.AsyncClient(timeout=app_settings.recognition_timeout_seconds)
        app.state.http_client = http_client
        answer_client = None
        vision_client = None
        try:
            active_generator = generator
            if active_generator is None:
                answer_client = build_answer_client(app_settings)
                active_generator = build_generator(app_settings, answer_client)
            active_recognizer = recognizer
            if active_recognizer is None:
                if app_settings.ocr_provider == "openai":
                    vision_client = build_vision_client(app_settings)
                active_recognizer = build_recognizer(app_settings, http_client, vision_client)
        except Exception:
            await _aclose(answer_client)
            await _aclose(vision_client)
            await http_client.aclose()
            raise

        registry = SubscriberRegistry(
            max_pending=app_settings.subscriber_queue_size,
            delivered_record_id=await app.state.history_store.latest_id(),
        )
        hub = BroadcastHub(registry)
        hub.start()
        coordinator = PipelineCoordinator(
            active_recognizer,
            active_generator,
            app.state.history_store,
            hub,
            recognition_timeout=app_settings.recognition_timeout_seconds,
            generation_timeout=app_settings.generation_timeout_seconds,
            persistence_timeout=app_settings.persistence_timeout_seconds,
            max_concurrent_runs=app_settings.max_concurrent_runs,
        )
        app.state.recognizer = active_recognizer
        app.state.generator = active_generator
        app.state.subscriber_registry = registry
        app.state.broadcast_hub = hub
        app.state.coordinator = coordinator
        logger.info(
            "Screen Sage ready (recognizer=%s, generator=%s, db=%s)",
            active_recognizer.name,
            active_generator.name,
            app_settings.database_path,
        )

        try:
            yield
        finally:
            await coordinator.drain()
            await hub.stop()
            await _aclose(answer_client)
            await _aclose(vision_client)
            await http_client.aclose()

    app = FastAPI(lifespan=lifespan)

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the frontend index page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting which components are attached.
        """
        state = request.app.state
        hub = getattr(state, "broadcast_hub", None)
        return {
            "ok": True,
            "db_initialized": hasattr(state, "history_store"),
            "recognizer": getattr(getattr(state, "recognizer", None), "name", None),
            "generator": getattr(getattr(state, "generator", None), "name", None),
            "broadcasting": bool(hub and hub.running),
        }

    # Register application routers
    app.include_router(upload_router)
    app.include_router(history_router)
    app.include_router(realtime_router)

    return app


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


app = create_app()


if __name__ == "__main__":
    main()
