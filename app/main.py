import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Internal imports
from app.config import Settings, cors_origins_from_env, load_settings
from app.models import StatusReply
from app.persona import load_knowledge, load_persona
from app.routers import chat
from app.services.gemini import GeminiRestClient
from app.services.llm_client import GeminiClient
from app.services.orchestrator import ModelClient, ModelOrchestrator
from app.store.usage import UsageRecorder

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_client(settings: Settings) -> ModelClient:
    if settings.transport == "rest":
        return GeminiRestClient(settings.api_key)
    return GeminiClient(settings.api_key)


def create_app(settings: Optional[Settings] = None, client: Optional[ModelClient] = None) -> FastAPI:
    """
    Build the FastAPI app. Settings and the upstream client may be injected
    (tests); otherwise they come from the environment at startup, and a
    missing API key stops the process before it serves anything.
    """

    # ------------------------------------------------------------------
    # 🗄️ Startup / shutdown
    # ------------------------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or load_settings()
        logging.getLogger().setLevel(cfg.log_level)

        usage = UsageRecorder(cfg.usage_log_dir)
        usage.start()

        app.state.settings = cfg
        app.state.persona = load_persona(cfg.persona_file)
        app.state.knowledge = load_knowledge(cfg.knowledge_file)
        app.state.usage = usage
        app.state.orchestrator = ModelOrchestrator(
            client or build_client(cfg),
            cfg.models,
            timeout=cfg.request_timeout,
            usage=usage,
        )
        logger.info("Portfolio chat ready; models=%s transport=%s", ",".join(cfg.models), cfg.transport)

        yield

        await usage.stop()
        logger.info("Portfolio chat shutting down")

    app = FastAPI(title="Portfolio Chat API", version="0.1.0", lifespan=lifespan)

    # ------------------------------------------------------------------
    # 🌐 CORS + frame protection
    # ------------------------------------------------------------------
    origins = list(settings.cors_origins if settings else cors_origins_from_env())
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Content-Security-Policy"] = "frame-ancestors 'none'"
        return response

    # ------------------------------------------------------------------
    # 🧠 Status & health
    # ------------------------------------------------------------------
    @app.get("/", response_model=StatusReply)
    def root(request: Request):
        return StatusReply(status="ok", models=list(request.app.state.settings.models))

    @app.get("/healthz")
    def health():
        return {"ok": True}

    # ------------------------------------------------------------------
    # 🧩 Routers
    # ------------------------------------------------------------------
    app.include_router(chat.router)

    return app


app = create_app()
