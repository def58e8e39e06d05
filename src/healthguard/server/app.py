"""FastAPI application exposing the backend functions.

Routes mirror the function URLs the client calls:
    POST /functions/v1/health-chat
    POST /functions/v1/search-disease
    POST /functions/v1/claim-daily-credits
    POST /functions/v1/find-hospitals
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from openai import OpenAIError

from ..assistant import HealthAssistant
from ..config import (
    CHAT_FUNCTION_PATH,
    CLAIM_CREDITS_PATH,
    FIND_HOSPITALS_PATH,
    SEARCH_DISEASE_PATH,
    Settings,
)
from ..credits import CreditLedger
from ..diseases import search_diseases
from ..errors import HealthGuardError
from ..llm import LLMProvider, create_llm_provider
from ..places import FindHospitalsRequest, OverpassPlaceFinder
from ..storage import HealthStore, create_health_store
from .schemas import ChatRequest, ChatResponse, ClaimCreditsResponse, SearchDiseaseRequest

logger = logging.getLogger(__name__)


class ConfigurationError(HealthGuardError):
    """A required setting is missing on the server."""


def _error_response(message: str, status_code: int, **extra: object) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def create_app(
    settings: Settings | None = None,
    assistant: HealthAssistant | None = None,
    store: HealthStore | None = None,
    place_finder: OverpassPlaceFinder | None = None,
) -> FastAPI:
    """Create the application.

    Args:
        settings: Runtime settings (defaults to the environment)
        assistant: Assistant to answer chats; built from settings when omitted
        store: Health store for credits; built from settings when omitted
        place_finder: Finder for nearby places; built from settings when omitted
    """
    settings = settings or Settings.from_env()
    provider: LLMProvider | None = None
    if assistant is None and settings.openrouter_api_key:
        provider = create_llm_provider(
            "openrouter",
            api_key=settings.openrouter_api_key,
            model=settings.openrouter_model,
        )
        assistant = HealthAssistant(provider)
    if store is None:
        if settings.store_backend == "sqlite":
            store = create_health_store("sqlite", path=settings.db_path)
        else:
            store = create_health_store(settings.store_backend)
    owns_finder = place_finder is None
    if place_finder is None:
        place_finder = OverpassPlaceFinder(settings.overpass_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await store.connect()
        try:
            yield
        finally:
            await store.disconnect()
            if provider is not None:
                await provider.close()
            if owns_finder:
                await place_finder.close()

    app = FastAPI(
        title="HealthGuard Functions",
        description="Backend functions for the HealthGuard health assistant",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )
    app.state.assistant = assistant
    app.state.store = store
    app.state.place_finder = place_finder

    @app.exception_handler(HealthGuardError)
    async def healthguard_error_handler(request: Request, exc: HealthGuardError) -> JSONResponse:
        logger.error("Function %s failed: %s", request.url.path, exc)
        return _error_response(str(exc), 500)

    @app.exception_handler(OpenAIError)
    async def llm_error_handler(request: Request, exc: OpenAIError) -> JSONResponse:
        logger.error("LLM provider error on %s: %s", request.url.path, exc)
        return _error_response(f"LLM provider error: {exc}", 500)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": "0.1.0"}

    @app.post(CHAT_FUNCTION_PATH, response_model=ChatResponse)
    async def health_chat(body: ChatRequest, request: Request):
        """Answer a conversation, as JSON or as an SSE stream."""
        chat_assistant: HealthAssistant | None = request.app.state.assistant
        if chat_assistant is None:
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")

        messages = [message.model_dump() for message in body.messages]
        if body.stream:
            frames = chat_assistant.stream(messages, mode=body.mode, user_context=body.user_context)
            # Provider failures before the first frame still get a JSON error response
            first = await anext(frames)

            async def event_stream() -> AsyncIterator[str]:
                yield first
                async for frame in frames:
                    yield frame

            return StreamingResponse(
                event_stream(),
                media_type="text/event-stream",
                headers={"Cache-Control": "no-cache"},
            )

        reply = await chat_assistant.reply(messages, mode=body.mode, user_context=body.user_context)
        return ChatResponse(message=reply)

    @app.post(SEARCH_DISEASE_PATH)
    async def search_disease(body: SearchDiseaseRequest) -> dict:
        """Filter the disease catalog."""
        return search_diseases(body.query, body.category).model_dump(mode="json")

    @app.post(CLAIM_CREDITS_PATH, response_model=ClaimCreditsResponse)
    async def claim_daily_credits(
        request: Request,
        authorization: str | None = Header(default=None),
    ):
        """Grant the caller's daily credits."""
        if not authorization:
            return _error_response("Missing authorization header", 400, success=False)
        # Bearer token identifies the user in this deployment
        user_id = authorization.removeprefix("Bearer ").strip()
        if not user_id:
            return _error_response("Unauthorized", 400, success=False)

        ledger = CreditLedger(request.app.state.store, user_id)
        credits, awarded = await ledger.claim_daily()
        return ClaimCreditsResponse(success=True, credits=credits, awarded=awarded)

    @app.post(FIND_HOSPITALS_PATH)
    async def find_hospitals(body: FindHospitalsRequest, request: Request):
        """List healthcare places near a point, nearest first."""
        if body.lat is None or body.lng is None:
            return _error_response("Latitude and longitude are required", 400)

        finder: OverpassPlaceFinder = request.app.state.place_finder
        places = await finder.find(body.lat, body.lng, radius=body.radius, place_type=body.type)
        return {"hospitals": [place.model_dump(by_alias=True) for place in places]}

    return app
