"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, HTTPException, Request, status

from stoma_tracker.api.schemas import FoodOut, FoodSearchOut, ParseRequest, ParseResponse
from stoma_tracker.app_logging import configure_logging
from stoma_tracker.config import parse_provider_ids
from stoma_tracker.containers import AppContainer
from stoma_tracker.domain.foods import SearchOptions


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(debug=container.settings.debug)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        try:
            await app.state.container.close_resources()
        except Exception:
            logger.exception("Failed to close application resources")

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/foods/search")
    async def search_foods(
        request: Request,
        q: str = "",
        providers: str | None = None,
        limit: int = 20,
        annotate: bool = True,
    ) -> FoodSearchOut:
        """Search every enabled food source, friendliest results first."""
        state_container: AppContainer = request.app.state.container
        options = SearchOptions(
            providers=parse_provider_ids(providers) if providers is not None else None,
            limit=limit,
        )
        results = await state_container.food_search_service.search(
            q, options, annotate=annotate
        )
        return FoodSearchOut(
            query=q, results=[FoodOut.from_domain(item) for item in results]
        )

    @app.get("/foods/barcode/{code}")
    async def lookup_barcode(
        code: str, request: Request, providers: str | None = None
    ) -> FoodOut:
        """Return the best product match for a barcode."""
        state_container: AppContainer = request.app.state.container
        item = await state_container.food_search_service.lookup_barcode(
            code,
            parse_provider_ids(providers) if providers is not None else None,
        )
        if item is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return FoodOut.from_domain(item)

    @app.post("/entries/parse")
    async def parse_entries(payload: ParseRequest, request: Request) -> ParseResponse:
        """Split a free-text daily log into typed entries."""
        state_container: AppContainer = request.app.state.container
        reference_time = payload.timestamp or datetime.now(tz=UTC)
        result = await state_container.entry_extractor.extract_result(
            payload.description, reference_time
        )
        return ParseResponse.from_domain(result)

    return app
