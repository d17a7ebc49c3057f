"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlsplit

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status

from meal_tracker.api.admin import router as admin_router
from meal_tracker.api.models import MealRequest
from meal_tracker.app_logging import configure_logging
from meal_tracker.config import parse_allowed_reply_hosts
from meal_tracker.containers import AppContainer


def _get_api_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.api_token


async def require_client(
    x_api_token: str | None = Header(default=None),
    api_token: str = Depends(_get_api_token),
) -> None:
    """Ensure meal submissions include a valid client token."""
    if not x_api_token or x_api_token != api_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    allowed_reply_hosts = parse_allowed_reply_hosts(
        container.settings.allowed_reply_hosts
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post(
        "/meals",
        status_code=status.HTTP_202_ACCEPTED,
        dependencies=[Depends(require_client)],
    )
    async def log_meal(payload: MealRequest, request: Request) -> dict[str, str]:
        """Accept a meal description and resolve it in the background."""
        text = payload.text.strip()
        if not text:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Empty meal text"
            )
        if payload.reply_url and not _is_reply_allowed(
            payload.reply_url, allowed_reply_hosts
        ):
            logger.warning("Rejected reply URL host: %s", payload.reply_url)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Reply URL not allowed"
            )
        state_container: AppContainer = request.app.state.container
        state_container.meal_log_service.submit(text, payload.reply_url)
        logger.info("Meal message accepted (%s chars)", len(text))
        return {"status": "accepted"}

    return app


def _is_reply_allowed(reply_url: str, allowed: set[str] | None) -> bool:
    """Return true when the reply URL is http(s) and its host is allowed."""
    parts = urlsplit(reply_url)
    if parts.scheme not in {"http", "https"} or not parts.hostname:
        return False
    return allowed is None or parts.hostname.lower() in allowed
