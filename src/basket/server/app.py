"""ASGI application for Basket."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from basket import __version__, metrics
from basket.config import Settings, get_settings
from basket.db.invitations import list_pending_for_user
from basket.db.notifications import get_notification_counts
from basket.db.reference import list_quantity_units
from basket.db.users import update_user_profile
from basket.errors import HTTP_STATUS, BasketError, ErrorKind, make_error_payload
from basket.logging_utils import configure_logging as configure_app_logging
from basket.models.invitations import Invitation
from basket.models.notifications import NotificationCounts
from basket.models.shopping import QuantityUnit
from basket.models.users import Actor, User
from basket.server import deps, households, recipes, stores

logger = logging.getLogger(__name__)


class ProfileUpdateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _configure_logging(settings: Settings) -> None:
    secrets = [settings.api_token or "", settings.registration_invitation_code or ""]
    configure_app_logging(settings.log_level, settings.log_format, secrets)


def _request_extra(request: Request) -> dict[str, Any]:
    request_id = getattr(request.state, "request_id", None)
    return {"extra": {"request_id": request_id}} if request_id else {}


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    _configure_logging(settings)

    application = FastAPI(title="Basket", version=__version__)
    application.include_router(households.router)
    application.include_router(stores.router)
    application.include_router(recipes.router)
    logger.debug("Application created with log level %s", settings.log_level)

    if settings.log_requests:
        http_logger = logging.getLogger("basket.http")

        @application.middleware("http")
        async def log_request_response(request: Request, call_next):
            """Log request/response details without leaking sensitive data."""

            request_id = request.headers.get("X-Request-ID") or uuid4().hex
            request.state.request_id = request_id
            start = perf_counter()
            method = request.method
            try:
                response: Response = await call_next(request)
            except Exception:
                duration_ms = (perf_counter() - start) * 1000
                http_logger.exception(
                    "HTTP %s %s status=500 duration_ms=%.2f",
                    method,
                    request.url.path,
                    duration_ms,
                    extra={"request_id": request_id},
                )
                metrics.REQUEST_COUNT.labels(method=method, path=request.url.path, status="500").inc()
                raise

            duration_ms = (perf_counter() - start) * 1000
            route = request.scope.get("route")
            # label by route template so ids and tokens do not explode label cardinality
            path = getattr(route, "path", request.url.path)
            response.headers.setdefault("X-Request-ID", request_id)
            http_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={"request_id": request_id},
            )
            metrics.REQUEST_COUNT.labels(method=method, path=path, status=str(response.status_code)).inc()
            metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000.0)
            return response

    @application.exception_handler(BasketError)
    async def basket_error_handler(request: Request, exc: BasketError):
        if exc.kind is ErrorKind.INTERNAL:
            logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc, **_request_extra(request))
        else:
            logger.info(
                "Rejected %s %s: %s %s",
                request.method,
                request.url.path,
                exc.kind.value,
                exc.message,
                **_request_extra(request),
            )
        return JSONResponse(status_code=HTTP_STATUS[exc.kind], content=_json_safe(exc.to_payload()))

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "Validation error on %s %s: %s",
            request.method,
            request.url.path,
            exc.errors(),
            **_request_extra(request),
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=make_error_payload(
                ErrorKind.VALIDATION.value, "Request validation failed", _json_safe(exc.errors())
            ),
        )

    @application.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code = "UNAUTHORIZED" if exc.status_code == status.HTTP_401_UNAUTHORIZED else "HTTP_ERROR"
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            code = ErrorKind.NOT_FOUND.value
        return JSONResponse(
            status_code=exc.status_code,
            content=make_error_payload(code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @application.get("/healthz", include_in_schema=False)
    def healthz() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @application.get(
        "/notifications",
        response_model=NotificationCounts,
        summary="Pending invitation counts for the current user",
    )
    def notifications_endpoint(actor: Actor = Depends(deps.get_actor)) -> NotificationCounts:
        return get_notification_counts(actor.email)

    @application.get(
        "/invitations",
        response_model=list[Invitation],
        summary="Pending invitations addressed to the current user",
    )
    def my_invitations(actor: Actor = Depends(deps.get_actor)) -> list[Invitation]:
        return list_pending_for_user(actor.email)

    @application.patch(
        "/user/profile",
        response_model=User,
        summary="Update the current user's display name",
    )
    def update_profile(payload: ProfileUpdateRequest, actor: Actor = Depends(deps.get_actor)) -> User:
        return update_user_profile(actor, name=payload.name)

    @application.get(
        "/quantity-units",
        response_model=list[QuantityUnit],
        summary="List quantity units",
    )
    def quantity_units(auth: None = Depends(deps.require_api_token)) -> list[QuantityUnit]:
        return list_quantity_units()

    return application


app = create_app()

__all__ = ["app", "create_app"]
