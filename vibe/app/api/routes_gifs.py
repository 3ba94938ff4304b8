"""GIF relay endpoint that injects the provider key server-side."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from ..core.config import settings
from ..core.metrics import record_relay_result
from ..core.rate_limiter import limiter
from ..directory.records import ContentFilter
from ..gifs import klipy
from ..gifs.klipy import GifProviderError

router = APIRouter()
logger = logging.getLogger(__name__)


class RelayRequest(BaseModel):
    """Relay parameters; an empty query asks for trending GIFs."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, use_enum_values=True, validate_default=True
    )

    query: str = ""
    content_filter: ContentFilter = ContentFilter.OFF
    page: int = Field(default=1, ge=1)

    @field_validator("query", "content_filter", "page", mode="before")
    @classmethod
    def _falsy_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or value == "" or (info.field_name == "page" and value == 0):
            return cls.model_fields[info.field_name].default
        return value


async def _read_parameters(request: Request) -> Dict[str, Any]:
    if request.method == "GET":
        return dict(request.query_params)
    raw = await request.body()
    if not raw:
        return {}
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("request body must be a JSON object")
    return payload


@router.api_route("/klipy", methods=["GET", "POST"], summary="Proxy a Klipy search or trending call")
@limiter.limit(settings.RATE_LIMIT_GIF_RELAY)
async def klipy_relay(request: Request) -> JSONResponse:
    """Forward a GIF request to Klipy and return its JSON unchanged, error statuses included."""

    try:
        params = RelayRequest.model_validate(await _read_parameters(request))
    except (ValueError, ValidationError) as exc:
        record_relay_result("invalid", "rejected")
        return JSONResponse({"error": f"Invalid parameters: {exc}"}, status_code=status.HTTP_400_BAD_REQUEST)

    kind = "search" if params.query.strip() else "trending"
    try:
        payload = await klipy.fetch_gifs(params.query.strip(), params.content_filter, params.page)
    except GifProviderError as exc:
        if exc.payload is not None and exc.status_code is not None:
            logger.warning("Klipy relay %s answered %s; passing its body through", kind, exc.status_code)
            record_relay_result(kind, "provider_error")
            return JSONResponse(exc.payload, status_code=exc.status_code)
        logger.error("Klipy relay %s failed: %s", kind, exc)
        record_relay_result(kind, "error")
        return JSONResponse({"error": str(exc)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    record_relay_result(kind, "ok")
    return JSONResponse(payload)
