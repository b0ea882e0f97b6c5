"""Response rendering with JSON / Elisp content negotiation."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from marmalade_api.elisp.sexp import alist, serialize

ELISP_MEDIA_TYPE = "text/x-script.elisp"
JSON_MEDIA_TYPE = "application/json"


def wants_elisp(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return ELISP_MEDIA_TYPE in accept and JSON_MEDIA_TYPE not in accept


def render(
    request: Request,
    payload: Mapping[str, Any],
    *,
    status_code: int = 200,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """Render ``payload`` as an Elisp alist or as JSON depending on ``Accept``."""

    if wants_elisp(request):
        return Response(
            content=serialize(alist(jsonable_encoder(payload))),
            status_code=status_code,
            media_type=ELISP_MEDIA_TYPE,
            headers=dict(headers or {}),
        )
    return JSONResponse(
        content=jsonable_encoder(payload),
        status_code=status_code,
        headers=dict(headers or {}),
    )


__all__ = ["ELISP_MEDIA_TYPE", "render", "wants_elisp"]
