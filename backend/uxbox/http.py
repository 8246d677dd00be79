"""
UXBOX Backend - Response Mapping Helpers
=========================================

What:  Turn a resolved dispatch value into the HTTP response of a route.
How:   Values are JSON-encoded with FastAPI's jsonable_encoder so UUIDs,
       datetimes and pydantic models returned by a dispatcher serialize
       the same way FastAPI would serialize them.

    ok(body)                 → 200 + JSON body
    created(location, body)  → 201 + Location header + JSON body
    no_content()             → 204, empty body
"""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.responses import Response


def ok(body: Any = None) -> JSONResponse:
    return JSONResponse(status_code=200, content=jsonable_encoder(body))


def created(location: str, body: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=201,
        content=jsonable_encoder(body),
        headers={"Location": location},
    )


def no_content() -> Response:
    return Response(status_code=204)
