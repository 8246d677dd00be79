"""
UXBOX Backend - Pages Route Handlers
=====================================

What:  CRUD and history retrieval for the pages resource.
How:   Each handler is validate → build message → dispatch → map response.
       Validation is declared through the parameter schemas and runs before
       the handler body; the dispatcher is awaited exactly once.
Who:   Called by the workspace frontend.

Route Inventory:
    GET    /api/pages?project=          query    list-pages-by-project  → 200
    POST   /api/pages                   novelty  create-page            → 201 + Location
    PUT    /api/pages/{id}              novelty  update-page            → 200
    PUT    /api/pages/{id}/metadata     novelty  update-page-metadata   → 200
    DELETE /api/pages/{id}              novelty  delete-page            → 204
    GET    /api/pages/{id}/history      query    list-page-history      → 200

Dispatch failures are not caught here; the global handlers in main.py turn
them into responses.
"""

import logging
from collections.abc import Mapping
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse
from starlette.responses import Response

from uxbox import http
from uxbox.dependencies import get_current_user, get_dispatcher
from uxbox.exceptions import DispatchError
from uxbox.schemas.common import ErrorResponse
from uxbox.schemas.message import Message, MessageType
from uxbox.schemas.page import (
    PageCreate,
    PageHistoryQuery,
    PageListQuery,
    PageMetadataUpdate,
    PageUpdate,
)
from uxbox.services.dispatcher_base import Dispatcher
from uxbox.validation import UUIDStr

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pages", tags=["Pages"])

PageId = Annotated[UUIDStr, Path(description="Page id")]

COMMON_ERRORS = {
    400: {"description": "Invalid parameters", "model": ErrorResponse},
    401: {"description": "No authenticated user", "model": ErrorResponse},
    503: {"description": "Services layer unavailable", "model": ErrorResponse},
}


def page_location(page_id: Any) -> str:
    return f"/api/pages/{page_id}"


@router.get(
    "",
    responses=COMMON_ERRORS,
    summary="List pages in a project",
)
async def list_pages(
    params: Annotated[PageListQuery, Query()],
    user: UUID = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    message = Message.build(MessageType.LIST_PAGES_BY_PROJECT, user, params.to_payload())
    result = await dispatcher.query(message)
    return http.ok(result)


@router.post(
    "",
    status_code=201,
    responses=COMMON_ERRORS,
    summary="Create page for a project",
)
async def create_page(
    body: PageCreate,
    user: UUID = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """
    The Location header points at the id assigned by the services layer;
    when the result carries no id, the client-chosen id is used. With
    neither, the upstream response is invalid (502).
    """
    payload = body.to_payload()
    message = Message.build(MessageType.CREATE_PAGE, user, payload)
    result = await dispatcher.novelty(message)

    page_id = result.get("id") if isinstance(result, Mapping) else None
    if page_id is None:
        page_id = payload.get("id")
    if page_id is None:
        logger.error("Create page returned no id and none was supplied: %r", result)
        raise DispatchError(
            message="Services layer returned no page id", status_code=502
        )

    logger.info("Page %s created in project %s", page_id, payload["project"])
    return http.created(page_location(page_id), result)


@router.put(
    "/{page_id}",
    responses=COMMON_ERRORS,
    summary="Update page",
)
async def update_page(
    page_id: PageId,
    body: PageUpdate,
    user: UUID = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    # the path id always wins over the body id
    payload = {**body.to_payload(), "id": page_id}
    message = Message.build(MessageType.UPDATE_PAGE, user, payload)
    result = await dispatcher.novelty(message)
    return http.ok(result)


@router.put(
    "/{page_id}/metadata",
    responses=COMMON_ERRORS,
    summary="Update page metadata",
)
async def update_page_metadata(
    page_id: PageId,
    body: PageMetadataUpdate,
    user: UUID = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    payload = {**body.to_payload(), "id": page_id}
    message = Message.build(MessageType.UPDATE_PAGE_METADATA, user, payload)
    result = await dispatcher.novelty(message)
    return http.ok(result)


@router.delete(
    "/{page_id}",
    status_code=204,
    responses=COMMON_ERRORS,
    summary="Delete page",
)
async def delete_page(
    page_id: PageId,
    user: UUID = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> Response:
    message = Message.build(MessageType.DELETE_PAGE, user, {"id": page_id})
    await dispatcher.novelty(message)
    return http.no_content()


@router.get(
    "/{page_id}/history",
    responses=COMMON_ERRORS,
    summary="Retrieve the page history",
)
async def retrieve_page_history(
    page_id: PageId,
    params: Annotated[PageHistoryQuery, Query()],
    user: UUID = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    payload = {**params.to_payload(), "id": page_id}
    message = Message.build(MessageType.LIST_PAGE_HISTORY, user, payload)
    result = await dispatcher.query(message)
    return http.ok(result)
