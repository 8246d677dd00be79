"""
UXBOX Backend - Route Dependencies
===================================

What:  FastAPI dependencies shared by the page routes:
       - get_dispatcher:   the Dispatcher executing query/novelty messages
       - get_current_user: id of the user authenticated upstream
How:   Injected with Depends(); tests replace get_dispatcher through
       app.dependency_overrides.

Identity sources, in order:
    1. request.state.user, set by an in-process authentication middleware
       (a UUID, a UUID string, or a mapping with an "id" key)
    2. the trusted header named by settings.auth_user_header, set by the
       gateway after authenticating the caller
"""

import logging
from collections.abc import Mapping
from uuid import UUID

from fastapi import Request

from uxbox.config import settings
from uxbox.exceptions import AuthenticationError
from uxbox.services.dispatcher_base import Dispatcher
from uxbox.services.remote_dispatcher import remote_dispatcher

logger = logging.getLogger(__name__)


def get_dispatcher() -> Dispatcher:
    return remote_dispatcher


async def get_current_user(request: Request) -> UUID:
    """
    Resolve the authenticated user id.

    Raises:
        AuthenticationError: No identity was provided, or it is not a UUID (→ 401).
    """
    user = getattr(request.state, "user", None)
    if user is None:
        user = request.headers.get(settings.auth_user_header)

    if isinstance(user, Mapping):
        user = user.get("id")
    if user is None or user == "":
        raise AuthenticationError()
    if isinstance(user, UUID):
        return user

    try:
        return UUID(str(user).strip())
    except ValueError:
        logger.warning("Rejected malformed user identity on %s", request.url.path)
        raise AuthenticationError(message="Invalid user identity")
