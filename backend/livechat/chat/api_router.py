"""Read-only room REST API router.

Endpoints:
    GET /api/users    - Participant counts and the current roster
    GET /api/messages - The most recent messages
"""
import logging
from typing import Union

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from livechat.config import get_config

from .engine import get_engine
from .schemas import MessagesResponse, UsersResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["room"])


def _not_ready() -> JSONResponse:
    logger.warning("[api] Room engine not initialised, returning 503")
    return JSONResponse({"error": "Room engine not initialised"}, status_code=503)


@router.get("/users", response_model=UsersResponse)
async def get_users() -> Union[UsersResponse, JSONResponse]:
    """Get everyone currently in the room.

    Returns:
        UsersResponse with total/online counts and participant records.
        Records are removed on disconnect, so both counts are equal.
    """
    engine = get_engine()
    if engine is None:
        return _not_ready()
    users = engine.participants()
    return UsersResponse(total=len(users), online=sum(1 for u in users if u.online), users=users)


@router.get("/messages", response_model=MessagesResponse)
async def get_messages() -> Union[MessagesResponse, JSONResponse]:
    """Get the most recent messages, oldest first.

    Returns:
        MessagesResponse with the number of stored messages and the last
        ``room.api_history`` of them.
    """
    engine = get_engine()
    if engine is None:
        return _not_ready()
    messages = engine.recent_messages(get_config().room.api_history)
    return MessagesResponse(count=engine.get_message_count(), messages=messages)
