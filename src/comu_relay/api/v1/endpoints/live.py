"""WebSocket endpoints streaming live conversation views.

Each socket owns one feed subscription. Pushes arrive on whichever thread
committed the change, so they are handed to the socket's event loop through
a queue.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from comu_relay.core.errors import RelayError
from comu_relay.schemas.conversation import ConversationOut
from comu_relay.schemas.message import Message
from comu_relay.services.change_feed import FeedHandle, LiveChangeFeed
from comu_relay.services.conversations import get_conversation
from comu_relay.services.identity import IdentityProvider

from ..dependencies import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["live"])


def get_live_feed() -> LiveChangeFeed:
    return LiveChangeFeed()


LiveFeedDep = Annotated[LiveChangeFeed, Depends(get_live_feed)]


async def _stream(websocket: WebSocket, queue: asyncio.Queue[dict[str, Any]], handle: FeedHandle) -> None:
    async def forward() -> None:
        while True:
            await websocket.send_json(await queue.get())

    sender = asyncio.create_task(forward())
    try:
        while True:
            # Client frames are ignored; reading only detects the disconnect.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        handle.close()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception:
            # The client is gone; a failed last push has nowhere to go.
            logger.debug("Feed sender stopped with an error", exc_info=True)


@router.websocket("/conversations/{conversation_id}")
async def conversation_feed(
    websocket: WebSocket,
    conversation_id: str,
    db: SessionDep,
    feed: LiveFeedDep,
    token: Annotated[str | None, Query()] = None,
) -> None:
    """Push the merged message view of a conversation after every change."""
    auth = IdentityProvider(db).resolve(token)
    if auth is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        get_conversation(db, auth, conversation_id)
    except RelayError as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.code)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def push(messages: list[Message]) -> None:
        payload = {
            "type": "messages",
            "conversation_id": conversation_id,
            "data": [m.model_dump(mode="json") for m in messages],
        }
        loop.call_soon_threadsafe(queue.put_nowait, payload)

    handle = feed.subscribe_conversation(conversation_id, auth.principal_id, push)
    logger.info("Live feed opened for %s on %s", auth.principal_id, conversation_id)
    await _stream(websocket, queue, handle)


@router.websocket("/conversations")
async def conversation_list_feed(
    websocket: WebSocket,
    db: SessionDep,
    feed: LiveFeedDep,
    token: Annotated[str | None, Query()] = None,
) -> None:
    """Push the caller's conversation list, most recent first, after every change."""
    auth = IdentityProvider(db).resolve(token)
    if auth is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def push(conversations: list[ConversationOut]) -> None:
        payload = {
            "type": "conversations",
            "data": [c.model_dump(mode="json") for c in conversations],
        }
        loop.call_soon_threadsafe(queue.put_nowait, payload)

    handle = feed.subscribe_conversation_list(auth.principal_id, push)
    await _stream(websocket, queue, handle)
