"""Boat-to-boat chat endpoints.

Sending waits for the simulated radio attempt, so a response can take a
couple of seconds. ``delivered`` in the response reflects that one
attempt only; the recipient's backup queue holds the message either way.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from kavalan.api.common import optional_location, read_json

router = APIRouter(prefix="/api/v1")


@router.post("/chat/messages")
async def send_message(request: Request) -> dict:
    from kavalan.main import get_services

    body = await read_json(request)
    receipt = await get_services().chat.send(
        from_boat=body.get("from_boat"),
        to_boat=body.get("to_boat"),
        body=body.get("body"),
        kind=body.get("kind", "text"),
        location=optional_location(body),
    )
    return receipt.to_dict()


@router.post("/chat/broadcast")
async def broadcast(request: Request) -> dict:
    from kavalan.main import get_services

    body = await read_json(request)
    receipt = await get_services().chat.broadcast(
        from_boat=body.get("from_boat"),
        body=body.get("body"),
        kind=body.get("kind", "text"),
        location=optional_location(body),
    )
    return receipt.to_dict()


@router.post("/chat/sos")
async def chat_sos(request: Request) -> dict:
    """Broadcast an SOS-kind chat message to every other active boat."""
    from kavalan.main import get_services

    body = await read_json(request)
    receipt = await get_services().chat.send_sos(
        body.get("from_boat"), optional_location(body), body.get("text", ""),
    )
    return receipt.to_dict()


@router.get("/chat/history/{boat_a}/{boat_b}")
async def history(boat_a: str, boat_b: str, limit: int | None = Query(None, ge=1, le=500)) -> dict:
    from kavalan.main import get_services

    messages = await get_services().chat.history(boat_a, boat_b, limit)
    return {"messages": [m.to_dict() for m in messages]}


@router.post("/chat/threads/{thread}/read")
async def mark_read(thread: str, request: Request) -> dict:
    from kavalan.main import get_services

    body = await read_json(request)
    marked = await get_services().chat.mark_read(thread, body.get("boat_id"))
    return {"thread": thread, "marked_read": marked}


@router.get("/chat/threads/{thread}/unread")
async def unread_count(thread: str, boat_id: str) -> dict:
    from kavalan.main import get_services

    count = await get_services().chat.unread_count(thread, boat_id)
    return {"thread": thread, "boat_id": boat_id, "unread": count}


@router.get("/chat/boats/{boat_id}/threads")
async def threads(boat_id: str) -> dict:
    from kavalan.main import get_services

    summaries = await get_services().chat.threads_for(boat_id)
    return {"threads": [s.to_dict() for s in summaries]}


@router.get("/chat/boats/{boat_id}/unread")
async def unread_summary(boat_id: str) -> dict:
    from kavalan.main import get_services

    return await get_services().chat.unread_summary(boat_id)


@router.get("/chat/boats/{boat_id}/statistics")
async def statistics(boat_id: str) -> dict:
    from kavalan.main import get_services

    return await get_services().chat.statistics(boat_id)


@router.get("/chat/boats/{boat_id}/backup")
async def drain_backup(boat_id: str) -> dict:
    """Queued messages for a boat. Reading does not clear the queue."""
    from kavalan.main import get_services

    entries = await get_services().chat.drain_backup(boat_id)
    return {"boat_id": boat_id, "messages": [e.to_dict() for e in entries]}


@router.delete("/chat/boats/{boat_id}/backup")
async def clear_backup(boat_id: str) -> dict:
    from kavalan.main import get_services

    return {"boat_id": boat_id, "cleared": await get_services().chat.clear_backup(boat_id)}


@router.get("/chat/boats/{boat_id}/link-status")
async def link_status(boat_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().chat.link_status(boat_id)).to_dict()
