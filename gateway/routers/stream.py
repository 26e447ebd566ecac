"""
gateway/routers/stream.py

GET /stream endpoint.
Long-lived text/event-stream response pushing one vitals + fusion snapshot per tick.
"""

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from gateway.services.publisher import StreamPublisher

router = APIRouter()


@router.get("/stream")
async def stream_vitals(request: Request) -> StreamingResponse:
    """
    Stream simulated vitals to one client.

    The tick loop is cancelled when the client disconnects; reconnecting is the
    client's responsibility.
    """
    publisher: StreamPublisher = request.app.state.publisher
    return StreamingResponse(
        publisher.stream(request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
