"""aiohttp HTTP surface for ask-finance.

Routes:
- POST /api/chat: run one chat request, streamed as server-sent events
- GET /api/threads: threads of the calling user, most recent first
- GET, PATCH, DELETE /api/threads/{thread_id}: one thread with its messages, rename, delete
- POST /api/analysis: run one analysis engine directly
- GET /api/analysis: extract metrics from the ``text`` query parameter
- GET /health: liveness check
"""

import asyncio
import json
from contextlib import aclosing
from typing import Any

from aiohttp import web

from ..config.schemas import EngineConfig
from ..errors import ModelCallError, RequestValidationError, ThreadNotFoundError
from ..service import ChatService, build_service
from ..services import StoredTurn, Thread
from ..streaming import encode_event
from ..utils import get_logger

logger = get_logger(__name__)

SERVICE_KEY = web.AppKey("service", ChatService)
USER_HEADER = "X-User-Id"
DEFAULT_USER = "local"

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _json_error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _user_id(request: web.Request) -> str:
    return request.headers.get(USER_HEADER, DEFAULT_USER)


def _dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False)


async def chat(request: web.Request) -> web.StreamResponse:
    """Stream one chat request.

    Input errors are answered with a JSON 400 (404 for an unknown thread)
    before any event is written.
    """
    service = request.app[SERVICE_KEY]
    try:
        payload: Any = await request.json()
    except ValueError:
        return _json_error("Request body must be JSON", 400)
    if not isinstance(payload, dict):
        return _json_error("Request body must be a JSON object", 400)

    try:
        prepared = await service.prepare(payload, _user_id(request))
    except ThreadNotFoundError as e:
        return _json_error(str(e), 404)
    except RequestValidationError as e:
        return _json_error(f"Message is required: {e}", 400)

    response = web.StreamResponse(headers={**SSE_HEADERS, "X-Thread-Id": prepared.thread.id})
    await response.prepare(request)

    cancel_event = asyncio.Event()
    async with aclosing(service.run(prepared, cancel_event)) as events:
        async for event in events:
            try:
                await response.write(encode_event(event).encode("utf-8"))
            except ConnectionResetError:
                logger.info(f"Client disconnected from thread {prepared.thread.id}")
                cancel_event.set()
                break

    if not cancel_event.is_set():
        await response.write_eof()
    return response


async def list_threads(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    threads = await service.store.list_threads(_user_id(request))
    return web.json_response(
        {"threads": [thread.model_dump(mode="json") for thread in threads], "total": len(threads)},
        dumps=_dumps,
    )


def _message_payload(stored: StoredTurn) -> dict[str, Any]:
    return {
        "role": stored.turn.role,
        "content": stored.turn.text,
        "citations": stored.citations,
        "canvas": stored.canvas.to_wire() if stored.canvas is not None else None,
        "toolCalls": stored.tool_calls,
        "createdAt": stored.created_at.isoformat(),
    }


async def _read_json_object(request: web.Request) -> dict[str, Any]:
    """Parse the request body.

    Raises:
        RequestValidationError: If the body is not a JSON object
    """
    try:
        payload: Any = await request.json()
    except ValueError as e:
        raise RequestValidationError("Request body must be JSON") from e
    if not isinstance(payload, dict):
        raise RequestValidationError("Request body must be a JSON object")
    return payload


async def _owned_thread(request: web.Request) -> Thread:
    """The thread named in the path, if the caller owns it.

    Raises:
        web.HTTPNotFound: If the thread does not exist for this user
    """
    service = request.app[SERVICE_KEY]
    thread = await service.store.get_thread(request.match_info["thread_id"], _user_id(request))
    if thread is None:
        raise web.HTTPNotFound(text=_dumps({"error": "Thread not found"}), content_type="application/json")
    return thread


async def get_thread(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    thread = await _owned_thread(request)
    turns = await service.store.list_turns(thread.id)
    payload = {**thread.model_dump(mode="json"), "messages": [_message_payload(stored) for stored in turns]}
    return web.json_response({"thread": payload}, dumps=_dumps)


async def rename_thread(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    thread = await _owned_thread(request)
    try:
        body = await _read_json_object(request)
    except RequestValidationError as e:
        return _json_error(str(e), 400)

    title = body.get("title")
    if not isinstance(title, str) or not title.strip():
        return _json_error("Title is required", 400)

    renamed = await service.store.rename_thread(thread.id, thread.user_id, title.strip())
    if renamed is None:
        return _json_error("Thread not found", 404)
    return web.json_response({"thread": renamed.model_dump(mode="json")}, dumps=_dumps)


async def delete_thread(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    thread = await _owned_thread(request)
    if not await service.store.delete_thread(thread.id, thread.user_id):
        return _json_error("Thread not found", 404)
    logger.info(f"Deleted thread {thread.id}", extra={"thread_id": thread.id})
    return web.json_response({"success": True, "message": "Thread deleted successfully"})


async def run_analysis(request: web.Request) -> web.Response:
    """Run one analysis engine and answer with its JSON result."""
    service = request.app[SERVICE_KEY]
    if service.analysis is None:
        return _json_error("Analysis is not configured", 503)

    try:
        body = await _read_json_object(request)
        result = await service.analysis.run(body, _user_id(request))
    except ThreadNotFoundError as e:
        return _json_error(str(e), 404)
    except RequestValidationError as e:
        return _json_error(str(e), 400)
    except ModelCallError as e:
        logger.error(f"Analysis failed: {e}")
        return _json_error(f"Analysis failed: {e}", 502)
    return web.json_response(result, dumps=_dumps)


async def extract_metrics(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    if service.analysis is None:
        return _json_error("Analysis is not configured", 503)

    try:
        metrics = await service.analysis.extract_metrics(
            request.query.get("text", ""), request.query.get("focus") or None
        )
    except RequestValidationError as e:
        return _json_error(str(e), 400)
    except ModelCallError as e:
        logger.error(f"Metric extraction failed: {e}")
        return _json_error("Failed to extract metrics", 502)
    return web.json_response({"success": True, "metrics": [m.to_wire() for m in metrics]}, dumps=_dumps)


async def health(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    return web.json_response({"status": "ok", "tools": len(service.registry.list_all())})


def create_app(service: ChatService) -> web.Application:
    """Create the aiohttp application.

    Args:
        service: Chat service handling the requests

    Returns:
        Configured application
    """
    app = web.Application()
    app[SERVICE_KEY] = service
    app.router.add_post("/api/chat", chat)
    app.router.add_get("/api/threads", list_threads)
    app.router.add_get("/api/threads/{thread_id}", get_thread)
    app.router.add_patch("/api/threads/{thread_id}", rename_thread)
    app.router.add_delete("/api/threads/{thread_id}", delete_thread)
    app.router.add_post("/api/analysis", run_analysis)
    app.router.add_get("/api/analysis", extract_metrics)
    app.router.add_get("/health", health)
    return app


def run_server(config: EngineConfig) -> None:
    """Serve the application until interrupted.

    Client disconnects cancel the request handler, which cancels the loop.
    """
    app = create_app(build_service(config))
    logger.info(f"Serving on http://{config.server.host}:{config.server.port}")
    web.run_app(
        app,
        host=config.server.host,
        port=config.server.port,
        handler_cancellation=True,
        print=None,
    )
