from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from fastapi import BackgroundTasks, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
import uvicorn

from oddsblaze import fetch_book_odds
from sgp import QuoteCache, SgpAggregator, SgpRequestError, format_sse, parse_request

from server.config import Settings
from server.hub import Hub

logger = logging.getLogger("app")

DISCONNECT_POLL_S = 0.25

settings = Settings()
app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
hub = Hub(settings)
aggregator = SgpAggregator(
    fetch_book_odds,
    QuoteCache(ttl_seconds=settings.sgp_cache_ttl, stale_after_seconds=settings.sgp_stale_after),
    negative_ttl_seconds=settings.sgp_negative_ttl,
    time_budget_ms=settings.sgp_time_budget_ms,
    ping_interval_ms=settings.sgp_ping_interval_ms,
    default_books=settings.sgp_default_books,
    supported_books=settings.sgp_supported_books,
)


def _error(message: str, status: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s", request.url.path)
    return _error("Internal server error", 500)


async def _read_json(request: Request) -> Optional[Any]:
    try:
        return await request.json()
    except ValueError:
        return None


async def _warm_cache(plan) -> None:
    """Drain a quote stream nobody is listening to; it fills the cache."""
    priced = 0
    async for ev in aggregator.stream(plan):
        if ev.event == "quote":
            priced += 1
    logger.info("sgp prefetch %s: %d books answered", plan.legs_hash, priced)


async def _watch_disconnect(request: Request, cancel: asyncio.Event) -> None:
    while not cancel.is_set():
        if await request.is_disconnected():
            cancel.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_S)


@app.get("/health")
async def health():
    return PlainTextResponse("ok")


@app.post("/api/v2/sgp-compare")
async def sgp_compare(request: Request):
    body = await _read_json(request)
    if body is None:
        return _error("Invalid JSON body", 400)
    try:
        legs, books = parse_request(body)
    except SgpRequestError as e:
        return _error(str(e), 400)

    cancel = asyncio.Event()
    watcher = asyncio.ensure_future(_watch_disconnect(request, cancel))
    try:
        result = await aggregator.aggregate(legs, books, cancel=cancel)
    except Exception:
        logger.exception("sgp-compare failed")
        return _error("Internal server error", 500)
    finally:
        cancel.set()
        watcher.cancel()

    if result is None:
        logger.info("sgp-compare aborted by client")
        return _error("Request aborted", 499)
    payload = result.to_dict()
    if not result.books_fetched:
        payload["error"] = "No sportsbooks have SGP tokens for these legs"
    return JSONResponse(payload)


@app.post("/api/sse/sgp-quote")
async def sgp_quote(request: Request):
    body = await _read_json(request)
    if body is None:
        return _error("Invalid JSON body", 400)
    try:
        legs, books = parse_request(body)
        plan = aggregator.plan_stream(legs, books)
    except SgpRequestError as e:
        return _error(str(e), 400)

    if plan.fresh:
        return JSONResponse(aggregator.cached_body(plan))

    if body.get("prefetch"):
        tasks = BackgroundTasks()
        tasks.add_task(_warm_cache, plan)
        return JSONResponse(
            {"legs_hash": plan.legs_hash, "books_pending": plan.books_pending, "prefetch": True},
            status_code=202,
            background=tasks,
        )

    async def events():
        async for ev in aggregator.stream(plan):
            yield format_sse(ev)

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.websocket("/stream")
async def stream(ws: WebSocket):
    await hub.connect(ws)
    try:
        while True:
            try:
                msg = await ws.receive_text()
            except WebSocketDisconnect:
                break
            try:
                data = json.loads(msg)
            except ValueError:
                continue
            if isinstance(data, dict):
                await hub.handle_control(ws, data)
    finally:
        await hub.disconnect(ws)


if __name__ == "__main__":
    uvicorn.run("app:app", host="0.0.0.0", port=settings.port, reload=False)
