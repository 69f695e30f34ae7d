"""
FastAPI application for Mermaid diagram repair.

Exposes the repair pipeline (process / validate / fallback) over REST and
one render session per display surface.  Surface state is pushed to the
browser via Server-Sent Events whenever a render settles.
"""

from __future__ import annotations

import asyncio
import json
import sys
import traceback
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse

from diagram_repair import config
from diagram_repair.errors import DiagramRepairError, InvalidInputError
from diagram_repair.fallback import fallback
from diagram_repair.kinds import DiagramKind, parse_kind
from diagram_repair.mmdc import MermaidCliRenderer
from diagram_repair.pipeline import process
from diagram_repair.validator import validate
from server.store import SurfaceStore

store = SurfaceStore(MermaidCliRenderer())


@asynccontextmanager
async def lifespan(_app: FastAPI):
    print(f"[app] Renderer: {' '.join(config.MMDC_COMMAND)}", file=sys.stderr)
    try:
        yield
    finally:
        print("[app] Shutting down…", file=sys.stderr)
        count = store.cancel_all()
        print(f"[app] Shutdown complete ({count} surface(s) cancelled)", file=sys.stderr)


app = FastAPI(title="Diagram Repair", lifespan=lifespan)


@app.exception_handler(DiagramRepairError)
async def diagram_repair_error_handler(_request: Request, exc: DiagramRepairError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


# ──────────────────────────────────────────────────────────────────
# Request helpers
# ──────────────────────────────────────────────────────────────────

async def _read_body(request: Request) -> dict:
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise InvalidInputError("Request body must be JSON")
    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return body


def _require_text(body: dict, field: str) -> str:
    value = body.get(field)
    if not isinstance(value, str):
        raise InvalidInputError(f"{field} is required")
    if len(value) > config.MAX_MESSAGE_LENGTH:
        raise HTTPException(
            status_code=413,
            detail=f"{field} exceeds {config.MAX_MESSAGE_LENGTH} characters",
        )
    return value


def _kind(value: Any) -> Optional[DiagramKind]:
    if value is not None and not isinstance(value, str):
        raise InvalidInputError("kind must be a string")
    try:
        return parse_kind(value)
    except ValueError as exc:
        raise InvalidInputError(str(exc))


# ──────────────────────────────────────────────────────────────────
# REST API: pipeline
# ──────────────────────────────────────────────────────────────────

@app.post("/api/process")
async def process_message(request: Request):
    body = await _read_body(request)
    message = _require_text(body, "message")
    hint = _kind(body.get("hint"))
    try:
        result = process(message, hint)
    except Exception as exc:
        traceback.print_exc()
        raise HTTPException(status_code=500, detail=str(exc))
    return JSONResponse(content=result.to_dict())


@app.post("/api/validate")
async def validate_text(request: Request):
    body = await _read_body(request)
    text = _require_text(body, "text")
    kind = _kind(body.get("kind"))
    return JSONResponse(content=validate(text, kind).to_dict())


@app.get("/api/fallback/{kind}")
async def get_fallback(kind: str):
    parsed = _kind(kind) or DiagramKind.UNKNOWN
    return JSONResponse(content={"kind": parsed.value, "text": fallback(parsed)})


# ──────────────────────────────────────────────────────────────────
# REST API: render surfaces
# ──────────────────────────────────────────────────────────────────

@app.get("/api/surfaces")
async def list_surfaces():
    return JSONResponse(content=store.list_surfaces())


@app.post("/api/surfaces/{surface_id}/render")
async def render_surface(surface_id: str, request: Request):
    """Start a render. The result arrives through the events stream."""
    body = await _read_body(request)
    text = _require_text(body, "text")
    kind = _kind(body.get("kind"))
    token = store.submit(surface_id, text, kind)
    print(f"[app] {surface_id}: render submitted (token {token})", file=sys.stderr)
    return JSONResponse(content={"surface_id": surface_id, "token": token}, status_code=202)


@app.delete("/api/surfaces/{surface_id}")
async def remove_surface(surface_id: str):
    snapshot = store.remove(surface_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Surface not found")
    print(f"[app] {surface_id}: removed", file=sys.stderr)
    return JSONResponse(content={"removed": surface_id, "snapshot": snapshot})


@app.get("/api/surfaces/{surface_id}")
async def get_surface(surface_id: str):
    snapshot = store.snapshot(surface_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Surface not found")
    return JSONResponse(content=snapshot)


# ──────────────────────────────────────────────────────────────────
# SSE: Server-Sent Events
# ──────────────────────────────────────────────────────────────────

@app.get("/api/surfaces/{surface_id}/events")
async def surface_events(surface_id: str, request: Request):
    """SSE stream that pushes the surface state whenever it changes."""
    if store.get(surface_id) is None:
        raise HTTPException(status_code=404, detail="Surface not found")

    async def event_generator():
        last_version = -1
        try:
            while True:
                if await request.is_disconnected() or store.get(surface_id) is None:
                    break
                seen = store.version
                current = store.surface_version(surface_id)
                if current != last_version:
                    data = json.dumps(store.snapshot(surface_id), default=str)
                    yield f"data: {data}\n\n"
                    last_version = current
                try:
                    await asyncio.wait_for(
                        store.wait_for_change(seen),
                        timeout=30.0,
                    )
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        except asyncio.CancelledError:
            return

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


def main() -> None:
    import uvicorn

    uvicorn.run("server.app:app", host="127.0.0.1", port=8000)


if __name__ == "__main__":
    main()
