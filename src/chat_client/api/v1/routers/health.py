from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Ready once the pin store answers and the socket holds a joined session.

    The connectivity gate is reported alongside but never fails readiness:
    the UI renders the gate itself.
    """
    client = request.app.state.chat_client
    checks: dict[str, str] = {}

    try:
        await request.app.state.redis.ping()
        checks["store"] = "ok"
    except Exception as exc:  # noqa: BLE001
        checks["store"] = f"error: {exc}"

    state = client.connection.state.value
    checks["socket"] = "ok" if client.connection.is_joined else state

    ready = all(value == "ok" for value in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "unavailable",
            "checks": checks,
            "gate_visible": client.gate.visible,
        },
    )
