"""Entrypoint: python -m chat_client"""
from __future__ import annotations

import logging

import uvicorn

from chat_client.api.middleware.correlation_id import RequestIdLogFilter
from chat_client.config import settings


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(RequestIdLogFilter())
    uvicorn.run(
        "chat_client.app:create_app",
        factory=True,
        host=settings.BRIDGE_HOST,
        port=settings.BRIDGE_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
