"""
Development entry point.

Runs the ASGI app (server.asgi:app) under uvicorn.
"""

from __future__ import annotations

import uvicorn


def main() -> None:
    uvicorn.run(
        "server.asgi:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
    )


if __name__ == "__main__":
    main()
