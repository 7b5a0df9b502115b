"""
Launch the reservation API under uvicorn.

Host, port and auto-reload come from MOTEL_HOST, MOTEL_PORT and MOTEL_RELOAD.
The application itself lives in app.py.
"""

from __future__ import annotations

import os

import uvicorn


HOST = os.getenv("MOTEL_HOST", "127.0.0.1")
PORT = int(os.getenv("MOTEL_PORT", "8000"))


def main() -> None:
    """Start the reservation server."""
    print(f"Motel reservation service on http://{HOST}:{PORT} (docs at /docs)")

    uvicorn.run(
        "app:app",
        host=HOST,
        port=PORT,
        reload=os.getenv("MOTEL_RELOAD", "false").lower() in {"1", "true", "yes"},
        log_level="info",
    )


if __name__ == "__main__":
    main()
