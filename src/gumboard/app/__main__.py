# src/gumboard/app/__main__.py
from __future__ import annotations

import os

import uvicorn

from gumboard.utils.logging import configure_root


def main() -> None:
    """Run the API under uvicorn (``python -m gumboard.app`` / ``gumboard-server``)."""
    configure_root()
    uvicorn.run(
        "gumboard.app.server:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
