"""Entry point for serving the social store API with Uvicorn."""
from __future__ import annotations

import os

import uvicorn


def main() -> None:
    port = int(os.getenv("SOCIALSTORE_PORT", "8000"))
    reload = os.getenv("UVICORN_RELOAD", "false").lower() == "true"
    uvicorn.run("socialstore.main:app", host=os.getenv("SOCIALSTORE_HOST", "127.0.0.1"), port=port, reload=reload)


if __name__ == "__main__":
    main()
