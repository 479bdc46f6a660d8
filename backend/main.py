"""Development entrypoint: ``python main.py`` serves the API with uvicorn."""

import os

from dotenv import load_dotenv
from fastapi.openapi.utils import get_openapi

load_dotenv()

from app.main import app  # noqa: E402


def custom_openapi() -> dict:
    if app.openapi_schema:
        return app.openapi_schema
    app.openapi_schema = get_openapi(
        title="Scheduling API",
        version="1.0.0",
        description=(
            "Provider availability, appointment booking lifecycle and deposit reconciliation. "
            "Callers identify themselves with the X-User-Id header."
        ),
        routes=app.routes,
    )
    return app.openapi_schema


app.openapi = custom_openapi

if __name__ == "__main__":
    import uvicorn

    reload = os.getenv("UVICORN_RELOAD", "1") == "1"
    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=reload,
        # reload and multiple workers are mutually exclusive in uvicorn
        workers=1 if reload else int(os.getenv("UVICORN_WORKERS", "2")),
        timeout_keep_alive=int(os.getenv("UVICORN_KEEPALIVE", "65")),
    )
