import logging
import os
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse

from sweatfix.api.auth import router as auth_router
from sweatfix.api.chat import router as chat_router
from sweatfix.api.plans import router as plans_router
from sweatfix.api.progress import router as progress_router
from sweatfix.core.security import is_production
from sweatfix.db.session import create_tables
from sweatfix.services.stores import StoreError

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title="Sweat Fix Gym")
STATIC_DIR = Path(os.getenv("STATIC_DIR", "dist")).resolve()
INDEX_PAGE = STATIC_DIR / "index.html"


@app.on_event("startup")
def on_startup() -> None:
    create_tables()


def _error_summary(exc: RequestValidationError) -> list[dict]:
    # Rejected input is left out; it can be a whole chat history.
    return [{key: value for key, value in error.items() if key != "input"} for error in exc.errors()]


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(_error_summary(exc))},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(
        "store_error operation=%s user_id=%s path=%s detail=%s",
        exc.operation,
        exc.user_id,
        request.url.path,
        str(exc),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc), "retryable": exc.retryable},
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(progress_router)
app.include_router(plans_router)
app.include_router(chat_router)


if is_production():
    # The built dashboard is served from STATIC_DIR; unknown non-API paths fall back to index.html.
    @app.get("/{full_path:path}", include_in_schema=False)
    def spa(full_path: str) -> FileResponse:
        if full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not Found")
        candidate = (STATIC_DIR / full_path).resolve()
        if full_path and candidate.is_file() and STATIC_DIR in candidate.parents:
            return FileResponse(candidate)
        return FileResponse(INDEX_PAGE)

else:

    @app.get("/")
    def api_root() -> dict[str, str]:
        return {"service": "Sweat Fix Gym API", "status": "ok"}
