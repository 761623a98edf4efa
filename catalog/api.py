import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from catalog.config import settings
from catalog.derived import list_url
from catalog.exceptions import IntegrityBlocked, NotFound, StoreUnavailable, ValidationError
from catalog.library import Library
from catalog.models import Kind

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=settings.app_version)

COLLECTIONS = {kind.plural: kind for kind in Kind}


@lru_cache(maxsize=1)
def get_library() -> Library:
    """Shared Library; it keeps no state besides the database path."""
    return Library()


# --- Models ---
class CatalogSummary(BaseModel):
    book_count: int
    book_instance_count: int
    book_instance_available_count: int
    author_count: int
    genre_count: int


class RedirectModel(BaseModel):
    """Where the client should go next."""
    url: str


# --- Error handlers ---
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "errors": [e.to_dict() for e in exc.errors],
            "values": exc.values,
            **exc.context,
        },
    )


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(IntegrityBlocked)
async def integrity_blocked_handler(request: Request, exc: IntegrityBlocked):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "count": exc.count, "dependents": exc.dependents},
    )


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    # Transport details stay in the log
    logger.error(f"Store unavailable on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# --- Health check ---
@app.get("/health")
def health(library: Library = Depends(get_library)):
    """Lightweight health endpoint with a quick database round trip."""
    db_ok = True
    try:
        library.summary()
    except StoreUnavailable:
        db_ok = False
    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "db": db_ok,
        "version": settings.app_version,
    }


# --- Catalog endpoints ---
@app.get("/catalog", response_model=CatalogSummary)
def catalog_home(library: Library = Depends(get_library)):
    return library.summary()


@app.get("/catalog/{collection}")
def list_records(collection: str, library: Library = Depends(get_library)) -> List[Dict[str, Any]]:
    kind = COLLECTIONS.get(collection)
    if kind is None:
        raise HTTPException(status_code=404, detail=f"Unknown collection: {collection}")
    return library.list_records(kind)


@app.get("/catalog/{kind}/create")
def create_form(kind: Kind, library: Library = Depends(get_library)):
    return library.create_form(kind)


@app.post("/catalog/{kind}/create", status_code=201, response_model=RedirectModel)
def create_record(
    kind: Kind,
    form: Optional[Dict[str, Any]] = Body(default=None),
    library: Library = Depends(get_library),
):
    return RedirectModel(url=library.create(kind, form or {}))


@app.get("/catalog/{kind}/{record_id}")
def record_detail(kind: Kind, record_id: str, library: Library = Depends(get_library)):
    return library.detail(kind, record_id)


@app.get("/catalog/{kind}/{record_id}/update")
def update_form(kind: Kind, record_id: str, library: Library = Depends(get_library)):
    return library.update_form(kind, record_id)


@app.post("/catalog/{kind}/{record_id}/update", response_model=RedirectModel)
def update_record(
    kind: Kind,
    record_id: str,
    form: Optional[Dict[str, Any]] = Body(default=None),
    library: Library = Depends(get_library),
):
    return RedirectModel(url=library.update(kind, record_id, form or {}))


@app.get("/catalog/{kind}/{record_id}/delete")
def delete_form(kind: Kind, record_id: str, library: Library = Depends(get_library)):
    """Confirm page data; a record that is already gone sends the client to the list."""
    payload = library.delete_form(kind, record_id)
    if payload is None:
        return {"redirect": list_url(kind)}
    return payload


@app.post("/catalog/{kind}/{record_id}/delete", response_model=RedirectModel)
def delete_record(kind: Kind, record_id: str, library: Library = Depends(get_library)):
    return RedirectModel(url=library.delete(kind, record_id))
