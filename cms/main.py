from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from cms.cache import TypeMapCache
from cms.config import settings
from cms.db import SessionLocal
from cms.entities import PostType, PostTypeCreate, PostTypeUpdate
from cms.errors import AppError, InternalServerError, NotFoundError
from cms.filters import parse_filter, search
from cms.repository.post_type import PostTypeRepository
from cms.service.post_type import PostTypeService
from cms.sorts import parse_sort
from cms.transaction import SqlAlchemyTransactionManager, TransactionManager

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


configure_logging()

type_map_cache = TypeMapCache()
transactions = SqlAlchemyTransactionManager(SessionLocal)

app = FastAPI(title="Content Backend")


def _meta(request_id: Optional[str] = None, warnings: Optional[list[str]] = None) -> dict:
    return {
        "request_id": request_id or f"req_{uuid4().hex}",
        "warnings": warnings or [],
    }


def get_transactions() -> TransactionManager:
    return transactions


def get_cache() -> TypeMapCache:
    return type_map_cache


def get_post_type_service(
    tx: TransactionManager = Depends(get_transactions),
    cache: TypeMapCache = Depends(get_cache),
) -> PostTypeService:
    return PostTypeService(PostTypeRepository(cache=cache), tx, cache)


@app.exception_handler(AppError)
def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status, content={"error": exc.to_dict(), "meta": _meta()})


@app.exception_handler(SQLAlchemyError)
def handle_storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("storage failure on %s %s", request.method, request.url.path)
    error = InternalServerError()
    return JSONResponse(status_code=error.status, content={"error": error.to_dict(), "meta": _meta()})


def _post_type_data(post_type: PostType) -> dict:
    return {
        "id": post_type.id,
        "uid": str(post_type.uid),
        "version": post_type.version,
        "created_at": post_type.created_at.isoformat(),
        "updated_at": post_type.updated_at.isoformat(),
        "code": post_type.code,
        "name": post_type.name,
    }


@app.get("/", tags=["root"])
def read_root() -> dict:
    return {"status": "ok"}


@app.get("/health", tags=["health"])
def health_check() -> dict:
    return {"status": "healthy"}


@app.post("/api/v1/post-types", tags=["Post Types"], status_code=201)
def create_post_type(
    payload: PostTypeCreate, service: PostTypeService = Depends(get_post_type_service)
) -> dict:
    post_type = service.create(payload)
    return {"data": _post_type_data(post_type), "meta": _meta()}


@app.get("/api/v1/post-types", tags=["Post Types"])
def list_post_types(
    filters_param: list[str] = Query(default=[], alias="filter"),
    sort: list[str] = Query(default=[]),
    q: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    service: PostTypeService = Depends(get_post_type_service),
) -> dict:
    type_map = service.get_property_type_map()
    filters = [parse_filter(text, type_hints=type_map) for text in filters_param]
    if q:
        filters.append(search(q))
    sorts = [parse_sort(text) for text in sort]
    post_types, total = service.list_page(filters, sorts, limit=limit, offset=offset)
    meta = _meta()
    meta["page"] = {"limit": limit, "offset": offset, "total": total}
    return {"data": [_post_type_data(pt) for pt in post_types], "meta": meta}


@app.get("/api/v1/post-types/{post_type_id}", tags=["Post Types"])
def get_post_type(
    post_type_id: int, service: PostTypeService = Depends(get_post_type_service)
) -> dict:
    return {"data": _post_type_data(service.get_by_id(post_type_id)), "meta": _meta()}


@app.put("/api/v1/post-types/{post_type_id}", tags=["Post Types"])
def update_post_type(
    post_type_id: int,
    payload: PostTypeUpdate,
    service: PostTypeService = Depends(get_post_type_service),
) -> dict:
    post_type = service.update(post_type_id, payload)
    return {"data": _post_type_data(post_type), "meta": _meta()}


@app.delete("/api/v1/post-types/{post_type_id}", tags=["Post Types"], status_code=204)
def delete_post_type(
    post_type_id: int, service: PostTypeService = Depends(get_post_type_service)
) -> Response:
    if service.delete_by_id(post_type_id) == 0:
        raise NotFoundError(f"post_types {post_type_id} not found")
    return Response(status_code=204)
