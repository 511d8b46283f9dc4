"""Guarded static serving of the uploads tree."""

import re

from fastapi import APIRouter, Query, Request, Response, status
from fastapi.responses import FileResponse, JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes.responses import RESOLUTION_HEADER, placeholder_response
from app.core.deps import DBSession, Layout
from app.imagestore.guard import PathSecurityGuard, RejectRequest, ServeFile
from app.imagestore.locator import ImageLocator
from app.imagestore.owner import Owner
from app.services.catalog_service import CatalogService

router = APIRouter()

# Images embedded in a primary-image response inherit that owner
_REFERER_OWNER = re.compile(r"/api/(products|stores)/(\d+)/primary-image")

# Ids beyond a signed 64-bit integer cannot be bound as SQLite parameters
_MAX_ID = 2**63


def _hint_id(value: str | None) -> int | None:
    """Positive id from a query hint; anything else is no hint."""
    if value is None:
        return None
    try:
        parsed = int(value)
    except ValueError:
        logger.debug(f"Ignoring owner hint {value!r}")
        return None
    return parsed if 0 < parsed < _MAX_ID else None


async def _owner_hint(
    db: DBSession,
    request: Request,
    store_id: int | None,
    product_id: int | None,
) -> Owner | None:
    catalog = CatalogService(db)
    try:
        if product_id is not None:
            return await catalog.product_owner(product_id)
        if store_id is not None:
            return await catalog.store_owner(store_id)

        match = _REFERER_OWNER.search(request.headers.get("referer", ""))
        entity_id = _hint_id(match.group(2)) if match else None
        if entity_id is not None:
            kind = match.group(1)
            if kind == "products":
                return await catalog.product_owner(entity_id)
            return await catalog.store_owner(entity_id)
    except SQLAlchemyError as e:
        logger.warning(f"Owner hint lookup failed: {e}")
    return None


@router.get("/uploads/{file_path:path}", response_model=None)
async def serve_upload(
    file_path: str,
    request: Request,
    db: DBSession,
    layout: Layout,
    store_id: str | None = Query(None, alias="storeId"),
    product_id: str | None = Query(None, alias="productId"),
) -> Response:
    """
    Serve a file from the uploads tree.

    Paths escaping the uploads root get 403. Missing files get the
    placeholder, after the owner's legacy locations were searched.
    """
    hint = await _owner_hint(db, request, _hint_id(store_id), _hint_id(product_id))
    decision = PathSecurityGuard(ImageLocator(layout)).evaluate(file_path, hint)

    if isinstance(decision, RejectRequest):
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"Code": 403, "Message": "Forbidden"},
        )
    if isinstance(decision, ServeFile):
        return FileResponse(decision.path, headers={RESOLUTION_HEADER: "file"})
    return placeholder_response(layout, decision.variant)
