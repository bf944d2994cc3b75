"""
Bulk CSV import/export endpoints, one pair per entity kind.

POST /api/{entity}/bulk
    multipart `file` (+ optional `operation`: "import" | "update")
    200 every row persisted, 207 some rows skipped or failed,
    400 malformed upload, 403 role not allowed, 500 storage unavailable.

GET /api/{entity}/bulk?format=csv&<entity filters>
    CSV download named `<entity>-export-<date>.csv`.

All pipeline logic lives in `textile_ops.ingest`; this module only maps
HTTP in and out.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, Request, UploadFile, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from textile_ops.api.dependencies import get_store
from textile_ops.db.store import StorageError, Store
from textile_ops.ingest.exporter import export_entity
from textile_ops.ingest.importer import import_upload
from textile_ops.parsing.registry import EntityKind, get_entity_spec
from textile_ops.parsing.types import AuthorizationError, StructuralError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["bulk"])


@router.post("/{entity}/bulk")
def bulk_import(
    entity: EntityKind,
    file: UploadFile | None = File(default=None),
    operation: str = Form(default="import"),
    x_user_role: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
    store: Store = Depends(get_store),
) -> JSONResponse:
    """
    Import (or update) one entity from an uploaded CSV file.
    """
    try:
        get_entity_spec(entity).authorize(x_user_role)
    except AuthorizationError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    try:
        summary = import_upload(
            store,
            entity,
            filename=file.filename,
            data=file.file.read(),
            operation=operation,
            role=x_user_role,
            actor_id=x_user_id,
        )
    except AuthorizationError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except StructuralError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StorageError as exc:
        logger.exception("%s bulk %s failed before row processing", entity.value, operation)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to read existing records.",
        ) from exc
    finally:
        file.file.close()

    code = status.HTTP_200_OK if not summary.errors else status.HTTP_207_MULTI_STATUS
    return JSONResponse(status_code=code, content=jsonable_encoder(summary.to_response()))


@router.get("/{entity}/bulk")
def bulk_export(
    entity: EntityKind,
    request: Request,
    output_format: str = Query(default="csv", alias="format"),
    store: Store = Depends(get_store),
) -> Response:
    """
    Export one entity as a CSV attachment. Remaining query params are the
    entity's filters (e.g. `search`, `city`, `has_gst` for ledgers).
    """
    if output_format != "csv":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only CSV format is supported")

    params = {k: v for k, v in request.query_params.items() if k != "format"}
    try:
        export = export_entity(store, entity, params)
    except StorageError as exc:
        logger.exception("%s export failed params=%r", entity.value, params)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch {entity.value}",
        ) from exc

    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={
            "Content-Disposition": export.content_disposition,
            "X-Row-Count": str(export.row_count),
        },
    )
