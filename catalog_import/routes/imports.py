import logging
import uuid
from io import BytesIO

from fastapi import APIRouter, UploadFile, File, HTTPException, Query
from fastapi.concurrency import run_in_threadpool

from catalog_import.db.connection import get_session
from catalog_import.db.models import ImportSessionOrm
from catalog_import.dataload.stock_import import ENTITY_CODE
from catalog_import.models import ImportBehavior, ImportJobStatus
from catalog_import.models.schemas import (
    ImportResponseModel,
    ImportSessionListResponseSchema,
    ImportSessionResponseSchema,
)
from catalog_import.services.storage import upload_file as local_upload_file, delete_file as local_delete_file
from catalog_import.tasks.celery_worker import celery_app  # noqa: F401  binds shared tasks to the configured app
from catalog_import.tasks.import_jobs import process_stock_import_file

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/imports")

CELERY_TASK_MAP = {
    ENTITY_CODE: process_stock_import_file,
}


def create_import_session_in_db_sync(
    session_id: str,
    entity_code: str,
    behavior: ImportBehavior,
    original_filename: str,
    file_path: str,
) -> ImportSessionOrm:
    db = None
    try:
        db = get_session()
        new_session_orm = ImportSessionOrm(
            session_id=session_id,
            entity_code=entity_code,
            behavior=behavior.value,
            original_filename=original_filename,
            file_path=file_path,
            status=ImportJobStatus.PENDING.value,
        )
        db.add(new_session_orm)
        db.commit()
        db.refresh(new_session_orm)
        logger.info(f"Import session record created for session_id: {session_id}")
        return new_session_orm
    except Exception as e_db:
        logger.error("DB Error creating import session: %s", e_db, exc_info=True)
        if db:
            db.rollback()
        raise HTTPException(status_code=500, detail="Could not create import session.")
    finally:
        if db:
            db.close()


def get_import_session_sync(session_id: str):
    db = get_session()
    try:
        sess = db.query(ImportSessionOrm).filter_by(session_id=session_id).first()
        return ImportSessionResponseSchema.model_validate(sess) if sess else None
    finally:
        db.close()


def list_import_sessions_sync(skip: int, limit: int) -> ImportSessionListResponseSchema:
    db = get_session()
    try:
        query = db.query(ImportSessionOrm)
        total = query.count()
        rows = query.order_by(ImportSessionOrm.created_at.desc(), ImportSessionOrm.id.desc()).offset(skip).limit(limit).all()
        return ImportSessionListResponseSchema(
            items=[ImportSessionResponseSchema.model_validate(r) for r in rows],
            total=total,
        )
    finally:
        db.close()


@router.post(
    "/{entity_code}",
    summary="Store an import file, record an import session, and queue processing",
    status_code=202,
    response_model=ImportResponseModel
)
async def upload_file_and_queue_for_processing(
    entity_code: str,
    behavior: ImportBehavior = Query(ImportBehavior.APPEND),
    file: UploadFile = File(...),
):
    if entity_code not in CELERY_TASK_MAP:
        raise HTTPException(400, f"Unsupported entity code: {entity_code}")
    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise HTTPException(400, "Only CSV files allowed.")

    file_bytes = await file.read()
    if not file_bytes:
        raise HTTPException(400, "Empty file.")

    session_id = str(uuid.uuid4())
    storage_key = f"imports/{entity_code}/{session_id}/{file.filename}"

    try:
        stored_path = await run_in_threadpool(local_upload_file, BytesIO(file_bytes), storage_key)
    except (OSError, ValueError) as e_loc:
        logger.error("Could not store import file %s: %s", storage_key, e_loc, exc_info=True)
        raise HTTPException(500, "Could not store uploaded file.")

    try:
        session_orm = await run_in_threadpool(
            create_import_session_in_db_sync,
            session_id, entity_code, behavior, file.filename, stored_path
        )
    except HTTPException:
        local_delete_file(stored_path)
        raise

    task = CELERY_TASK_MAP[entity_code].delay(
        session_id=session_id,
        file_path=stored_path,
        behavior=behavior.value,
        original_filename=file.filename,
    )
    logger.info("Queued import %s as task %s", session_id, task.id)

    return ImportResponseModel(
        message="File accepted.",
        session_id=session_id,
        entity_code=entity_code,
        behavior=behavior.value,
        status=session_orm.status,
        task_id=task.id,
    )


@router.get("", response_model=ImportSessionListResponseSchema, summary="List import sessions")
async def list_import_sessions(
    skip: int = Query(0, ge=0, description="Number of records to skip for pagination"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of records to return"),
):
    return await run_in_threadpool(list_import_sessions_sync, skip, limit)


@router.get(
    "/{session_id}",
    response_model=ImportSessionResponseSchema,
    summary="Get status of a specific import session",
    responses={404: {"description": "Import session not found"}},
)
async def get_import_session_status(session_id: str):
    session = await run_in_threadpool(get_import_session_sync, session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Import session not found.")
    return session
