import json
import logging
from datetime import datetime, timezone
from celery import shared_task
from sqlalchemy.exc import (
    OperationalError as SQLAlchemyOperationalError,
    TimeoutError as SQLAlchemyTimeoutError,
)
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
    BusyLoadingError as RedisBusyLoadingError,
)
from catalog_import.core.config import settings
from catalog_import.db.connection import get_session
from catalog_import.db.models import ImportSessionOrm
from catalog_import.dataload.row_source import CsvRowSource
from catalog_import.dataload.stock_import import StockImportPipeline, PERMANENT_ATTRIBUTES
from catalog_import.dataload.upsert_executor import UpsertExecutor
from catalog_import.exceptions import CatalogImportError
from catalog_import.models import ImportBehavior, ImportJobStatus, ErrorDetailModel, ErrorType
from catalog_import.models.enums import CounterPolicy, ValidationStrategy
from catalog_import.services.error_aggregator import ProcessingErrorAggregator
from catalog_import.services.reference_resolver import ReferenceResolver
from catalog_import.services.repositories import CategoryDirectory, ProductRepository, StockRegistry
from catalog_import.services.storage import delete_file
from catalog_import.services.validator import RowValidator

logger = logging.getLogger(__name__)

RETRYABLE_EXCEPTIONS = (
    SQLAlchemyOperationalError,
    SQLAlchemyTimeoutError,
    RedisConnectionError,
    RedisTimeoutError,
    RedisBusyLoadingError,
)
COMMON_RETRY_KWARGS = {"max_retries": 3, "default_retry_delay": 60}


def _update_session_status(
    db,
    session_id: str,
    status: ImportJobStatus,
    details=None,
    record_count=None,
    error_count=None,
    items_created=None,
    items_updated=None,
):
    sess = db.query(ImportSessionOrm).filter_by(session_id=session_id).first()
    if not sess:
        logger.error("Import session %s not found for status update", session_id)
        return
    sess.status = status.value
    sess.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)

    if details is not None:
        normalized = []
        for d in details:
            normalized.append(d.model_dump() if hasattr(d, "model_dump") else d)
        sess.details = json.dumps(normalized)

    if record_count is not None:
        sess.record_count = record_count
    if error_count is not None:
        sess.error_count = error_count
    if items_created is not None:
        sess.items_created = items_created
    if items_updated is not None:
        sess.items_updated = items_updated

    db.commit()


def build_pipeline(db, row_source, behavior: ImportBehavior) -> StockImportPipeline:
    aggregator = ProcessingErrorAggregator(
        validation_strategy=ValidationStrategy(settings.IMPORT_VALIDATION_STRATEGY),
        allowed_errors_count=settings.IMPORT_ALLOWED_ERROR_COUNT,
    )
    product_repository = ProductRepository(db)
    executor = UpsertExecutor(
        product_repository=product_repository,
        stock_registry=StockRegistry(db),
        resolver=ReferenceResolver(CategoryDirectory(db)),
    )
    return StockImportPipeline(
        row_source=row_source,
        validator=RowValidator(aggregator),
        error_aggregator=aggregator,
        executor=executor,
        product_repository=product_repository,
        behavior=behavior,
        counter_policy=CounterPolicy(settings.IMPORT_COUNTER_POLICY),
    )


def process_stock_import_task(
    session_id: str,
    file_path: str,
    behavior: str,
    original_filename: str | None = None,
):
    """
    Runs one stock import from a stored CSV file and records the outcome on
    the import session:
      • unreadable file / missing columns → FAILED_VALIDATION
      • unexpected error while applying   → FAILED_PROCESSING
      • otherwise COMPLETED, COMPLETED_WITH_ERRORS, COMPLETED_NO_CHANGES
        or COMPLETED_EMPTY_FILE
    """
    logger.info("Import %s started for %s (%s)", session_id, original_filename or file_path, behavior)
    db = get_session()
    try:
        return _run_import(db, session_id, file_path, ImportBehavior(behavior))
    finally:
        db.close()


def _run_import(db, session_id: str, file_path: str, behavior_enum: ImportBehavior):

    def fail(status, detail_list, rec_count=None, err_count=None):
        try:
            db.rollback()
        except Exception:
            logger.exception("Rollback failed for import %s", session_id)
        _update_session_status(
            db,
            session_id,
            status,
            details=detail_list,
            record_count=rec_count,
            error_count=err_count,
        )
        return {
            "status": status.value,
            "processed": 0,
            "errors": [d.model_dump() for d in detail_list],
        }

    try:
        # PHASE 1: HEADER CHECK
        _update_session_status(db, session_id, ImportJobStatus.VALIDATING_SCHEMA)
        with CsvRowSource(file_path, bunch_size=settings.IMPORT_BUNCH_SIZE) as source:
            try:
                source.validate_columns(PERMANENT_ATTRIBUTES)
            except CatalogImportError as e:
                detail = ErrorDetailModel(
                    error_message=e.message,
                    error_type=e.error_type,
                    offending_value=e.offending_value,
                )
                return fail(ImportJobStatus.FAILED_VALIDATION, [detail], err_count=1)

            # PHASE 2: APPLY ROWS
            _update_session_status(db, session_id, ImportJobStatus.DB_PROCESSING_STARTED)
            pipeline = build_pipeline(db, source, behavior_enum)
            try:
                pipeline.import_data()
                db.commit()
            except CatalogImportError as e:
                logger.error("Import %s stopped reading the file: %s", session_id, e)
                detail = ErrorDetailModel(
                    error_message=e.message,
                    error_type=e.error_type,
                    offending_value=e.offending_value,
                )
                return fail(
                    ImportJobStatus.FAILED_VALIDATION,
                    [detail],
                    rec_count=pipeline.processed_rows_count,
                    err_count=1,
                )
            except Exception as e:
                logger.exception("Import %s failed while applying rows", session_id)
                detail = ErrorDetailModel(
                    error_message=f"Processing error: {type(e).__name__}: {e}",
                    error_type=ErrorType.TASK_EXCEPTION,
                )
                return fail(
                    ImportJobStatus.FAILED_PROCESSING,
                    [detail],
                    rec_count=pipeline.processed_rows_count,
                    err_count=1,
                )
    except CatalogImportError as e:
        detail = ErrorDetailModel(
            error_message=e.message,
            error_type=e.error_type,
            offending_value=e.offending_value,
        )
        return fail(ImportJobStatus.FAILED_VALIDATION, [detail], err_count=1)

    # PHASE 3: FINALIZE
    row_errors = pipeline.error_aggregator.get_all_errors()
    summary = pipeline.get_summary()
    if behavior_enum == ImportBehavior.DELETE:
        final_status = ImportJobStatus.COMPLETED_NO_CHANGES
    elif summary["processed_rows"] == 0:
        final_status = ImportJobStatus.COMPLETED_EMPTY_FILE
    elif row_errors or summary["skipped_rows"]:
        final_status = ImportJobStatus.COMPLETED_WITH_ERRORS
    else:
        final_status = ImportJobStatus.COMPLETED

    _update_session_status(
        db,
        session_id,
        final_status,
        details=row_errors or None,
        record_count=summary["processed_rows"],
        error_count=len(row_errors),
        items_created=pipeline.items_created,
        items_updated=pipeline.items_updated,
    )
    logger.info("Import %s finished with %s: %s", session_id, final_status.value, summary)

    # CLEANUP
    delete_file(file_path)

    return {
        "status": final_status.value,
        "processed": summary["accepted_rows"],
        "summary": summary,
        "errors": [e.model_dump() for e in row_errors],
    }


# -----------------------------------------------------------------------------
# Celery wrapper task
# -----------------------------------------------------------------------------

@shared_task(bind=True, autoretry_for=RETRYABLE_EXCEPTIONS, **COMMON_RETRY_KWARGS)
def process_stock_import_file(self, session_id, file_path, behavior, original_filename=None):
    return process_stock_import_task(session_id, file_path, behavior, original_filename)
