import argparse
import logging
import sys
from pathlib import Path

from catalog_import.core.config import settings
from catalog_import.db.connection import get_session, init_db
from catalog_import.dataload.row_source import CsvRowSource
from catalog_import.dataload.stock_import import PERMANENT_ATTRIBUTES, StockImportPipeline
from catalog_import.exceptions import CatalogImportError
from catalog_import.models import ImportBehavior
from catalog_import.tasks.import_jobs import build_pipeline

# ----------------------
# Logging Setup
# ----------------------
logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)


# ----------------------
# Main Processing Logic
# ----------------------
def run_stock_import(csv_file_path: str, behavior: ImportBehavior) -> StockImportPipeline:
    logger.info(f"Starting stock import for file: {csv_file_path}")
    init_db()
    db = get_session()
    try:
        with CsvRowSource(csv_file_path, bunch_size=settings.IMPORT_BUNCH_SIZE) as source:
            source.validate_columns(PERMANENT_ATTRIBUTES)
            pipeline = build_pipeline(db, source, behavior)
            pipeline.import_data()
        db.commit()
        return pipeline
    finally:
        db.close()


def print_import_results(pipeline: StockImportPipeline) -> None:
    print("\n--- Import Results ---\n")
    for key, value in pipeline.get_summary().items():
        print(f"  {key}: {value}")

    errors = pipeline.error_aggregator.get_all_errors()
    if errors:
        print("\nRow Errors:")
        for err in errors:
            print(f"  - Row {err.row_number}: [{err.error_code}] {err.error_message}")
    else:
        print("\nNo row errors reported.")
    print("\n--- End of Results ---\n")


# ----------------------
# CLI Entrypoint
# ----------------------
def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Bulk-update product price, visibility, category and stock from a CSV file.")
    parser.add_argument("csv", help="Path to the CSV file to import.")
    parser.add_argument(
        "--behavior",
        choices=[b.value for b in ImportBehavior],
        default=ImportBehavior.APPEND.value,
        help="Import behavior (delete is accepted but changes nothing).",
    )
    args = parser.parse_args(argv)

    if not Path(args.csv).exists():
        logger.error(f"CSV file not found: {args.csv}")
        return 2

    try:
        pipeline = run_stock_import(args.csv, ImportBehavior(args.behavior))
    except CatalogImportError as e:
        logger.error(str(e))
        return 1

    print_import_results(pipeline)
    return 0


if __name__ == "__main__":
    sys.exit(main())
