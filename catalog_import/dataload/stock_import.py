"""
Bulk stock/catalog import driven bunch by bunch.

Rows are validated one at a time; invalid rows are left out, rows met after
the error limit is reached are marked skipped, and the accepted rows of each
bunch are handed to the UpsertExecutor grouped by SKU.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from catalog_import.dataload.row_source import BaseRowSource
from catalog_import.dataload.upsert_executor import UpsertExecutor
from catalog_import.models.enums import CounterPolicy, ImportBehavior
from catalog_import.models.schemas import StockRowModel
from catalog_import.services.error_aggregator import ProcessingErrorAggregator
from catalog_import.services.repositories import ProductRepository
from catalog_import.services.validator import RowValidator

logger = logging.getLogger(__name__)

ENTITY_CODE = "import_csv"
SKU = "sku"

# Recognized columns; every one of them is required.
VALID_COLUMN_NAMES = ["sku", "price", "qty", "value", "category"]
PERMANENT_ATTRIBUTES = list(VALID_COLUMN_NAMES)


class StockImportPipeline:
    def __init__(
        self,
        row_source: BaseRowSource,
        validator: RowValidator,
        error_aggregator: ProcessingErrorAggregator,
        executor: UpsertExecutor,
        product_repository: Optional[ProductRepository] = None,
        behavior: ImportBehavior = ImportBehavior.APPEND,
        counter_policy: CounterPolicy = CounterPolicy.ENTITY_EXISTS,
    ):
        self.row_source = row_source
        self.validator = validator
        self.error_aggregator = error_aggregator
        self.executor = executor
        self.product_repository = product_repository
        self.behavior = ImportBehavior(behavior)
        self.counter_policy = CounterPolicy(counter_policy)
        if self.counter_policy == CounterPolicy.ENTITY_EXISTS and product_repository is None:
            raise ValueError("entity_exists counter policy needs a product_repository")

        self.items_created = 0
        self.items_updated = 0
        self.processed_rows_count = 0
        self.accepted_rows_count = 0

    @staticmethod
    def get_entity_type_code() -> str:
        return ENTITY_CODE

    @staticmethod
    def get_valid_column_names() -> List[str]:
        return list(VALID_COLUMN_NAMES)

    def validate_row(self, row: Mapping[str, Any], row_number: int) -> bool:
        return self.validator.validate_row(row, row_number)

    def import_data(self) -> bool:
        logger.info(f"Starting {ENTITY_CODE} import with behavior '{self.behavior.value}'.")
        if self.behavior == ImportBehavior.DELETE:
            logger.info("Delete behavior is not supported for stock imports; nothing to do.")
        else:
            # REPLACE and APPEND share the upsert path
            self._save_and_replace_entities()
        logger.info(
            f"Finished {ENTITY_CODE} import. Rows: {self.processed_rows_count}, "
            f"accepted: {self.accepted_rows_count}, created: {self.items_created}, "
            f"updated: {self.items_updated}, errors: {self.error_aggregator.get_errors_count()}"
        )
        return True

    def _save_and_replace_entities(self) -> None:
        while True:
            bunch = self.row_source.get_next_bunch()
            if not bunch:
                break

            entity_list: Dict[str, List[StockRowModel]] = {}
            for row_number, row in bunch.items():
                self.processed_rows_count += 1
                if not self.validate_row(row, row_number):
                    continue
                if self.error_aggregator.has_to_be_terminated():
                    self.error_aggregator.add_row_to_skip(row_number)
                    continue

                accepted = StockRowModel(**{column: row[column] for column in VALID_COLUMN_NAMES})
                entity_list.setdefault(accepted.sku, []).append(accepted)
                self.accepted_rows_count += 1
                self._count_item(row, accepted.sku)

            self._save_entity_finish(entity_list)

    def _count_item(self, row: Mapping[str, Any], sku: str) -> None:
        if self.counter_policy == CounterPolicy.LEGACY:
            has_sku = row.get(SKU) is not None
            self.items_created += int(not has_sku)
            self.items_updated += int(has_sku)
        elif self.product_repository.exists(sku):
            self.items_updated += 1
        else:
            self.items_created += 1

    def _save_entity_finish(self, entity_list: Dict[str, List[StockRowModel]]) -> bool:
        rows = [row for entity_rows in entity_list.values() for row in entity_rows]
        if not rows:
            return False
        return self.executor.apply_rows(rows)

    def get_summary(self) -> Dict[str, int]:
        return {
            "processed_rows": self.processed_rows_count,
            "accepted_rows": self.accepted_rows_count,
            "items_created": self.items_created,
            "items_updated": self.items_updated,
            "invalid_rows": self.error_aggregator.get_invalid_rows_count(),
            "skipped_rows": self.error_aggregator.get_skipped_rows_count(),
            "errors": self.error_aggregator.get_errors_count(),
        }
