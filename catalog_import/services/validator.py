import logging
from typing import Any, Dict, Mapping, Set

from pydantic import ValidationError

from catalog_import.models.schemas import StockRowModel
from catalog_import.services.error_aggregator import ProcessingErrorAggregator

logger = logging.getLogger(__name__)

ERROR_SKU_IS_REQUIRED = "SkuIsRequired"
ERROR_PRICE_IS_REQUIRED = "PriceIsRequired"
ERROR_QTY_IS_REQUIRED = "QtyIsRequired"
ERROR_VISIBILITY_IS_REQUIRED = "VisibilityIsRequired"
ERROR_CATEGORY_IS_REQUIRED = "CategoryIsRequired"

# column -> error code raised when it is missing, in check order
REQUIRED_COLUMNS: Dict[str, str] = {
    "sku": ERROR_SKU_IS_REQUIRED,
    "price": ERROR_PRICE_IS_REQUIRED,
    "qty": ERROR_QTY_IS_REQUIRED,
    "value": ERROR_VISIBILITY_IS_REQUIRED,
    "category": ERROR_CATEGORY_IS_REQUIRED,
}

MESSAGE_TEMPLATES: Dict[str, str] = {
    ERROR_SKU_IS_REQUIRED: "The sku is required",
    ERROR_PRICE_IS_REQUIRED: "The price is required",
    ERROR_QTY_IS_REQUIRED: "The qty is required",
    ERROR_VISIBILITY_IS_REQUIRED: "The visibility is required",
    ERROR_CATEGORY_IS_REQUIRED: "The category is required",
}


class RowValidator:
    """
    Required-field validation for stock import rows, checked through
    StockRowModel. Each failing field becomes one error in the aggregator.

    Each row number is validated once per run. Asking again returns the
    remembered outcome from the aggregator and records nothing new.
    """

    def __init__(self, error_aggregator: ProcessingErrorAggregator):
        self.error_aggregator = error_aggregator
        self._validated_rows: Set[int] = set()
        for code, template in MESSAGE_TEMPLATES.items():
            self.error_aggregator.add_error_message_template(code, template)

    def validate_row(self, row: Mapping[str, Any], row_number: int) -> bool:
        if row_number in self._validated_rows:
            return not self.error_aggregator.is_row_invalid(row_number)

        try:
            StockRowModel.model_validate(dict(row))
        except ValidationError as e:
            for err in e.errors():
                column = str(err["loc"][0]) if err["loc"] else None
                error_code = REQUIRED_COLUMNS.get(column)
                if error_code is None:
                    continue
                logger.debug("Row %s, %s: %s", row_number, column, err["msg"])
                self.error_aggregator.add_row_error(error_code, row_number, column_name=column)

        self._validated_rows.add(row_number)
        is_valid = not self.error_aggregator.is_row_invalid(row_number)
        if not is_valid:
            logger.info(f"Row {row_number} rejected by validation.")
        return is_valid

    def is_validated(self, row_number: int) -> bool:
        return row_number in self._validated_rows
