"""
Per-run accumulation of row errors.

The aggregator collects every error a row produces (it never stops at the
first one), remembers which rows are invalid or deliberately skipped, and
answers whether the run has produced enough errors that remaining rows
should be skipped. One instance lives for exactly one import run.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from catalog_import.models.enums import ErrorLevel, ValidationStrategy
from catalog_import.models.schemas import ErrorDetailModel, ErrorType

logger = logging.getLogger(__name__)


class ProcessingErrorAggregator:
    def __init__(
        self,
        validation_strategy: ValidationStrategy = ValidationStrategy.STOP_ON_ERROR,
        allowed_errors_count: int = 0,
    ):
        self.validation_strategy = ValidationStrategy(validation_strategy)
        self.allowed_errors_count = allowed_errors_count
        self._message_templates: Dict[str, str] = {}
        self._errors: List[ErrorDetailModel] = []
        self._error_levels: List[ErrorLevel] = []
        self._errors_by_row: Dict[int, List[ErrorDetailModel]] = defaultdict(list)
        self._skipped_rows: Set[int] = set()

    def add_error_message_template(self, error_code: str, template: str) -> None:
        self._message_templates[error_code] = template

    def add_row_error(
        self,
        error_code: str,
        row_number: Optional[int],
        column_name: Optional[str] = None,
        error_message: Optional[str] = None,
        error_level: ErrorLevel = ErrorLevel.NOT_CRITICAL,
        error_type: ErrorType = ErrorType.VALIDATION,
        offending_value: Optional[str] = None,
    ) -> None:
        message = error_message or self._message_templates.get(error_code, error_code)
        detail = ErrorDetailModel(
            row_number=row_number,
            field_name=column_name,
            error_code=error_code,
            error_message=message,
            error_type=error_type,
            offending_value=offending_value,
        )
        self._errors.append(detail)
        self._error_levels.append(ErrorLevel(error_level))
        if row_number is not None:
            self._errors_by_row[row_number].append(detail)
        logger.debug("Row %s: %s (%s)", row_number, error_code, message)

    def is_row_invalid(self, row_number: int) -> bool:
        return bool(self._errors_by_row.get(row_number))

    def add_row_to_skip(self, row_number: int) -> None:
        self._skipped_rows.add(row_number)

    def is_skipped_row(self, row_number: int) -> bool:
        return row_number in self._skipped_rows

    def has_fatal_exceptions(self) -> bool:
        return ErrorLevel.CRITICAL in self._error_levels

    def is_error_limit_exceeded(self) -> bool:
        if self.validation_strategy != ValidationStrategy.STOP_ON_ERROR:
            return False
        errors_count = self.get_errors_count([ErrorLevel.NOT_CRITICAL])
        return errors_count > 0 and errors_count >= self.allowed_errors_count

    def has_to_be_terminated(self) -> bool:
        return self.has_fatal_exceptions() or self.is_error_limit_exceeded()

    def get_errors_count(self, levels: Optional[Iterable[ErrorLevel]] = None) -> int:
        if levels is None:
            return len(self._errors)
        wanted = {ErrorLevel(level) for level in levels}
        return sum(1 for level in self._error_levels if level in wanted)

    def get_invalid_rows_count(self) -> int:
        return sum(1 for errors in self._errors_by_row.values() if errors)

    def get_skipped_rows_count(self) -> int:
        return len(self._skipped_rows)

    def get_row_errors(self, row_number: int) -> List[ErrorDetailModel]:
        return list(self._errors_by_row.get(row_number, []))

    def get_errors_by_code(self, error_codes: Iterable[str]) -> List[ErrorDetailModel]:
        codes = set(error_codes)
        return [e for e in self._errors if e.error_code in codes]

    def get_all_errors(self) -> List[ErrorDetailModel]:
        return list(self._errors)

    def clear(self) -> None:
        self._errors.clear()
        self._error_levels.clear()
        self._errors_by_row.clear()
        self._skipped_rows.clear()
