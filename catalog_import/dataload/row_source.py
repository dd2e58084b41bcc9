"""
Row sources feeding the import pipeline.

A source hands out rows in bounded batches ("bunches"). Each bunch maps the
row's 0-based position in the whole input to the row dictionary, so row
numbers keep counting across bunches and can be used to attribute errors.
"""
import csv
import logging
from itertools import islice
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from catalog_import.exceptions import CatalogImportError
from catalog_import.models.schemas import ErrorType

logger = logging.getLogger(__name__)

Bunch = Dict[int, Dict[str, Any]]


class BaseRowSource:
    def __init__(self, bunch_size: int = 100):
        if bunch_size < 1:
            raise ValueError("bunch_size must be >= 1")
        self.bunch_size = bunch_size
        self._rows: Optional[Iterator[Dict[str, Any]]] = None
        self._next_row_number = 0

    def _iter_rows(self) -> Iterator[Dict[str, Any]]:
        raise NotImplementedError

    def get_next_bunch(self) -> Optional[Bunch]:
        if self._rows is None:
            self._rows = self._iter_rows()
        rows = list(islice(self._rows, self.bunch_size))
        if not rows:
            return None
        bunch = {}
        for row in rows:
            bunch[self._next_row_number] = row
            self._next_row_number += 1
        logger.debug(f"Read bunch of {len(bunch)} rows (up to row {self._next_row_number - 1}).")
        return bunch

    @property
    def rows_read(self) -> int:
        return self._next_row_number


class InMemoryRowSource(BaseRowSource):
    def __init__(self, rows: Iterable[Dict[str, Any]], bunch_size: int = 100):
        super().__init__(bunch_size)
        self._source_rows = list(rows)

    def _iter_rows(self) -> Iterator[Dict[str, Any]]:
        return iter(self._source_rows)


class CsvRowSource(BaseRowSource):
    """Reads a CSV file with a header row. Use as a context manager."""

    def __init__(self, file_path: str, bunch_size: int = 100, encoding: str = "utf-8-sig"):
        super().__init__(bunch_size)
        self.file_path = file_path
        self.encoding = encoding
        self._file = None
        self._reader: Optional[csv.DictReader] = None

    def open(self) -> "CsvRowSource":
        if self._file is None:
            try:
                self._file = open(self.file_path, mode="r", newline="", encoding=self.encoding)
            except OSError as e:
                raise CatalogImportError(
                    message=f"Failed reading file: {e}",
                    error_type=ErrorType.FILE_FORMAT,
                    offending_value=self.file_path,
                    original_exception=e,
                )
            self._reader = csv.DictReader(self._file)
        return self

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._reader = None

    def __enter__(self) -> "CsvRowSource":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get_column_names(self) -> List[str]:
        self.open()
        try:
            fieldnames = self._reader.fieldnames
        except (csv.Error, UnicodeDecodeError) as e:
            raise CatalogImportError(
                message=f"Could not read CSV header: {e}",
                error_type=ErrorType.FILE_FORMAT,
                offending_value=self.file_path,
                original_exception=e,
            )
        return [name.strip() for name in fieldnames or []]

    def validate_columns(self, permanent_columns: Sequence[str]) -> None:
        columns = self.get_column_names()
        missing = [c for c in permanent_columns if c not in columns]
        if missing:
            raise CatalogImportError(
                message=f"Columns are missing: {', '.join(missing)}",
                error_type=ErrorType.FILE_FORMAT,
                offending_value=",".join(columns),
            )

    def _iter_rows(self) -> Iterator[Dict[str, Any]]:
        self.open()
        try:
            for raw in self._reader:
                # values past the header land under the None key; drop them
                yield {
                    key.strip(): value.strip() if isinstance(value, str) else value
                    for key, value in raw.items()
                    if key is not None
                }
        except (csv.Error, UnicodeDecodeError) as e:
            raise CatalogImportError(
                message=f"Could not read CSV rows: {e}",
                error_type=ErrorType.FILE_FORMAT,
                offending_value=self.file_path,
                original_exception=e,
            )
