"""
Cost record ingestion from exported files.

Supports JSON and CSV exports of already-extracted cost records (one record
per row/object). Invoice documents themselves are handled by the extraction
connectors upstream. All ingested rows are returned as raw dictionaries for
subsequent normalization.

Design:
- Format detection from the file extension or explicit format
- Iterator-based for large exports
- Malformed NDJSON lines and blank CSV rows are logged and skipped
- Returns raw dicts, not CostRecord objects
"""

import csv
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Union

from costwatch.core.exceptions import DataValidationError

logger = logging.getLogger(__name__)

BOM = "\ufeff"

RawRow = Dict[str, Any]


class IngestionError(DataValidationError):
    """Raised when a cost record export cannot be read."""
    pass


class BaseCostRecordSource(ABC):
    """
    Abstract base class for cost record sources.

    Each export format (JSON, CSV) implements read().
    """

    format_name = "export"

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8"):
        """
        Args:
            path: Path to the export file
            encoding: File encoding (default utf-8)

        Raises:
            IngestionError: If the file doesn't exist
        """
        self.path = Path(path)
        self.encoding = encoding

        if not self.path.is_file():
            raise IngestionError(f"Cost record file not found: {self.path}")

    @abstractmethod
    def read(self) -> Iterator[RawRow]:
        """Yield one raw dict per record."""
        pass

    def ingest(self) -> Iterator[RawRow]:
        """
        Yield raw rows, turning read errors into IngestionError.

        Raises:
            IngestionError: If the file cannot be read or parsed
        """
        try:
            yield from self.read()
        except IngestionError:
            raise
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            logger.error(f"Error reading {self.format_name} file {self.path}: {e}")
            raise IngestionError(f"Failed to read {self.format_name} export: {e}") from e


class JSONCostRecordSource(BaseCostRecordSource):
    """
    Ingests JSON exports: a JSON array of objects, or NDJSON.

    Example NDJSON:
        {"id": "cr-1", "costType": "electricity", "amount": 1200.5, ...}
        {"id": "cr-2", "costType": "electricity", "amount": 1180.0, ...}
    """

    format_name = "JSON"

    def read(self) -> Iterator[RawRow]:
        text = self.path.read_text(encoding=self.encoding).lstrip(BOM).strip()
        if text.startswith("["):
            yield from self._from_array(text)
        else:
            yield from self._from_lines(text.splitlines())

    def _from_array(self, text: str) -> Iterator[RawRow]:
        try:
            rows = json.loads(text)
        except json.JSONDecodeError as e:
            raise IngestionError(f"Invalid JSON array in {self.path}: {e}") from e

        for index, row in enumerate(rows):
            if isinstance(row, dict):
                yield row
            else:
                logger.warning(f"Skipping non-object entry at index {index}: {type(row).__name__}")

    def _from_lines(self, lines: Iterable[str]) -> Iterator[RawRow]:
        for line_num, raw_line in enumerate(lines, start=1):
            line = raw_line.strip()
            if not line:
                continue

            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                logger.warning(f"Malformed JSON at line {line_num}: {line[:100]}")
                continue

            if isinstance(row, dict):
                yield row
            else:
                logger.warning(f"Skipping non-object at line {line_num}: {type(row).__name__}")


class CSVCostRecordSource(BaseCostRecordSource):
    """
    Ingests CSV exports. The first row must contain headers.

    Example:
        id,locationId,supplierId,costType,amount,periodStart,periodEnd
        cr-1,loc-1,sup-1,electricity,1200.50,2024-01-01,2024-01-31
    """

    format_name = "CSV"

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8", delimiter: str = ","):
        super().__init__(path, encoding)
        self.delimiter = delimiter

    def read(self) -> Iterator[RawRow]:
        with open(self.path, "r", encoding=self.encoding, newline="") as f:
            reader = csv.DictReader(f, delimiter=self.delimiter)
            if reader.fieldnames is None:
                raise IngestionError(f"CSV file is empty: {self.path}")

            reader.fieldnames = [name.lstrip(BOM) for name in reader.fieldnames]

            # line 1 is the header
            for line_num, row in enumerate(reader, start=2):
                if all(value in (None, "") for value in row.values()):
                    logger.warning(f"Skipping empty row at line {line_num}")
                    continue
                yield row


_SOURCES = {
    "json": JSONCostRecordSource,
    "csv": CSVCostRecordSource,
}

_FORMAT_BY_SUFFIX = {
    ".json": "json",
    ".ndjson": "json",
    ".jsonl": "json",
    ".csv": "csv",
}


def ingest_cost_records(path: Union[str, Path], format: str = "auto") -> Iterator[RawRow]:
    """
    Ingest raw cost record rows from an export.

    Args:
        path: Path to the export
        format: "json", "csv", or "auto" (detect from extension)

    Yields:
        Raw row dict

    Raises:
        IngestionError: If the file is missing or the format unsupported
    """
    path = Path(path)

    if format == "auto":
        format = _FORMAT_BY_SUFFIX.get(path.suffix.lower())
        if format is None:
            raise IngestionError(f"Cannot detect format of {path}")

    source_cls = _SOURCES.get(format)
    if source_cls is None:
        raise IngestionError(f"Unknown format: {format}")

    logger.debug(f"Ingesting {path} as {format}")
    yield from source_cls(path).ingest()
