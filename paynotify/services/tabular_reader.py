"""Streaming reader for delimited spreadsheet exports (CSV / TSV).

The header row is validated before any data row is produced: if a required
column is missing, ``MissingColumnsError`` is raised on the first iteration
and nothing is yielded. Per-row value checks are deliberately left to the
dispatcher; the reader only rejects structural problems.
"""
from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Mapping, Sequence

from paynotify.config import COLUMN_SETTINGS
from paynotify.errors import MissingColumnsError, StructuralParseError
from paynotify.models.job import Row
from paynotify.utils import get_logger

logger = get_logger(__name__)


def required_columns(columns: Mapping[str, str] | None = None) -> list[str]:
    """Header names that must be present, in configured order."""
    return list((columns or COLUMN_SETTINGS).values())


def read_rows(
    stream: BinaryIO,
    required: Sequence[str],
    *,
    delimiter: str = ",",
    encoding: str = "utf-8-sig",
) -> Iterator[dict[str, str]]:
    """Yield header-keyed records from ``stream``.

    Single pass: the underlying stream is consumed as rows are requested.
    Rows where every cell is empty are skipped; short rows are padded with
    empty strings.
    """
    text = io.TextIOWrapper(stream, encoding=encoding, newline="")
    try:
        reader = csv.reader(text, delimiter=delimiter)
        try:
            header = next(reader)
        except StopIteration:
            raise StructuralParseError("File is empty: no header row found") from None

        header = [cell.strip() for cell in header]
        present = set(header)
        missing = [name for name in required if name not in present]
        if missing:
            raise MissingColumnsError(missing)

        for cells in reader:
            values = [cell.strip() for cell in cells]
            if not any(values):
                continue
            values += [""] * (len(header) - len(values))
            yield dict(zip(header, values))
    except (UnicodeDecodeError, csv.Error) as e:
        raise StructuralParseError(f"File could not be parsed: {e}") from e
    finally:
        # Leave the caller's stream open; only drop our wrapper.
        text.detach()


def rows_from_records(records: Iterable[Mapping[str, str]], columns: Mapping[str, str] | None = None) -> list[Row]:
    mapping = columns or COLUMN_SETTINGS
    return [Row.from_record(record, mapping) for record in records]


def read_rows_from_path(
    path: str | Path,
    *,
    delimiter: str = ",",
    columns: Mapping[str, str] | None = None,
) -> list[Row]:
    """Parse a downloaded file into rows, validating the header first."""
    mapping = columns or COLUMN_SETTINGS
    with open(path, "rb") as fh:
        rows = rows_from_records(read_rows(fh, required_columns(mapping), delimiter=delimiter), mapping)
    logger.info("Parsed tabular file", path=str(path), rows=len(rows))
    return rows


__all__ = ["read_rows", "rows_from_records", "read_rows_from_path", "required_columns"]
