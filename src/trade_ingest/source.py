"""
Delimited-file record source.

Streams rows of a CSV file as raw column-name to string mappings, in file
order. The first line is the header. Every failure (missing file, decode
error, malformed line) surfaces as SourceReadError from the iteration
itself, so callers can tell a normal end of stream from a failed one.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, Iterator, Union

from core.errors import SourceReadError
from core.logging import get_logger, log_with_context

logger = get_logger(__name__)

RawRow = Dict[str, str]


class CsvRecordSource:
    """
    Lazy, single-pass reader of raw rows from a delimited file.

    Each call to iter() opens the file again and reads it from the start;
    a single iterator is not restartable once exhausted.

    Usage:
        >>> source = CsvRecordSource("trades_data.csv")
        >>> for row in source:
        ...     print(row["token_address"])
    """

    def __init__(
        self,
        path: Union[str, Path],
        delimiter: str = ",",
        encoding: str = "utf-8-sig",
    ):
        self.path = Path(path)
        self.delimiter = delimiter
        self.encoding = encoding

    def __iter__(self) -> Iterator[RawRow]:
        return self.rows()

    def rows(self) -> Iterator[RawRow]:
        """
        Yield raw rows in file order.

        Raises:
            SourceReadError: If the file is missing or unreadable, cannot be
                decoded, or a line has a different column count than the header
        """
        path_str = str(self.path)
        try:
            handle = open(self.path, "r", encoding=self.encoding, newline="")
        except OSError as e:
            raise SourceReadError(
                f"Cannot open source file {path_str}", path=path_str, cause=e
            ) from e

        with handle:
            reader = csv.DictReader(handle, delimiter=self.delimiter, strict=True)
            try:
                for row in reader:
                    yield self._check_row(row, reader.line_num, reader.fieldnames, path_str)
            except (csv.Error, UnicodeDecodeError, OSError) as e:
                raise SourceReadError(
                    f"Failed reading source file {path_str}",
                    path=path_str,
                    line_number=reader.line_num,
                    cause=e,
                ) from e

        log_with_context(
            logger,
            logging.DEBUG,
            "Reached end of source file",
            source_path=path_str,
            line_number=reader.line_num,
        )

    @staticmethod
    def _check_row(row: dict, line_number: int, fieldnames, path: str) -> RawRow:
        # DictReader stores surplus values under the None key and fills
        # missing trailing columns with None
        if None in row or any(value is None for value in row.values()):
            raise SourceReadError(
                f"Malformed line {line_number}: expected {len(fieldnames or [])} columns",
                path=path,
                line_number=line_number,
            )
        return {key.strip(): value for key, value in row.items()}
