"""CSV file parser implementation."""
from io import BytesIO
from typing import Optional

import pandas as pd
import structlog

from vehicle_ingestion.errors.exceptions import FileParseError
from vehicle_ingestion.parsers.base_parser import ParserInterface

logger = structlog.get_logger(__name__)


class CsvParser(ParserInterface):
    """Parser for comma (or otherwise) delimited text exports.

    Cells are read as plain strings: nothing is converted to numbers or NaN
    here, so values like "N/A" reach the row validator untouched. Falls back
    to latin-1 when the file is not valid UTF-8.
    """

    supported_extensions = (".csv", ".txt")

    def __init__(
        self,
        delimiter: str = ",",
        encoding: str = "utf-8",
        max_file_size_mb: Optional[int] = None,
    ):
        super().__init__(max_file_size_mb=max_file_size_mb)
        self.delimiter = delimiter
        self.encoding = encoding

    def get_parser_name(self) -> str:
        """Return parser identifier."""
        return "csv"

    def _read_frame(self, buffer: BytesIO) -> pd.DataFrame:
        try:
            return self._read_csv(buffer, self.encoding)
        except UnicodeDecodeError as e:
            # Try with latin-1 encoding as fallback
            logger.warning("utf8_decode_failed_trying_latin1", error=str(e))
            buffer.seek(0)
            return self._read_csv(buffer, "latin-1")
        except pd.errors.EmptyDataError as e:
            raise FileParseError("The file has no header row") from e

    def _read_csv(self, buffer: BytesIO, encoding: str) -> pd.DataFrame:
        return pd.read_csv(
            buffer,
            delimiter=self.delimiter,
            encoding=encoding,
            header=None,
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            skip_blank_lines=False,
        )
