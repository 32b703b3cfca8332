"""Abstract parser interface for uploaded spreadsheet formats."""
from abc import ABC, abstractmethod
from io import BytesIO
from typing import BinaryIO, Iterator, List, Optional, Tuple, Union

import pandas as pd
import structlog

from vehicle_ingestion.config import import_settings
from vehicle_ingestion.errors.exceptions import FileParseError
from vehicle_ingestion.models.raw_row import ParsedSpreadsheet

logger = structlog.get_logger(__name__)

SpreadsheetSource = Union[bytes, bytearray, BinaryIO]


class _FrameRows:
    """Re-iterable view over the data rows of a decoded table.

    Yields (row_index, cell values) for every non-blank row below the header,
    where row_index counts data rows from 1 including skipped blank ones so it
    keeps matching the file.
    """

    def __init__(self, frame: pd.DataFrame, data_start: int):
        self._frame = frame
        self._data_start = data_start

    def __iter__(self) -> Iterator[Tuple[int, Tuple[str, ...]]]:
        data = self._frame.iloc[self._data_start:]
        for offset, values in enumerate(data.itertuples(index=False, name=None), start=1):
            if _is_blank_row(values):
                continue
            yield offset, tuple(values)


def _is_blank_row(values) -> bool:
    return all(not str(v).strip() for v in values)


class ParserInterface(ABC):
    """Abstract base class for all spreadsheet parsers.

    Implementations decode a byte stream into a string-only DataFrame via
    _read_frame(); header detection, blank-row skipping and row numbering
    are shared here so every format behaves the same.

    Implementations must provide:
    - _read_frame(): Decode the raw bytes into a header-less string table
    - get_parser_name(): Return unique parser identifier
    - supported_extensions: File extensions the parser accepts
    """

    supported_extensions: Tuple[str, ...] = ()

    def __init__(self, max_file_size_mb: Optional[int] = None):
        self._max_bytes = (max_file_size_mb or import_settings.max_file_size_mb) * 1024 * 1024

    @abstractmethod
    def get_parser_name(self) -> str:
        """Return unique identifier for this parser type (e.g., "csv", "excel")."""
        pass

    @abstractmethod
    def _read_frame(self, buffer: BytesIO) -> pd.DataFrame:
        """Decode the file into a DataFrame of strings with no header applied.

        Raises:
            FileParseError: If the bytes cannot be decoded into tabular cells
        """
        pass

    def parse(self, source: SpreadsheetSource, filename: Optional[str] = None) -> ParsedSpreadsheet:
        """Parse an uploaded file into its header set and raw data rows.

        Args:
            source: File contents as bytes or a binary file object
            filename: Original file name, for logging only

        Returns:
            ParsedSpreadsheet whose rows can be iterated any number of times

        Raises:
            FileParseError: If the file is too large, undecodable, has no
                header row or has no data rows
        """
        log = logger.bind(parser=self.get_parser_name(), filename=filename)
        payload = self._read_bytes(source)
        if not payload:
            raise FileParseError("The file is empty")

        try:
            frame = self._read_frame(BytesIO(payload))
        except FileParseError:
            raise
        except Exception as e:
            log.warning("file_decode_failed", error=str(e), error_type=type(e).__name__)
            raise FileParseError(f"Failed to parse file as {self.get_parser_name()}: {e}") from e

        frame = frame.fillna("").astype(str)
        spreadsheet = self._build_spreadsheet(frame)
        log.info("file_parsed", headers=list(spreadsheet.headers), row_count=len(spreadsheet))
        return spreadsheet

    def _read_bytes(self, source: SpreadsheetSource) -> bytes:
        if isinstance(source, (bytes, bytearray)):
            payload = bytes(source)
        else:
            payload = source.read(self._max_bytes + 1)
        if len(payload) > self._max_bytes:
            raise FileParseError(
                f"File exceeds maximum allowed size of {self._max_bytes // (1024 * 1024)}MB"
            )
        return payload

    def _build_spreadsheet(self, frame: pd.DataFrame) -> ParsedSpreadsheet:
        """Locate the header row, normalize header names and count data rows."""
        header_pos = None
        for pos, values in enumerate(frame.itertuples(index=False, name=None)):
            if not _is_blank_row(values):
                header_pos = pos
                break
        if header_pos is None:
            raise FileParseError("The file has no header row")

        headers = self._normalize_headers(list(frame.iloc[header_pos]))
        rows = _FrameRows(frame, header_pos + 1)
        row_count = sum(1 for _ in rows)
        if row_count == 0:
            raise FileParseError("The file has a header row but no data rows")
        return ParsedSpreadsheet(headers=headers, table=rows, row_count=row_count)

    @staticmethod
    def _normalize_headers(raw_headers: List[str]) -> Tuple[str, ...]:
        """Trim headers, name blank ones by position and suffix duplicates.

        Generated names are checked against every header so far, so a file
        that already has "Price (2)" never ends up with two of them.
        """
        headers: List[str] = []
        taken = set()
        for i, raw in enumerate(raw_headers):
            base = " ".join(str(raw).split()) or f"Column {i + 1}"
            header, count = base, 1
            while header.lower() in taken:
                count += 1
                header = f"{base} ({count})"
            taken.add(header.lower())
            headers.append(header)
        return tuple(headers)
