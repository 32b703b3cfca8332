"""Excel file parser implementation.

Reads the first worksheet of .xlsx (openpyxl) and legacy .xls (xlrd)
workbooks with every cell as text.
"""
from io import BytesIO
from typing import Optional

import pandas as pd
import structlog

from vehicle_ingestion.errors.exceptions import FileParseError
from vehicle_ingestion.parsers.base_parser import ParserInterface

logger = structlog.get_logger(__name__)

# Legacy BIFF workbooks start with the OLE2 compound document signature
_OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class ExcelParser(ParserInterface):
    """Parser for Excel workbooks.

    Only the first sheet is imported; sellers keep listings on one sheet and
    extra sheets usually hold lookup lists. The engine is picked from the
    file signature rather than the extension since uploads are often renamed.
    """

    supported_extensions = (".xlsx", ".xlsm", ".xls")

    def __init__(self, sheet_name: Optional[str] = None, max_file_size_mb: Optional[int] = None):
        super().__init__(max_file_size_mb=max_file_size_mb)
        self.sheet_name = sheet_name

    def get_parser_name(self) -> str:
        """Return parser identifier."""
        return "excel"

    def _read_frame(self, buffer: BytesIO) -> pd.DataFrame:
        engine = 'xlrd' if buffer.getvalue()[:8] == _OLE2_SIGNATURE else 'openpyxl'

        xl = pd.ExcelFile(buffer, engine=engine)
        if not xl.sheet_names:
            raise FileParseError("No sheets found in Excel file")

        sheet = self.sheet_name if self.sheet_name is not None else xl.sheet_names[0]
        if sheet not in xl.sheet_names:
            raise FileParseError(f"Worksheet '{sheet}' not found. Available: {xl.sheet_names}")

        logger.debug("reading_sheet", sheet_name=sheet, engine=engine, sheet_count=len(xl.sheet_names))
        return xl.parse(
            sheet_name=sheet,
            header=None,
            dtype=str,
            keep_default_na=False,
            na_filter=False,
        )
