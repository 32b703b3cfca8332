"""Raw spreadsheet rows as produced by the parsers."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Tuple


@dataclass(frozen=True)
class RawRow:
    """One data row: header → cell text, in header order.

    Attributes:
        row_index: 1-based position among the file's data rows (header excluded)
        cells: Read-only mapping of header to cell text ("" for empty cells)
    """
    row_index: int
    cells: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "cells", MappingProxyType(dict(self.cells)))

    @property
    def source_line(self) -> int:
        """Line number in the spreadsheet, counting the header as line 1."""
        return self.row_index + 1

    def get(self, header: str, default: str = "") -> str:
        return self.cells.get(header, default)


class ParsedSpreadsheet:
    """Header set plus a lazily produced, restartable sequence of raw rows.

    Iterating twice yields the same rows in the same order; rows are built
    on demand from the decoded table rather than held as objects.
    """

    def __init__(self, headers: Tuple[str, ...], table: Iterable[Tuple[int, Tuple[str, ...]]], row_count: int):
        self._headers = headers
        self._table = table
        self._row_count = row_count

    @property
    def headers(self) -> Tuple[str, ...]:
        return self._headers

    def __len__(self) -> int:
        return self._row_count

    def __iter__(self) -> Iterator[RawRow]:
        for row_index, values in self._table:
            yield RawRow(row_index=row_index, cells=dict(zip(self._headers, values)))
