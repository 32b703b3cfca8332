"""Master taxonomy snapshot, its sources and a TTL cache.

The index is built once per batch (or reused from the cache) and never
mutated, so every row of a batch is matched against the same snapshot.
"""
import asyncio
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import structlog

from vehicle_ingestion.config import import_settings
from vehicle_ingestion.errors.exceptions import FileParseError
from vehicle_ingestion.models.matching import MatchScope
from vehicle_ingestion.models.taxonomy import MasterTaxonomyEntry, TaxonomyKind
from vehicle_ingestion.parsers.base_parser import ParserInterface, SpreadsheetSource
from vehicle_ingestion.services.matching.normalizer import normalize_text

logger = structlog.get_logger(__name__)


class TaxonomySource(Protocol):
    """Where master taxonomy entries come from (database, sheet, fixture)."""

    async def load_taxonomy(self, kind: TaxonomyKind) -> Sequence[MasterTaxonomyEntry]:
        ...


class StaticTaxonomySource:
    """In-memory source over a fixed list of entries."""

    def __init__(self, entries: Iterable[MasterTaxonomyEntry]):
        self._entries = list(entries)

    async def load_taxonomy(self, kind: TaxonomyKind) -> Sequence[MasterTaxonomyEntry]:
        return [e for e in self._entries if e.kind is kind]


class MasterSheetTaxonomySource:
    """Builds the taxonomy from a master Make/Model/Variant spreadsheet.

    Each data row describes one variant. Column headers are matched
    case-insensitively against a few accepted spellings; rows missing any of
    the three values are skipped. Entry ids are derived from the normalized
    names so reloading the same sheet yields the same ids.
    """

    COLUMN_MAPPING = {
        TaxonomyKind.MAKE: ['make', 'brand', 'manufacturer'],
        TaxonomyKind.MODEL: ['model', 'car model'],
        TaxonomyKind.VARIANT: ['variant', 'trim', 'version', 'edition'],
    }

    def __init__(self, parser: ParserInterface, source: SpreadsheetSource, filename: Optional[str] = None):
        self.parser = parser
        self.source = source
        self.filename = filename
        self._entries: Optional[List[MasterTaxonomyEntry]] = None

    async def load_taxonomy(self, kind: TaxonomyKind) -> Sequence[MasterTaxonomyEntry]:
        if self._entries is None:
            self._entries = self._read_sheet()
        return [e for e in self._entries if e.kind is kind]

    def _read_sheet(self) -> List[MasterTaxonomyEntry]:
        log = logger.bind(filename=self.filename)
        spreadsheet = self.parser.parse(self.source, filename=self.filename)
        columns = self._map_columns(spreadsheet.headers)

        entries: Dict[str, MasterTaxonomyEntry] = {}
        skipped = 0
        for row in spreadsheet:
            make, model, variant = (row.get(columns[kind]).strip() for kind in TaxonomyKind)
            if not (make and model and variant):
                skipped += 1
                continue
            make_id = f"make:{_slug(make)}"
            model_id = f"model:{_slug(make)}/{_slug(model)}"
            variant_id = f"variant:{_slug(make)}/{_slug(model)}/{_slug(variant)}"
            entries.setdefault(make_id, MasterTaxonomyEntry(id=make_id, name=make, kind=TaxonomyKind.MAKE))
            entries.setdefault(model_id, MasterTaxonomyEntry(
                id=model_id, name=model, kind=TaxonomyKind.MODEL, parent_id=make_id,
            ))
            entries.setdefault(variant_id, MasterTaxonomyEntry(
                id=variant_id, name=variant, kind=TaxonomyKind.VARIANT, parent_id=model_id,
            ))

        log.info("master_sheet_loaded", entries=len(entries), skipped_rows=skipped)
        return list(entries.values())

    def _map_columns(self, headers: Sequence[str]) -> Dict[TaxonomyKind, str]:
        columns: Dict[TaxonomyKind, str] = {}
        for kind, names in self.COLUMN_MAPPING.items():
            for header in headers:
                if header.strip().lower() in names:
                    columns[kind] = header
                    break
        missing = [k.value for k in TaxonomyKind if k not in columns]
        if missing:
            raise FileParseError(
                f"Master sheet is missing columns {missing}; found {list(headers)}"
            )
        return columns


def _slug(name: str) -> str:
    return normalize_text(name).replace(" ", "-")


@dataclass(frozen=True)
class IndexedEntry:
    """A taxonomy entry with its normalized name and synonyms (name first)."""
    entry: MasterTaxonomyEntry
    forms: Tuple[str, ...]


class TaxonomyIndex:
    """Immutable lookup structure over one taxonomy snapshot.

    Entries whose parent is missing or of the wrong kind are dropped with a
    warning, so every model resolves to a make and every variant to a model.
    """

    def __init__(self, entries: Iterable[MasterTaxonomyEntry]):
        self._by_id: Dict[str, IndexedEntry] = {}
        self._by_scope: Dict[Tuple[TaxonomyKind, Optional[str]], List[IndexedEntry]] = defaultdict(list)
        self._exact: Dict[Tuple[TaxonomyKind, Optional[str], str], List[MasterTaxonomyEntry]] = defaultdict(list)

        # Parents first so orphan checks see every candidate parent
        ordered = sorted(entries, key=lambda e: list(TaxonomyKind).index(e.kind))
        for entry in ordered:
            if entry.id in self._by_id:
                logger.warning("duplicate_taxonomy_id", entry_id=entry.id, name=entry.name)
                continue
            if entry.parent_id is not None:
                parent = self._by_id.get(entry.parent_id)
                if parent is None or parent.entry.kind is not entry.kind.parent_kind:
                    logger.warning(
                        "orphan_taxonomy_entry_dropped",
                        entry_id=entry.id,
                        kind=entry.kind.value,
                        parent_id=entry.parent_id,
                    )
                    continue
            self._add(entry)

        for bucket in self._by_scope.values():
            bucket.sort(key=lambda item: (item.entry.name, item.entry.id))

    def _add(self, entry: MasterTaxonomyEntry) -> None:
        forms: List[str] = [normalize_text(entry.name)]
        for synonym in sorted(entry.synonyms):
            form = normalize_text(synonym)
            if form and form not in forms:
                forms.append(form)
        indexed = IndexedEntry(entry=entry, forms=tuple(forms))
        self._by_id[entry.id] = indexed
        for parent_key in {None, entry.parent_id}:
            self._by_scope[(entry.kind, parent_key)].append(indexed)
            for form in indexed.forms:
                self._exact[(entry.kind, parent_key, form)].append(entry)

    @classmethod
    async def build(cls, source: TaxonomySource) -> "TaxonomyIndex":
        """Load makes, models and variants from source into a new index."""
        entries: List[MasterTaxonomyEntry] = []
        for kind in TaxonomyKind:
            entries.extend(await source.load_taxonomy(kind))
        index = cls(entries)
        logger.info(
            "taxonomy_index_built",
            makes=len(index.candidates(MatchScope(kind=TaxonomyKind.MAKE))),
            models=len(index.candidates(MatchScope(kind=TaxonomyKind.MODEL))),
            variants=len(index.candidates(MatchScope(kind=TaxonomyKind.VARIANT))),
        )
        return index

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, entry_id: str) -> Optional[MasterTaxonomyEntry]:
        indexed = self._by_id.get(entry_id)
        return indexed.entry if indexed else None

    def candidates(self, scope: MatchScope) -> Tuple[IndexedEntry, ...]:
        """Entries of scope.kind, restricted to scope.parent_id when given."""
        return tuple(self._by_scope.get((scope.kind, scope.parent_id), ()))

    def exact(self, normalized: str, scope: MatchScope) -> Tuple[MasterTaxonomyEntry, ...]:
        """Entries in scope whose normalized name or synonym equals normalized."""
        return tuple(self._exact.get((scope.kind, scope.parent_id, normalized), ()))


class TaxonomyIndexCache:
    """Reuses a built TaxonomyIndex for a fixed time.

    Concurrent callers share one load; a ttl of 0 disables caching.
    """

    def __init__(
        self,
        source: TaxonomySource,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else import_settings.taxonomy_cache_ttl_seconds
        self._clock = clock
        self._index: Optional[TaxonomyIndex] = None
        self._loaded_at: float = 0.0
        self._lock = asyncio.Lock()

    def _is_fresh(self) -> bool:
        return self._index is not None and self._clock() - self._loaded_at < self.ttl_seconds

    async def get_index(self) -> TaxonomyIndex:
        async with self._lock:
            if self._is_fresh():
                logger.debug("taxonomy_cache_hit")
                return self._index
            self._index = await TaxonomyIndex.build(self.source)
            self._loaded_at = self._clock()
            return self._index

    def invalidate(self) -> None:
        self._index = None
