"""Pytest configuration and fixtures for test suite.

This is the root-level conftest.py that provides:
- Python path setup (so we can import vehicle_ingestion without installing)
- Basic environment variable defaults
- Shared taxonomy, spreadsheet and repository fixtures
"""
import os
import sys
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

# Add project root to Python path so we can import vehicle_ingestion
# This file is at: tests/conftest.py
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Set environment variables BEFORE importing modules that use settings
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("REDIS_PORT", "6379")
os.environ.setdefault("LOG_LEVEL", "INFO")

from openpyxl import Workbook  # noqa: E402

from vehicle_ingestion.errors.exceptions import PersistenceError  # noqa: E402
from vehicle_ingestion.models.taxonomy import MasterTaxonomyEntry, TaxonomyKind  # noqa: E402
from vehicle_ingestion.models.vehicle import ValidatedVehicleRow  # noqa: E402
from vehicle_ingestion.services.taxonomy_index import TaxonomyIndex  # noqa: E402

LISTING_HEADERS = ["Make", "Model", "Year", "Color", "Variant", "Condition"]


def make_entry(
    entry_id: str,
    name: str,
    kind: TaxonomyKind,
    parent_id: Optional[str] = None,
    synonyms: Sequence[str] = (),
) -> MasterTaxonomyEntry:
    return MasterTaxonomyEntry(id=entry_id, name=name, kind=kind, parent_id=parent_id, synonyms=synonyms)


def csv_bytes(rows: Sequence[Sequence[str]]) -> bytes:
    """Render rows (header first) as a UTF-8 CSV file."""
    return ("\n".join(",".join(str(c) for c in row) for row in rows) + "\n").encode("utf-8")


def xlsx_bytes(rows: Sequence[Sequence[object]]) -> bytes:
    """Render rows (header first) as an .xlsx workbook with one sheet."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Vehicles"
    for row in rows:
        sheet.append(list(row))
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class FakeVehicleRepository:
    """Records persisted vehicles; raises for VINs listed in fail_vins."""

    def __init__(self, fail_vins: Sequence[str] = ()):
        self.fail_vins = set(fail_vins)
        self.saved: List[ValidatedVehicleRow] = []

    async def create_or_update_vehicle(self, vehicle: ValidatedVehicleRow) -> str:
        if vehicle.vin in self.fail_vins:
            raise PersistenceError(f"Duplicate VIN {vehicle.vin}")
        self.saved.append(vehicle)
        return f"vehicle-{len(self.saved)}"


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up basic test environment variables before any tests run."""
    os.environ.setdefault("REDIS_PASSWORD", "test_password")
    yield


@pytest.fixture
def taxonomy_entries() -> List[MasterTaxonomyEntry]:
    """A small Make → Model → Variant tree."""
    return [
        make_entry("make:toyota", "Toyota", TaxonomyKind.MAKE),
        make_entry("make:honda", "Honda", TaxonomyKind.MAKE),
        make_entry("make:mercedes-benz", "Mercedes-Benz", TaxonomyKind.MAKE, synonyms=["Mercedes", "Benz"]),
        make_entry("model:toyota/camry", "Camry", TaxonomyKind.MODEL, "make:toyota"),
        make_entry("model:toyota/corolla", "Corolla", TaxonomyKind.MODEL, "make:toyota"),
        make_entry("model:honda/accord", "Accord", TaxonomyKind.MODEL, "make:honda"),
        make_entry("model:honda/civic", "Civic", TaxonomyKind.MODEL, "make:honda"),
        make_entry("model:mercedes-benz/c-class", "C-Class", TaxonomyKind.MODEL, "make:mercedes-benz"),
        make_entry("variant:toyota/camry/le", "LE", TaxonomyKind.VARIANT, "model:toyota/camry"),
        make_entry("variant:toyota/camry/se", "SE", TaxonomyKind.VARIANT, "model:toyota/camry"),
        make_entry("variant:toyota/corolla/xle", "XLE", TaxonomyKind.VARIANT, "model:toyota/corolla"),
        make_entry("variant:honda/accord/ex", "EX", TaxonomyKind.VARIANT, "model:honda/accord"),
        make_entry("variant:honda/accord/ex-l", "EX-L", TaxonomyKind.VARIANT, "model:honda/accord"),
        make_entry("variant:honda/civic/lx", "LX", TaxonomyKind.VARIANT, "model:honda/civic"),
        make_entry("variant:mercedes-benz/c-class/c200", "C200", TaxonomyKind.VARIANT, "model:mercedes-benz/c-class"),
    ]


@pytest.fixture
def taxonomy_index(taxonomy_entries) -> TaxonomyIndex:
    return TaxonomyIndex(taxonomy_entries)


@pytest.fixture
def listing_rows() -> List[List[str]]:
    """Three listings: clean, bad year, misspelled make."""
    return [
        LISTING_HEADERS,
        ["Toyota", "Camry", "2020", "White", "LE", "Good"],
        ["Honda", "Accord", "N/A", "Black", "EX", "Excellent"],
        ["Toyot", "Corolla", "2019", "Silver", "XLE", "Fair"],
    ]


@pytest.fixture
def repository() -> FakeVehicleRepository:
    return FakeVehicleRepository()


@pytest.fixture
def make_csv():
    """Factory fixture: rows (header first) → CSV bytes."""
    return csv_bytes


@pytest.fixture
def make_xlsx():
    """Factory fixture: rows (header first) → .xlsx bytes."""
    return xlsx_bytes


@pytest.fixture
def repository_factory():
    """Factory fixture for repositories that fail on chosen VINs."""
    return FakeVehicleRepository
