"""Unit tests for taxonomy, mapping, matching and batch models."""
import pytest
from pydantic import ValidationError

from vehicle_ingestion.errors.exceptions import BatchStateError, MappingValidationError
from vehicle_ingestion.models.import_batch import (
    BatchState,
    FieldError,
    ImportBatch,
    RowFailure,
    RowSuccess,
)
from vehicle_ingestion.models.mapping import ColumnMapping
from vehicle_ingestion.models.matching import MatchResult, MatchStatus
from vehicle_ingestion.models.taxonomy import MasterTaxonomyEntry, TaxonomyKind
from vehicle_ingestion.models.vehicle import Condition, ValidatedVehicleRow
from vehicle_ingestion.models.vehicle_fields import VehicleField


@pytest.fixture
def vehicle():
    return ValidatedVehicleRow(
        make="Toyota",
        model="Camry",
        variant="LE",
        year=2020,
        color="White",
        condition=Condition.GOOD,
    )


def _success(row_index, vehicle, matches=()):
    return RowSuccess(row_index=row_index, vehicle=vehicle, matches=matches)


def _failure(row_index, field="year", reason="not numeric"):
    return RowFailure(row_index=row_index, errors=(FieldError(field=field, reason=reason),))


def _importing_batch(total):
    batch = ImportBatch()
    batch.transition(BatchState.MAPPING)
    batch.transition(BatchState.VALIDATING)
    batch.start_importing(total)
    return batch


class TestMasterTaxonomyEntry:
    """Tests for MasterTaxonomyEntry validation."""

    def test_make_is_a_root(self):
        with pytest.raises(ValidationError):
            MasterTaxonomyEntry(id="make:x", name="X", kind=TaxonomyKind.MAKE, parent_id="make:y")

    def test_model_requires_parent(self):
        with pytest.raises(ValidationError):
            MasterTaxonomyEntry(id="model:x", name="X", kind=TaxonomyKind.MODEL)

    def test_name_and_synonyms_are_cleaned(self):
        entry = MasterTaxonomyEntry(
            id="make:vw", name="  Volkswagen ", kind=TaxonomyKind.MAKE, synonyms=["VW ", "", "  "]
        )

        assert entry.name == "Volkswagen"
        assert entry.synonyms == frozenset({"VW"})

    def test_parent_kind(self):
        assert TaxonomyKind.VARIANT.parent_kind is TaxonomyKind.MODEL
        assert TaxonomyKind.MAKE.parent_kind is None


class TestMatchResult:
    """Tests for MatchResult entry/status consistency."""

    def test_unmatched_cannot_carry_entry(self):
        entry = MasterTaxonomyEntry(id="make:toyota", name="Toyota", kind=TaxonomyKind.MAKE)

        with pytest.raises(ValidationError):
            MatchResult(text="x", entry=entry, score=0.2, status=MatchStatus.UNMATCHED)

    def test_fuzzy_requires_entry(self):
        with pytest.raises(ValidationError):
            MatchResult(text="x", score=0.7, status=MatchStatus.FUZZY)

    def test_unmatched_result(self):
        result = MatchResult(text="Spaceship", score=0.1, status=MatchStatus.UNMATCHED)

        assert not result.is_resolved
        assert result.canonical_name is None


class TestColumnMapping:
    """Tests for ColumnMapping."""

    def test_is_total_over_fields(self):
        mapping = ColumnMapping(headers={VehicleField.MAKE: "Brand", VehicleField.MODEL: "  "})

        assert set(mapping.headers) == set(VehicleField)
        assert mapping.header_for(VehicleField.MAKE) == "Brand"
        assert mapping.header_for(VehicleField.MODEL) is None
        assert mapping.mapped_fields == [VehicleField.MAKE]

    def test_missing_required(self):
        mapping = ColumnMapping(headers={VehicleField.MAKE: "Brand"})

        assert VehicleField.MAKE not in mapping.missing_required
        assert VehicleField.YEAR in mapping.missing_required
        assert VehicleField.PRICE not in mapping.missing_required

    def test_dict_round_trip(self):
        mapping = ColumnMapping.from_dict({"make": "Brand", "year": "Yr"})

        data = mapping.to_dict()

        assert data["make"] == "Brand"
        assert data["year"] == "Yr"
        assert data["price"] is None

    def test_from_dict_rejects_unknown_fields(self):
        with pytest.raises(MappingValidationError, match="horsepowr"):
            ColumnMapping.from_dict({"make": "Brand", "horsepowr": "HP"})

    def test_with_overrides(self):
        mapping = ColumnMapping(headers={VehicleField.MAKE: "Brand", VehicleField.COLOR: "Colour"})

        updated = mapping.with_overrides({VehicleField.COLOR: None, VehicleField.YEAR: "Yr"})

        assert updated.header_for(VehicleField.COLOR) is None
        assert updated.header_for(VehicleField.YEAR) == "Yr"
        assert mapping.header_for(VehicleField.COLOR) == "Colour"

    def test_extract_only_mapped_fields(self):
        mapping = ColumnMapping(headers={VehicleField.MAKE: "Brand", VehicleField.MILEAGE: "KM"})

        mapped = mapping.extract({"Brand": "Honda", "Notes": "ignored"})

        assert mapped == {VehicleField.MAKE: "Honda", VehicleField.MILEAGE: ""}


class TestImportBatch:
    """Tests for ImportBatch state transitions and counters."""

    def test_happy_path_completes(self, vehicle):
        batch = _importing_batch(2)

        batch.record_chunk([_success(1, vehicle), _success(2, vehicle)])
        batch.finish()

        assert batch.state == BatchState.COMPLETED
        assert batch.state_history == [
            BatchState.PENDING,
            BatchState.MAPPING,
            BatchState.VALIDATING,
            BatchState.IMPORTING,
            BatchState.COMPLETED,
        ]
        assert batch.finished_at is not None

    def test_any_failure_is_partial(self, vehicle):
        batch = _importing_batch(2)

        batch.record_chunk([_success(1, vehicle), _failure(2)])
        batch.finish()

        assert batch.state == BatchState.PARTIAL
        assert (batch.succeeded_count, batch.failed_count, batch.processed_count) == (1, 1, 2)

    def test_cancelled_is_partial(self, vehicle):
        batch = _importing_batch(3)

        batch.record_chunk([_success(1, vehicle)])
        batch.finish(cancelled=True)

        assert batch.state == BatchState.PARTIAL
        assert batch.summary().cancelled is True

    def test_cancel_after_every_row_completes(self, vehicle):
        batch = _importing_batch(1)
        batch.record_chunk([_success(1, vehicle)])
        batch.request_cancel()

        batch.finish(cancelled=batch.cancel_requested)

        assert batch.state == BatchState.COMPLETED
        assert batch.cancelled is False

    def test_cancel_request_on_finished_batch(self):
        batch = ImportBatch()
        batch.abort("bad file")

        with pytest.raises(BatchStateError):
            batch.request_cancel()

    def test_illegal_transition(self):
        batch = ImportBatch()

        with pytest.raises(BatchStateError, match="Illegal batch transition"):
            batch.transition(BatchState.IMPORTING)

    def test_importing_cannot_abort(self):
        batch = _importing_batch(1)

        with pytest.raises(BatchStateError):
            batch.abort("too late")

    def test_abort_from_mapping(self):
        batch = ImportBatch()
        batch.transition(BatchState.MAPPING)

        batch.abort("Invalid column mapping")

        assert batch.state == BatchState.ABORTED
        assert batch.summary().abort_reason == "Invalid column mapping"

    def test_terminal_batch_rejects_writes(self, vehicle):
        batch = _importing_batch(1)
        batch.record_chunk([_success(1, vehicle)])
        batch.finish()

        with pytest.raises(BatchStateError):
            batch.record_chunk([_success(1, vehicle)])
        with pytest.raises(BatchStateError, match="already completed"):
            batch.transition(BatchState.PARTIAL)

    def test_cannot_record_more_rows_than_total(self, vehicle):
        batch = _importing_batch(1)

        with pytest.raises(BatchStateError):
            batch.record_chunk([_success(1, vehicle), _success(2, vehicle)])

    def test_summary_errors_and_corrections(self, vehicle):
        toyota = MasterTaxonomyEntry(id="make:toyota", name="Toyota", kind=TaxonomyKind.MAKE)
        camry = MasterTaxonomyEntry(
            id="model:toyota/camry", name="Camry", kind=TaxonomyKind.MODEL, parent_id="make:toyota"
        )
        matches = (
            MatchResult(text="Toyot", entry=toyota, score=0.833333, status=MatchStatus.FUZZY),
            MatchResult(text="Camry", entry=camry, score=1.0, status=MatchStatus.EXACT),
        )
        batch = _importing_batch(2)
        batch.record_chunk([
            _success(1, vehicle, matches),
            RowFailure(row_index=2, errors=(
                FieldError(field="year", reason="not numeric"),
                FieldError(field="color", reason="required"),
            )),
        ])
        batch.finish()

        summary = batch.summary()

        assert [(e.row_index, e.field, e.reason) for e in summary.errors] == [
            (2, "year", "not numeric"),
            (2, "color", "required"),
        ]
        assert len(summary.corrections) == 1
        assert summary.corrections[0].model_dump() == {
            "row_index": 1,
            "field": "make",
            "original": "Toyot",
            "corrected": "Toyota",
            "confidence": 0.8333,
        }

    def test_row_failure_needs_a_reason(self):
        with pytest.raises(ValidationError):
            RowFailure(row_index=1, errors=())
