"""Column mapping models: canonical vehicle field → spreadsheet header."""
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vehicle_ingestion.errors.exceptions import MappingValidationError
from vehicle_ingestion.models.vehicle_fields import REQUIRED_FIELDS, VehicleField


class ColumnMapping(BaseModel):
    """Total mapping from every VehicleField to a header, or None when unmapped.

    Missing fields are filled with None on construction so lookups never need
    a default.
    """

    model_config = ConfigDict(frozen=True)

    headers: Dict[VehicleField, Optional[str]] = Field(default_factory=dict)

    @field_validator("headers", mode="after")
    @classmethod
    def make_total(cls, v: Dict[VehicleField, Optional[str]]) -> Dict[VehicleField, Optional[str]]:
        """Fill unmapped fields and treat blank headers as unmapped."""
        total: Dict[VehicleField, Optional[str]] = {}
        for field in VehicleField:
            header = v.get(field)
            total[field] = header if header and header.strip() else None
        return total

    @classmethod
    def from_dict(cls, data: Mapping[str, Optional[str]]) -> "ColumnMapping":
        """Build from the external `{field_name: header | null}` representation.

        Raises:
            MappingValidationError: If a key is not a canonical field name
        """
        headers: Dict[VehicleField, Optional[str]] = {}
        unknown = []
        for name, header in data.items():
            try:
                headers[VehicleField(name)] = header
            except ValueError:
                unknown.append(name)
        if unknown:
            raise MappingValidationError(f"Unknown vehicle fields in mapping: {sorted(unknown)}")
        return cls(headers=headers)

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Convert to the external `{field_name: header | null}` representation."""
        return {field.value: header for field, header in self.headers.items()}

    def header_for(self, field: VehicleField) -> Optional[str]:
        return self.headers[field]

    @property
    def mapped_fields(self) -> List[VehicleField]:
        return [field for field in VehicleField if self.headers[field] is not None]

    @property
    def missing_required(self) -> List[VehicleField]:
        return [field for field in VehicleField if field in REQUIRED_FIELDS and self.headers[field] is None]

    def with_overrides(self, overrides: Mapping[VehicleField, Optional[str]]) -> "ColumnMapping":
        """Return a copy with some fields remapped (None unmaps)."""
        headers = dict(self.headers)
        headers.update(overrides)
        return ColumnMapping(headers=headers)

    def extract(self, cells: Mapping[str, Any]) -> Dict[VehicleField, str]:
        """Pull the cell text of every mapped field out of a raw row."""
        mapped: Dict[VehicleField, str] = {}
        for field, header in self.headers.items():
            if header is None:
                continue
            value = cells.get(header)
            mapped[field] = "" if value is None else str(value)
        return mapped


class MappingValidation(BaseModel):
    """Result of checking a column mapping before import."""

    is_valid: bool
    missing_required: List[VehicleField] = Field(default_factory=list)
    mapped_fields: List[VehicleField] = Field(default_factory=list)
    unknown_headers: List[str] = Field(default_factory=list)

    def raise_if_invalid(self) -> None:
        """Raise MappingValidationError describing what is wrong."""
        if self.is_valid:
            return
        parts = []
        if self.missing_required:
            labels = ", ".join(f.label for f in self.missing_required)
            parts.append(f"required fields not mapped: {labels}")
        if self.unknown_headers:
            parts.append(f"mapped headers not in file: {', '.join(self.unknown_headers)}")
        raise MappingValidationError(
            "Invalid column mapping (" + "; ".join(parts) + ")",
            missing_fields=[f.value for f in self.missing_required],
            unknown_headers=self.unknown_headers,
        )
