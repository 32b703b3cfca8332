"""Pydantic models for the master Make/Model/Variant taxonomy."""
from enum import Enum
from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TaxonomyKind(str, Enum):
    """Level of a master taxonomy entry."""
    MAKE = "make"
    MODEL = "model"
    VARIANT = "variant"

    @property
    def parent_kind(self) -> Optional["TaxonomyKind"]:
        """Kind of the entry this kind belongs to (Model → Make, Variant → Model)."""
        if self is TaxonomyKind.MODEL:
            return TaxonomyKind.MAKE
        if self is TaxonomyKind.VARIANT:
            return TaxonomyKind.MODEL
        return None


class MasterTaxonomyEntry(BaseModel):
    """One authoritative make, model or variant with its known synonyms.

    Attributes:
        id: Stable identifier, unique across all kinds
        name: Canonical display name (e.g. "Mercedes-Benz")
        kind: Taxonomy level
        parent_id: Owning make (for models) or model (for variants)
        synonyms: Alternative spellings accepted as exact matches
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    kind: TaxonomyKind
    parent_id: Optional[str] = None
    synonyms: FrozenSet[str] = Field(default_factory=frozenset)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped

    @field_validator("synonyms", mode="before")
    @classmethod
    def clean_synonyms(cls, v):
        """Drop blank synonyms and surrounding whitespace."""
        if v is None:
            return frozenset()
        return frozenset(s.strip() for s in v if s and s.strip())

    @model_validator(mode="after")
    def check_parent(self) -> "MasterTaxonomyEntry":
        """Makes are roots; models and variants need a parent."""
        if self.kind is TaxonomyKind.MAKE and self.parent_id is not None:
            raise ValueError("make entries cannot have a parent")
        if self.kind is not TaxonomyKind.MAKE and not self.parent_id:
            raise ValueError(f"{self.kind.value} entries require a parent_id")
        return self
