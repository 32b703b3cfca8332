"""Pydantic models for validated vehicle listings ready for persistence."""
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from vehicle_ingestion.models.vehicle_fields import VehicleField


class Condition(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


class BodyType(str, Enum):
    SEDAN = "SEDAN"
    SUV = "SUV"
    HATCHBACK = "HATCHBACK"
    COUPE = "COUPE"
    CONVERTIBLE = "CONVERTIBLE"
    WAGON = "WAGON"
    VAN = "VAN"
    TRUCK = "TRUCK"
    PICKUP = "PICKUP"
    OTHER = "OTHER"


class FuelType(str, Enum):
    PETROL = "PETROL"
    DIESEL = "DIESEL"
    HYBRID = "HYBRID"
    ELECTRIC = "ELECTRIC"
    PLUGIN_HYBRID = "PLUGIN_HYBRID"
    OTHER = "OTHER"


class Transmission(str, Enum):
    AUTOMATIC = "AUTOMATIC"
    MANUAL = "MANUAL"
    CVT = "CVT"
    DCT = "DCT"
    OTHER = "OTHER"


class Drivetrain(str, Enum):
    FWD = "FWD"
    RWD = "RWD"
    AWD = "AWD"
    FOUR_WD = "FOUR_WD"


class Currency(str, Enum):
    USD = "USD"
    AED = "AED"
    CNY = "CNY"
    EUR = "EUR"


class Incoterm(str, Enum):
    FOB = "FOB"
    CIF = "CIF"


class ImportDefaults(BaseModel):
    """Values applied to the whole file when a row leaves the field empty.

    City and country come from the seller profile; currency and incoterm only
    apply to rows that carry a price.
    """

    model_config = ConfigDict(frozen=True)

    city: Optional[str] = None
    country: Optional[str] = None
    currency: Optional[Currency] = None
    incoterm: Optional[Incoterm] = None


class ValidatedVehicleRow(BaseModel):
    """Fully typed vehicle record handed to the persistence collaborator.

    make/model/variant hold canonical taxonomy names; the *_id fields hold the
    resolved taxonomy entry ids when the row went through taxonomy matching.
    A null price marks a price-on-request listing, in which case currency and
    incoterm are null too.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    make: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    variant: str = Field(..., min_length=1)
    year: int
    color: str = Field(..., min_length=1)
    condition: Condition

    vin: Optional[str] = Field(default=None, min_length=17, max_length=17)
    body_type: BodyType = BodyType.OTHER
    fuel_type: FuelType = FuelType.OTHER
    transmission: Transmission = Transmission.OTHER
    drivetrain: Drivetrain = Drivetrain.FWD
    mileage: int = Field(default=0, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[Currency] = None
    incoterm: Optional[Incoterm] = None
    city: Optional[str] = None
    country: Optional[str] = None
    registration_no: Optional[str] = None
    regional_specs: Optional[str] = None
    engine_size: Optional[Decimal] = None
    cylinders: Optional[int] = None
    horsepower: Optional[int] = None
    seating_capacity: Optional[int] = None
    doors: Optional[int] = None
    description: Optional[str] = None
    features: Tuple[str, ...] = ()
    inspection_report_link: Optional[str] = None

    make_id: Optional[str] = None
    model_id: Optional[str] = None
    variant_id: Optional[str] = None

    def as_mapped_row(self) -> Dict[VehicleField, str]:
        """Render the record back into field → cell text form.

        Feeding the result to the row validator, with the same taxonomy
        resolution, reproduces this record.
        """
        values: Dict[VehicleField, Optional[object]] = {
            VehicleField.MAKE: self.make,
            VehicleField.MODEL: self.model,
            VehicleField.VARIANT: self.variant,
            VehicleField.YEAR: self.year,
            VehicleField.COLOR: self.color,
            VehicleField.CONDITION: self.condition.value,
            VehicleField.VIN: self.vin,
            VehicleField.BODY_TYPE: self.body_type.value,
            VehicleField.FUEL_TYPE: self.fuel_type.value,
            VehicleField.TRANSMISSION: self.transmission.value,
            VehicleField.DRIVETRAIN: self.drivetrain.value,
            VehicleField.MILEAGE: self.mileage,
            VehicleField.PRICE: self.price,
            VehicleField.CURRENCY: self.currency.value if self.currency else None,
            VehicleField.INCOTERM: self.incoterm.value if self.incoterm else None,
            VehicleField.CITY: self.city,
            VehicleField.COUNTRY: self.country,
            VehicleField.REGISTRATION_NO: self.registration_no,
            VehicleField.REGIONAL_SPECS: self.regional_specs,
            VehicleField.ENGINE_SIZE: self.engine_size,
            VehicleField.CYLINDERS: self.cylinders,
            VehicleField.HORSEPOWER: self.horsepower,
            VehicleField.SEATING_CAPACITY: self.seating_capacity,
            VehicleField.DOORS: self.doors,
            VehicleField.DESCRIPTION: self.description,
            VehicleField.FEATURES: ", ".join(self.features) if self.features else None,
            VehicleField.INSPECTION_REPORT_LINK: self.inspection_report_link,
        }
        return {field: str(value) for field, value in values.items() if value is not None}
