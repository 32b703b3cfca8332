"""Canonical vehicle fields every imported spreadsheet column maps into."""
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple


class VehicleField(str, Enum):
    """Canonical vehicle fields (values match the listing record attribute names)."""

    # Required
    MAKE = "make"
    MODEL = "model"
    YEAR = "year"
    COLOR = "color"
    VARIANT = "variant"
    CONDITION = "condition"

    # Optional
    VIN = "vin"
    BODY_TYPE = "bodyType"
    FUEL_TYPE = "fuelType"
    TRANSMISSION = "transmission"
    DRIVETRAIN = "drivetrain"
    MILEAGE = "mileage"
    PRICE = "price"
    CITY = "city"
    COUNTRY = "country"
    REGISTRATION_NO = "registrationNo"
    REGIONAL_SPECS = "regionalSpecs"
    ENGINE_SIZE = "engineSize"
    CYLINDERS = "cylinders"
    HORSEPOWER = "horsepower"
    SEATING_CAPACITY = "seatingCapacity"
    DOORS = "doors"
    DESCRIPTION = "description"
    FEATURES = "features"
    CURRENCY = "currency"
    INCOTERM = "incoterm"
    INSPECTION_REPORT_LINK = "inspectionReportLink"

    @property
    def label(self) -> str:
        """Human-readable label shown next to the column picker."""
        return FIELD_LABELS[self]

    @property
    def is_required(self) -> bool:
        return self in REQUIRED_FIELDS


REQUIRED_FIELDS: FrozenSet[VehicleField] = frozenset({
    VehicleField.MAKE,
    VehicleField.MODEL,
    VehicleField.YEAR,
    VehicleField.COLOR,
    VehicleField.VARIANT,
    VehicleField.CONDITION,
})

OPTIONAL_FIELDS: FrozenSet[VehicleField] = frozenset(VehicleField) - REQUIRED_FIELDS

# Fields resolved against the master taxonomy, parent first
TAXONOMY_FIELDS: Tuple[VehicleField, ...] = (
    VehicleField.MAKE,
    VehicleField.MODEL,
    VehicleField.VARIANT,
)

FIELD_LABELS: Dict[VehicleField, str] = {
    VehicleField.VIN: "VIN",
    VehicleField.MAKE: "Make",
    VehicleField.MODEL: "Model",
    VehicleField.YEAR: "Year",
    VehicleField.COLOR: "Color",
    VehicleField.CONDITION: "Condition",
    VehicleField.BODY_TYPE: "Body Type",
    VehicleField.FUEL_TYPE: "Fuel Type",
    VehicleField.TRANSMISSION: "Transmission",
    VehicleField.DRIVETRAIN: "Drivetrain",
    VehicleField.MILEAGE: "Mileage",
    VehicleField.PRICE: "Price",
    VehicleField.CITY: "City",
    VehicleField.COUNTRY: "Country",
    VehicleField.VARIANT: "Variant/Trim",
    VehicleField.REGISTRATION_NO: "Registration No.",
    VehicleField.REGIONAL_SPECS: "Regional Specs",
    VehicleField.ENGINE_SIZE: "Engine Size",
    VehicleField.CYLINDERS: "Cylinders",
    VehicleField.HORSEPOWER: "Horsepower",
    VehicleField.SEATING_CAPACITY: "Seating Capacity",
    VehicleField.DOORS: "Doors",
    VehicleField.DESCRIPTION: "Description",
    VehicleField.FEATURES: "Features",
    VehicleField.CURRENCY: "Currency",
    VehicleField.INCOTERM: "Incoterm",
    VehicleField.INSPECTION_REPORT_LINK: "Inspection Report Link",
}

# Header spellings sellers commonly export, compared after normalization
FIELD_ALIASES: Dict[VehicleField, List[str]] = {
    VehicleField.VIN: ['vin', 'vin number', 'chassis', 'chassis number', 'chassis no', 'vehicle identification number'],
    VehicleField.MAKE: ['make', 'brand', 'manufacturer', 'car brand', 'vehicle make', 'car make'],
    VehicleField.MODEL: ['model', 'car model', 'vehicle model'],
    VehicleField.YEAR: ['year', 'model year', 'manufacturing year', 'mfg year', 'yr', 'production year'],
    VehicleField.COLOR: ['color', 'colour', 'exterior color', 'ext color', 'exterior colour', 'body color'],
    VehicleField.CONDITION: ['condition', 'vehicle condition', 'grade'],
    VehicleField.BODY_TYPE: ['body type', 'bodytype', 'body style', 'body', 'vehicle type', 'car type'],
    VehicleField.FUEL_TYPE: ['fuel type', 'fueltype', 'fuel', 'engine type', 'power source'],
    VehicleField.TRANSMISSION: ['transmission', 'gearbox', 'trans', 'gear type', 'transmission type'],
    VehicleField.DRIVETRAIN: ['drivetrain', 'drive train', 'drive type', 'drive', 'wheel drive'],
    VehicleField.MILEAGE: ['mileage', 'km', 'kilometers', 'kilometres', 'miles', 'odometer', 'odo', 'kms'],
    VehicleField.PRICE: ['price', 'price usd', 'amount', 'selling price', 'asking price', 'sale price'],
    VehicleField.CITY: ['city', 'location city', 'vehicle city'],
    VehicleField.COUNTRY: ['country', 'location country', 'source country'],
    VehicleField.VARIANT: ['variant', 'trim', 'trim level', 'version', 'edition', 'sub model', 'submodel'],
    VehicleField.REGISTRATION_NO: ['registration', 'registration no', 'reg no', 'plate', 'plate number', 'license plate'],
    VehicleField.REGIONAL_SPECS: ['regional specs', 'specs', 'specification', 'gcc specs'],
    VehicleField.ENGINE_SIZE: ['engine size', 'engine', 'displacement', 'engine cc', 'engine capacity'],
    VehicleField.CYLINDERS: ['cylinders', 'cylinder', 'cyl', 'no of cylinders'],
    VehicleField.HORSEPOWER: ['horsepower', 'hp', 'bhp', 'horse power', 'engine power'],
    VehicleField.SEATING_CAPACITY: ['seating capacity', 'seats', 'seating', 'passengers', 'no of seats', 'seat count'],
    VehicleField.DOORS: ['doors', 'door', 'no of doors', 'door count'],
    VehicleField.DESCRIPTION: ['description', 'desc', 'notes', 'remarks', 'comments', 'vehicle description'],
    VehicleField.FEATURES: ['features', 'options', 'extras', 'equipment', 'accessories'],
    VehicleField.CURRENCY: ['currency', 'curr', 'price currency'],
    VehicleField.INCOTERM: ['incoterm', 'incoterms', 'delivery terms'],
    VehicleField.INSPECTION_REPORT_LINK: ['inspection report link', 'inspection report', 'inspection link', 'report url'],
}
