"""Row validator: mapped cell text → typed, range-checked vehicle record.

Every field of a row is checked before anything is raised, so a seller sees
all problems of a row at once rather than one per upload.
"""
import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Type, TypeVar
from urllib.parse import urlparse

from pydantic import ValidationError as PydanticValidationError

from vehicle_ingestion.config import ImportSettings, import_settings
from vehicle_ingestion.errors.exceptions import RowError, RowValidationError, ValidationError
from vehicle_ingestion.models.vehicle import (
    BodyType,
    Condition,
    Currency,
    Drivetrain,
    FuelType,
    ImportDefaults,
    Incoterm,
    Transmission,
    ValidatedVehicleRow,
)
from vehicle_ingestion.models.vehicle_fields import TAXONOMY_FIELDS, VehicleField
from vehicle_ingestion.services.matching.resolver import TaxonomyResolution

E = TypeVar("E", bound=Enum)

NOT_NUMERIC = "not numeric"
REQUIRED = "required"

_NUMBER_NOISE = re.compile(r"[$€¥£,\s]")
_VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")

MAX_MILEAGE = 2_000_000
MAX_ENGINE_SIZE = Decimal("20")
CENTS = Decimal("0.01")

# Inclusive bounds of the optional integer specs
INTEGER_BOUNDS: Dict[VehicleField, Tuple[int, int]] = {
    VehicleField.CYLINDERS: (1, 16),
    VehicleField.HORSEPOWER: (1, 2000),
    VehicleField.SEATING_CAPACITY: (1, 100),
    VehicleField.DOORS: (1, 10),
}

# Seller spellings → enum values, compared lowercased.
# Letter and numeric grades are common in Japanese and Chinese auction sheets.
CONDITION_ALIASES: Dict[str, Condition] = {
    'very good': Condition.GOOD,
    'average': Condition.FAIR,
    'bad': Condition.POOR,
    'a': Condition.EXCELLENT, 'a+': Condition.EXCELLENT, 'a-': Condition.EXCELLENT,
    'b': Condition.GOOD, 'b+': Condition.GOOD, 'b-': Condition.GOOD,
    'c': Condition.FAIR, 'c+': Condition.FAIR, 'c-': Condition.FAIR,
    'd': Condition.POOR, 'd+': Condition.POOR, 'd-': Condition.POOR,
    '1': Condition.EXCELLENT,
    '2': Condition.GOOD,
    '3': Condition.FAIR,
    '4': Condition.POOR,
    '5': Condition.POOR,
}

BODY_TYPE_ALIASES: Dict[str, BodyType] = {
    'pick-up': BodyType.PICKUP,
    'pick up': BodyType.PICKUP,
    'saloon': BodyType.SEDAN,
    'estate': BodyType.WAGON,
    'mpv': BodyType.VAN,
    'minivan': BodyType.VAN,
    'crossover': BodyType.SUV,
}

FUEL_TYPE_ALIASES: Dict[str, FuelType] = {
    'gasoline': FuelType.PETROL,
    'gas': FuelType.PETROL,
    'ev': FuelType.ELECTRIC,
    'plug-in hybrid': FuelType.PLUGIN_HYBRID,
    'plugin hybrid': FuelType.PLUGIN_HYBRID,
    'phev': FuelType.PLUGIN_HYBRID,
}

TRANSMISSION_ALIASES: Dict[str, Transmission] = {
    'auto': Transmission.AUTOMATIC,
    'at': Transmission.AUTOMATIC,
    'mt': Transmission.MANUAL,
    'stick': Transmission.MANUAL,
    'dual clutch': Transmission.DCT,
}

DRIVETRAIN_ALIASES: Dict[str, Drivetrain] = {
    'front wheel drive': Drivetrain.FWD,
    'front-wheel drive': Drivetrain.FWD,
    'rear wheel drive': Drivetrain.RWD,
    'rear-wheel drive': Drivetrain.RWD,
    'all wheel drive': Drivetrain.AWD,
    'all-wheel drive': Drivetrain.AWD,
    '4wd': Drivetrain.FOUR_WD,
    '4x4': Drivetrain.FOUR_WD,
    'four wheel drive': Drivetrain.FOUR_WD,
    'four-wheel drive': Drivetrain.FOUR_WD,
}


class _RowContext:
    """Cell access plus error collection for one row."""

    def __init__(self, mapped_row: Mapping[VehicleField, str]):
        self._cells = mapped_row
        self.errors: List[RowError] = []

    def text(self, field: VehicleField) -> str:
        value = self._cells.get(field)
        return "" if value is None else str(value).strip()

    def fail(self, field: VehicleField, reason: str) -> None:
        self.errors.append(ValidationError(field.value, reason))


def parse_decimal(raw: str) -> Decimal:
    """Parse a numeric cell, ignoring currency symbols, thousands separators and spaces.

    Raises:
        ValueError: If the cell is not a finite number
    """
    cleaned = _NUMBER_NOISE.sub("", raw)
    try:
        value = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(NOT_NUMERIC) from e
    if not value.is_finite():
        raise ValueError(NOT_NUMERIC)
    return value


def parse_enum(raw: str, enum_cls: Type[E], aliases: Mapping[str, E]) -> Optional[E]:
    """Resolve a cell to an enum member via aliases or the member value itself."""
    key = raw.strip().lower()
    if key in aliases:
        return aliases[key]
    try:
        return enum_cls(key.upper())
    except ValueError:
        return None


class RowValidator:
    """Validates one mapped row into a ValidatedVehicleRow.

    Attributes:
        defaults: File-wide fallbacks for city, country, currency and incoterm
        settings: Import settings (year floor, default currency/incoterm)
        current_year: Fixed reference year; the clock year when None
    """

    def __init__(
        self,
        defaults: Optional[ImportDefaults] = None,
        settings: Optional[ImportSettings] = None,
        current_year: Optional[int] = None,
    ):
        self.defaults = defaults or ImportDefaults()
        self.settings = settings or import_settings
        self.current_year = current_year

    def with_defaults(self, defaults: ImportDefaults) -> "RowValidator":
        return RowValidator(defaults=defaults, settings=self.settings, current_year=self.current_year)

    def validate(
        self,
        mapped_row: Mapping[VehicleField, str],
        taxonomy: Optional[TaxonomyResolution] = None,
    ) -> ValidatedVehicleRow:
        """Validate and convert one row.

        Args:
            mapped_row: Cell text per mapped field
            taxonomy: Resolution of the row's make/model/variant; its errors are
                reported with the row's and its canonical names replace the raw text

        Returns:
            ValidatedVehicleRow

        Raises:
            RowValidationError: With every failing field of the row
        """
        ctx = _RowContext(mapped_row)
        values: Dict[str, object] = {}

        values.update(self._taxonomy_fields(ctx, taxonomy))
        values["year"] = self._year(ctx)
        values["color"] = ctx.text(VehicleField.COLOR)
        if not values["color"]:
            ctx.fail(VehicleField.COLOR, REQUIRED)
        values["condition"] = self._enum(ctx, VehicleField.CONDITION, Condition, CONDITION_ALIASES, default=None)

        values["vin"] = self._vin(ctx)
        values["body_type"] = self._enum(ctx, VehicleField.BODY_TYPE, BodyType, BODY_TYPE_ALIASES, BodyType.OTHER)
        values["fuel_type"] = self._enum(ctx, VehicleField.FUEL_TYPE, FuelType, FUEL_TYPE_ALIASES, FuelType.OTHER)
        values["transmission"] = self._enum(
            ctx, VehicleField.TRANSMISSION, Transmission, TRANSMISSION_ALIASES, Transmission.OTHER
        )
        values["drivetrain"] = self._enum(
            ctx, VehicleField.DRIVETRAIN, Drivetrain, DRIVETRAIN_ALIASES, Drivetrain.FWD
        )
        values["mileage"] = self._mileage(ctx)

        price = self._price(ctx)
        values["price"] = price
        values["currency"], values["incoterm"] = self._trade_terms(ctx, price)

        values["city"] = ctx.text(VehicleField.CITY) or self.defaults.city or None
        values["country"] = ctx.text(VehicleField.COUNTRY) or self.defaults.country or None
        values["registration_no"] = ctx.text(VehicleField.REGISTRATION_NO) or None
        values["regional_specs"] = ctx.text(VehicleField.REGIONAL_SPECS) or None
        values["description"] = ctx.text(VehicleField.DESCRIPTION) or None

        values["engine_size"] = self._engine_size(ctx)
        for field, (low, high) in INTEGER_BOUNDS.items():
            values[_attribute(field)] = self._bounded_int(ctx, field, low, high)

        values["features"] = tuple(
            part.strip() for part in ctx.text(VehicleField.FEATURES).split(",") if part.strip()
        )
        values["inspection_report_link"] = self._url(ctx, VehicleField.INSPECTION_REPORT_LINK)

        if ctx.errors:
            raise RowValidationError(ctx.errors)

        try:
            return ValidatedVehicleRow(**values)
        except PydanticValidationError as e:
            errors = [
                ValidationError(".".join(str(p) for p in err["loc"]), err["msg"])
                for err in e.errors()
            ]
            raise RowValidationError(errors) from e

    def _taxonomy_fields(self, ctx: _RowContext, taxonomy: Optional[TaxonomyResolution]) -> Dict[str, object]:
        values: Dict[str, object] = {}
        unmatched = {e.field: e for e in taxonomy.errors} if taxonomy else {}
        for field in TAXONOMY_FIELDS:
            text = ctx.text(field)
            values[field.value] = text
            values[f"{field.value}_id"] = None
            if not text:
                ctx.fail(field, REQUIRED)
                continue
            if field.value in unmatched:
                ctx.errors.append(unmatched[field.value])
                continue
            result = taxonomy.result_for(field) if taxonomy else None
            if result is not None and result.entry is not None:
                values[field.value] = result.entry.name
                values[f"{field.value}_id"] = result.entry.id
        return values

    def _reference_year(self) -> int:
        return self.current_year or datetime.now(timezone.utc).year

    def _year(self, ctx: _RowContext) -> Optional[int]:
        text = ctx.text(VehicleField.YEAR)
        if not text:
            ctx.fail(VehicleField.YEAR, REQUIRED)
            return None
        low, high = self.settings.min_vehicle_year, self._reference_year() + 1
        return self._integer(ctx, VehicleField.YEAR, text, low, high)

    def _integer(self, ctx: _RowContext, field: VehicleField, text: str, low: int, high: int) -> Optional[int]:
        """Parse, round half-up and range-check an integer cell."""
        try:
            value = parse_decimal(text)
        except ValueError:
            ctx.fail(field, NOT_NUMERIC)
            return None
        # Reject far out-of-range values before rounding; quantize fails past 28 digits
        if not low - 1 < value < high + 1:
            ctx.fail(field, f"must be between {low} and {high}")
            return None
        rounded = int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
        if not low <= rounded <= high:
            ctx.fail(field, f"must be between {low} and {high}")
            return None
        return rounded

    def _bounded_int(self, ctx: _RowContext, field: VehicleField, low: int, high: int) -> Optional[int]:
        text = ctx.text(field)
        if not text:
            return None
        return self._integer(ctx, field, text, low, high)

    def _mileage(self, ctx: _RowContext) -> int:
        text = ctx.text(VehicleField.MILEAGE)
        if not text:
            return 0
        value = self._integer(ctx, VehicleField.MILEAGE, text, 0, MAX_MILEAGE)
        return 0 if value is None else value

    def _price(self, ctx: _RowContext) -> Optional[Decimal]:
        text = ctx.text(VehicleField.PRICE)
        if not text:
            # Price on request
            return None
        try:
            value = parse_decimal(text)
        except ValueError:
            ctx.fail(VehicleField.PRICE, NOT_NUMERIC)
            return None
        if value < 0:
            ctx.fail(VehicleField.PRICE, "must not be negative")
            return None
        try:
            return value.quantize(CENTS, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            ctx.fail(VehicleField.PRICE, "is too large")
            return None

    def _engine_size(self, ctx: _RowContext) -> Optional[Decimal]:
        text = ctx.text(VehicleField.ENGINE_SIZE)
        if not text:
            return None
        try:
            value = parse_decimal(text)
        except ValueError:
            ctx.fail(VehicleField.ENGINE_SIZE, NOT_NUMERIC)
            return None
        if not 0 < value <= MAX_ENGINE_SIZE:
            ctx.fail(VehicleField.ENGINE_SIZE, f"must be greater than 0 and at most {MAX_ENGINE_SIZE}")
            return None
        return value

    def _trade_terms(
        self, ctx: _RowContext, price: Optional[Decimal]
    ) -> Tuple[Optional[Currency], Optional[Incoterm]]:
        """Currency and incoterm: row value, then file defaults, then settings. Unpriced rows get neither."""
        if price is None:
            return None, None
        currency = self._enum(
            ctx, VehicleField.CURRENCY, Currency, {},
            default=self.defaults.currency or self.settings.default_currency,
        )
        incoterm = self._enum(
            ctx, VehicleField.INCOTERM, Incoterm, {},
            default=self.defaults.incoterm or self.settings.default_incoterm,
        )
        return currency, incoterm

    def _enum(
        self,
        ctx: _RowContext,
        field: VehicleField,
        enum_cls: Type[E],
        aliases: Mapping[str, E],
        default: Optional[E],
    ) -> Optional[E]:
        text = ctx.text(field)
        if not text:
            if default is None:
                ctx.fail(field, REQUIRED)
            return default
        value = parse_enum(text, enum_cls, aliases)
        if value is None:
            allowed = ", ".join(member.value for member in enum_cls)
            ctx.fail(field, f"must be one of: {allowed}")
        return value

    def _vin(self, ctx: _RowContext) -> Optional[str]:
        text = ctx.text(VehicleField.VIN).upper()
        if not text:
            return None
        if not _VIN_PATTERN.match(text):
            ctx.fail(VehicleField.VIN, "must be 17 letters or digits, excluding I, O and Q")
            return None
        return text

    def _url(self, ctx: _RowContext, field: VehicleField) -> Optional[str]:
        text = ctx.text(field)
        if not text:
            return None
        parsed = urlparse(text)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            ctx.fail(field, "must be an http(s) URL")
            return None
        return text


def _attribute(field: VehicleField) -> str:
    """Record attribute name for a field ("seatingCapacity" → "seating_capacity")."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", field.value).lower()
