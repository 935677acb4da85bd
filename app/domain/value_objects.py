"""
Domain Layer - Value objects for the financial documents.
Money is kept as Decimal and rounded to cents half away from zero.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from .exceptions import DomainValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

MAX_DESCRIPTION_LENGTH = 500
NIF_WEIGHTS = (9, 8, 7, 6, 5, 4, 3, 2)
NIF_PATTERN = re.compile(r"[0-9]{9}")
FISCAL_NUMBER_PATTERN = re.compile(r"([0-9]{4})/([0-9]{4,})")
DRAFT_NUMBER_PREFIX = "DRAFT-"


def to_decimal(value: object, field_name: str = "value") -> Decimal:
    """Convert int/str/float/Decimal to a finite Decimal."""
    if value is None or isinstance(value, bool):
        raise DomainValidationError(f"{field_name} is required")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            raise DomainValidationError(f"{field_name} must be a number") from None
    if not result.is_finite():
        raise DomainValidationError(f"{field_name} must be a finite number")
    return result


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _optional_id(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class InvoiceStatus(str, Enum):
    """Fiscal document lifecycle, see entities.ALLOWED_TRANSITIONS."""
    DRAFT = "draft"
    ISSUED = "issued"
    PAID = "paid"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID_MANUAL = "paid_manual"
    REFUNDED = "refunded"


class ExportFormat(str, Enum):
    CSV = "CSV"
    JSON = "JSON"

    @classmethod
    def parse(cls, raw: str) -> "ExportFormat":
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            raise DomainValidationError("Format must be 'csv' or 'json'") from None

    @property
    def extension(self) -> str:
        return self.value.lower()


class DeliveryMethod(str, Enum):
    DOWNLOAD = "download"
    SFTP = "sftp"


@dataclass(frozen=True, slots=True)
class VatRate:
    """Value Object - VAT percentage in [0, 100], two decimal places."""
    value: Decimal

    def __post_init__(self) -> None:
        rate = to_decimal(self.value, "VAT rate")
        if rate < ZERO or rate > HUNDRED:
            raise DomainValidationError("VAT rate must be between 0 and 100")
        object.__setattr__(self, "value", round_money(rate))

    @classmethod
    def standard(cls) -> "VatRate":
        return cls(Decimal("23"))

    @classmethod
    def intermediate(cls) -> "VatRate":
        return cls(Decimal("13"))

    @classmethod
    def reduced(cls) -> "VatRate":
        return cls(Decimal("6"))

    @classmethod
    def zero(cls) -> "VatRate":
        return cls(ZERO)

    @property
    def as_fraction(self) -> Decimal:
        return self.value / HUNDRED

    def is_zero(self) -> bool:
        return self.value == ZERO


@dataclass(frozen=True, slots=True)
class TaxpayerNumber:
    """
    Value Object - Portuguese NIF.
    9 digits; the last one is a mod-11 check digit over the first eight
    weighted 9..2 (a computed 10 or 11 becomes 0).
    """
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise DomainValidationError("NIF is required")
        digits = re.sub(r"\s", "", self.value)
        if not NIF_PATTERN.fullmatch(digits):
            raise DomainValidationError("NIF must be exactly 9 digits")
        if self.check_digit(digits[:8]) != int(digits[8]):
            raise DomainValidationError("Invalid NIF check digit")
        object.__setattr__(self, "value", digits)

    @staticmethod
    def check_digit(first_eight: str) -> int:
        total = sum(int(digit) * weight for digit, weight in zip(first_eight, NIF_WEIGHTS))
        digit = 11 - total % 11
        return 0 if digit >= 10 else digit

    @classmethod
    def is_valid(cls, raw: str | None) -> bool:
        try:
            cls(raw)
        except DomainValidationError:
            return False
        return True

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class InvoiceNumber:
    """Value Object - fiscal number YYYY/NNNN, sequence restarts every year."""
    year: int
    sequence: int

    def __post_init__(self) -> None:
        if not 1 <= self.year <= 9999:
            raise DomainValidationError("Invoice number year must have four digits")
        if self.sequence < 1:
            raise DomainValidationError("Invoice number sequence starts at 1")

    def __str__(self) -> str:
        return f"{self.year:04d}/{self.sequence:04d}"

    @classmethod
    def parse(cls, text: str) -> "InvoiceNumber":
        match = FISCAL_NUMBER_PATTERN.fullmatch(text or "")
        if match is None:
            raise DomainValidationError(f"'{text}' is not a fiscal invoice number")
        return cls(int(match.group(1)), int(match.group(2)))

    @staticmethod
    def is_fiscal(text: str | None) -> bool:
        return bool(text) and FISCAL_NUMBER_PATTERN.fullmatch(text) is not None

    @staticmethod
    def draft_placeholder(moment: datetime) -> str:
        return f"{DRAFT_NUMBER_PREFIX}{int(moment.timestamp() * 1000)}"


@dataclass(frozen=True, slots=True)
class Period:
    """Value Object - closed date-time range, end >= start."""
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        start, end = as_utc(self.start), as_utc(self.end)
        if end < start:
            raise DomainValidationError("Period end date cannot be before period start date")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def duration_days(self) -> int:
        """Inclusive of both ends."""
        return (self.end - self.start).days + 1

    def contains(self, moment: datetime) -> bool:
        return self.start <= as_utc(moment) <= self.end


@dataclass(frozen=True, slots=True)
class InvoiceLine:
    """Invoice line item for a product, a service or neither."""
    description: str
    quantity: int
    unit_price: Decimal
    vat_rate: Decimal
    product_id: str | None = None
    service_id: str | None = None

    def __post_init__(self) -> None:
        description = self.description.strip() if isinstance(self.description, str) else ""
        if not description:
            raise DomainValidationError("Invoice line description is required")
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise DomainValidationError(
                f"Invoice line description cannot exceed {MAX_DESCRIPTION_LENGTH} characters"
            )
        product_id = _optional_id(self.product_id)
        service_id = _optional_id(self.service_id)
        if product_id and service_id:
            raise DomainValidationError("Invoice line cannot reference both a product and a service")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise DomainValidationError("Invoice line quantity must be a positive integer")
        unit_price = to_decimal(self.unit_price, "Unit price")
        if unit_price < ZERO:
            raise DomainValidationError("Invoice line unit price cannot be negative")

        object.__setattr__(self, "description", description)
        object.__setattr__(self, "product_id", product_id)
        object.__setattr__(self, "service_id", service_id)
        object.__setattr__(self, "unit_price", unit_price)
        object.__setattr__(self, "vat_rate", VatRate(self.vat_rate).value)

    @property
    def is_product(self) -> bool:
        return self.product_id is not None

    @property
    def is_service(self) -> bool:
        return self.service_id is not None


@dataclass(frozen=True, slots=True)
class TransactionLineItem:
    """Point-of-sale line, always for exactly one product or one service."""
    quantity: int
    unit_price: Decimal
    product_id: str | None = None
    service_id: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        product_id = _optional_id(self.product_id)
        service_id = _optional_id(self.service_id)
        if not product_id and not service_id:
            raise DomainValidationError("Line item must have either productId or serviceId")
        if product_id and service_id:
            raise DomainValidationError("Line item cannot have both productId and serviceId")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise DomainValidationError("Line item quantity must be a positive integer")
        unit_price = to_decimal(self.unit_price, "Unit price")
        if unit_price < ZERO:
            raise DomainValidationError("Line item unit price cannot be negative")

        object.__setattr__(self, "product_id", product_id)
        object.__setattr__(self, "service_id", service_id)
        object.__setattr__(self, "unit_price", unit_price)
        if self.description is not None:
            object.__setattr__(self, "description", self.description.strip() or None)

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_price
