"""Errors and data records for supplier hotel search responses."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


class ProcessingError(Exception):
    """Raised when a hotel search document cannot be processed."""

    prefix = "Other error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.prefix}: {self.detail}"


class XmlParseError(ProcessingError):
    """The XML could not be parsed."""

    prefix = "XML parse error"


class JsonParseError(ProcessingError):
    """The JSON could not be parsed or did not have the expected shape."""

    prefix = "JSON parse error"


class MissingRequiredFieldError(ProcessingError):
    """A field that must be present was absent."""

    prefix = "Missing required field"


class InvalidFormatError(ProcessingError):
    """A value was present but malformed."""

    prefix = "Invalid format"


class ConversionError(ProcessingError):
    """A text value could not be converted to a number."""

    prefix = "Conversion error"


def _obj(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise JsonParseError(f"expected an object for {what}")
    return data


def _get(data: dict, key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise JsonParseError(f"missing field `{key}`") from None


def _str(data: dict, key: str) -> str:
    value = _get(data, key)
    if not isinstance(value, str):
        raise JsonParseError(f"field `{key}` must be a string")
    return value


def _int(data: dict, key: str) -> int:
    value = _get(data, key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise JsonParseError(f"field `{key}` must be an integer")
    if not _I32_MIN <= value <= _I32_MAX:
        raise JsonParseError(f"field `{key}` is out of range")
    return value


def _float(data: dict, key: str) -> float:
    value = _get(data, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise JsonParseError(f"field `{key}` must be a number")
    return float(value)


def _list(data: dict, key: str) -> list:
    value = _get(data, key)
    if not isinstance(value, list):
        raise JsonParseError(f"field `{key}` must be an array")
    return value


@dataclass
class RoomCapacity:
    adults: int
    children: int

    @classmethod
    def from_dict(cls, data: Any) -> RoomCapacity:
        data = _obj(data, "capacity")
        return cls(adults=_int(data, "adults"), children=_int(data, "children"))


@dataclass
class JsonCancellationPolicy:
    from_date: str
    amount: float

    @classmethod
    def from_dict(cls, data: Any) -> JsonCancellationPolicy:
        data = _obj(data, "cancellation policy")
        return cls(from_date=_str(data, "from_date"), amount=_float(data, "amount"))


@dataclass
class SupplierRate:
    rate_id: str
    board_type: str
    price: float
    cancellation_policies: list[JsonCancellationPolicy]
    booking_code: str

    @classmethod
    def from_dict(cls, data: Any) -> SupplierRate:
        data = _obj(data, "rate")
        return cls(
            rate_id=_str(data, "rate_id"),
            board_type=_str(data, "board_type"),
            price=_float(data, "price"),
            cancellation_policies=[
                JsonCancellationPolicy.from_dict(item)
                for item in _list(data, "cancellation_policies")
            ],
            booking_code=_str(data, "booking_code"),
        )


@dataclass
class SupplierRoom:
    room_id: str
    name: str
    rates: list[SupplierRate]
    capacity: RoomCapacity

    @classmethod
    def from_dict(cls, data: Any) -> SupplierRoom:
        data = _obj(data, "room")
        return cls(
            room_id=_str(data, "room_id"),
            name=_str(data, "name"),
            rates=[SupplierRate.from_dict(item) for item in _list(data, "rates")],
            capacity=RoomCapacity.from_dict(_get(data, "capacity")),
        )


@dataclass
class SupplierHotel:
    hotel_id: str
    name: str
    category: int
    rooms: list[SupplierRoom]
    destination_code: str

    @classmethod
    def from_dict(cls, data: Any) -> SupplierHotel:
        data = _obj(data, "hotel")
        return cls(
            hotel_id=_str(data, "hotel_id"),
            name=_str(data, "name"),
            category=_int(data, "category"),
            rooms=[SupplierRoom.from_dict(item) for item in _list(data, "rooms")],
            destination_code=_str(data, "destination_code"),
        )


@dataclass
class SupplierResponse:
    """A supplier's JSON availability response."""

    hotels: list[SupplierHotel]
    search_id: str
    currency: str
    timestamp: str

    @classmethod
    def from_dict(cls, data: Any) -> SupplierResponse:
        """Build from decoded JSON, raising JsonParseError on a bad shape."""
        data = _obj(data, "response")
        return cls(
            hotels=[SupplierHotel.from_dict(item) for item in _list(data, "hotels")],
            search_id=_str(data, "search_id"),
            currency=_str(data, "currency"),
            timestamp=_str(data, "timestamp"),
        )

    @classmethod
    def from_json(cls, json_str: str) -> SupplierResponse:
        """Parse JSON text, raising JsonParseError on any problem."""
        try:
            data = json.loads(json_str)
        except (json.JSONDecodeError, TypeError) as exc:
            raise JsonParseError(str(exc)) from exc
        return cls.from_dict(data)


@dataclass
class Price:
    amount: float = 0.0
    currency: str = ""


@dataclass
class CancellationPolicy:
    deadline: str = ""
    penalty_amount: float = 0.0
    currency: str = ""
    hours_before: int = 0
    penalty_type: str = ""


@dataclass
class HotelOption:
    hotel_id: str = ""
    hotel_name: str = ""
    room_type: str = ""
    room_description: str = ""
    board_type: str = ""
    price: Price = field(default_factory=Price)
    cancellation_policies: list[CancellationPolicy] = field(default_factory=list)
    payment_type: str = ""
    is_refundable: bool = False
    search_token: str = ""


@dataclass
class ProcessedResponse:
    search_id: str = ""
    total_options: int = 0
    hotels: list[HotelOption] = field(default_factory=list)
    currency: str = ""
    nationality: str = ""
    check_in: str = ""
    check_out: str = ""


@dataclass
class FilterCriteria:
    """Conditions a hotel option must meet; None means no condition."""

    max_price: float | None = None
    board_types: list[str] | None = None
    free_cancellation: bool = False
    hotel_ids: list[str] | None = None
    room_type_contains: str | None = None