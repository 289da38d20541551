"""Reading, converting and filtering hotel availability search documents."""

from __future__ import annotations

import copy
import logging
import math
import re
from decimal import Decimal
from typing import Iterator, NamedTuple, Union
from xml.parsers import expat

from staylink.hotel_models import (
    CancellationPolicy,
    ConversionError,
    FilterCriteria,
    HotelOption,
    MissingRequiredFieldError,
    Price,
    ProcessedResponse,
    SupplierResponse,
    XmlParseError,
)

_log = logging.getLogger(__name__)

SAMPLE_XML_PATH = "samples/hotel_search_response.xml"
SAMPLE_REQUEST_PATH = "samples/hotel_search_request.xml"
SAMPLE_JSON_PATH = "samples/supplier_response.json"

SMALL_SAMPLE_XML = """
<AvailRS>
  <Hotels>
    <Hotel code="39776757" name="Days Inn By Wyndham Fargo">
      <MealPlans>
        <MealPlan code="RO">
          <Options>
            <Option type="Hotel" paymentType="MerchantPay" status="OK">
              <Price currency="GBP" amount="84.82" binding="false" commission="-1" minimumSellingPrice="-1"/>
              <Tabi currency="GBP" amount="84.82" binding="false" commission="-1" minimumSellingPrice="-1"></Tabi>

              <Rooms>
                <Room id="1#ND1" roomCandidateRefId="1" code="ND1" description="ROOM, QUEEN BED" numberOfUnits="1" nonRefundable="false">
                  <Price currency="GBP" amount="84.82" binding="false" commission="-1" minimumSellingPrice="-1"/>
                  <CancelPenalties nonRefundable="false">
                    <CancelPenalty>
                      <HoursBefore>26</HoursBefore>
                      <Penalty type="Importe" currency="GBP">84.82</Penalty>
                      <Deadline>2025-06-10T10:00:00Z</Deadline>
                    </CancelPenalty>
                  </CancelPenalties>
                </Room>
              </Rooms>
              <Parameters>
                <Parameter key="search_token" value="39776757|2025-06-11|2025-06-12|A|US|GBP"/>
              </Parameters>
            </Option>
          </Options>
        </MealPlan>
      </MealPlans>
    </Hotel>
  </Hotels>
</AvailRS>
"""

_WRAPPER = "staylink-document"
_DECLARATION = re.compile(r"\A\ufeff?\s*<\?xml[^>]*\?>")
_TAG = re.compile(rb"<[^>\"']*(?:(?:\"[^\"]*\"|'[^']*')[^>\"']*)*>")
_F64 = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)",
    re.IGNORECASE,
)
_I32 = re.compile(r"[+-]?[0-9]+")
_SEARCH_FIELDS = ("currency", "nationality", "start_date", "end_date")


class _Start(NamedTuple):
    name: str
    attrs: dict
    empty: bool


class _End(NamedTuple):
    name: str


class _Text(NamedTuple):
    data: str


_Event = Union[_Start, _End, _Text]


def _scan(document: str) -> tuple[list[_Event], str | None]:
    """Tokenise a document into events; also return the parse error, if any.

    The document may be a fragment with several top-level elements. Events
    before the point of a parse error are kept.
    """
    body = _DECLARATION.sub("", document, count=1)
    data = f"<{_WRAPPER}>{body}</{_WRAPPER}>".encode("utf-8")
    parser = expat.ParserCreate("UTF-8")
    parser.buffer_text = True
    events: list[_Event] = []
    empties: list[bool] = []

    def on_start(name: str, attrs: dict) -> None:
        if not empties:
            empties.append(False)
            return
        match = _TAG.match(data, parser.CurrentByteIndex)
        empty = match is not None and match.group().endswith(b"/>")
        empties.append(empty)
        events.append(_Start(name, attrs, empty))

    def on_end(name: str) -> None:
        empty = empties.pop()
        if empties and not empty:
            events.append(_End(name))

    def on_text(text: str) -> None:
        events.append(_Text(text))

    parser.StartElementHandler = on_start
    parser.EndElementHandler = on_end
    parser.CharacterDataHandler = on_text
    try:
        parser.Parse(data, True)
    except expat.ExpatError as exc:
        return events, str(exc)
    return events, None


def _read_text(stream: Iterator[_Event], name: str) -> str | None:
    """Consume events up to the end of element ``name``; None if it never ends."""
    depth = 1
    parts: list[str] = []
    for event in stream:
        if isinstance(event, _Text):
            parts.append(event.data)
        elif isinstance(event, _Start):
            if event.name == name and not event.empty:
                depth += 1
        elif event.name == name:
            depth -= 1
            if depth == 0:
                return "".join(parts)
    return None


def _parse_f64(text: str) -> float:
    if not _F64.fullmatch(text):
        raise ConversionError(f"Unable to convert in f64: {text!r}")
    return float(text)


def _parse_i32(text: str) -> int:
    if not _I32.fullmatch(text):
        raise ConversionError(f"Unable to convert in i32: {text!r}")
    value = int(text)
    if not -(2**31) <= value <= 2**31 - 1:
        raise ConversionError(f"Unable to convert in i32: {text!r}")
    return value


def _format_f64(value: float) -> str:
    """Shortest round-tripping decimal form, never in exponent notation."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class HotelSearchProcessor:
    """Processes hotel search documents."""

    def process(self, xml: str) -> ProcessedResponse:
        """Extract hotel options from an availability response.

        Reading stops quietly at the first point where the XML is malformed,
        keeping what was read so far. Malformed numbers raise ConversionError.
        """
        events, error = _scan(xml)
        result = ProcessedResponse()
        hotels: list[HotelOption] = []
        hotel = HotelOption()
        policies: list[CancellationPolicy] = []
        policy = CancellationPolicy()

        stream = iter(events)
        for event in stream:
            if isinstance(event, _Start):
                name, attrs, empty = event
                if not empty and name == "Hotel":
                    hotel.hotel_id = attrs.get("code", "")
                    hotel.hotel_name = attrs.get("name", "")
                elif not empty and name == "Room":
                    hotel.room_description = attrs.get("description", "")
                    hotel.is_refundable = attrs.get("nonRefundable", "") == "false"
                elif not empty and name == "Parameter":
                    if "value" not in attrs:
                        raise MissingRequiredFieldError("Parameter value")
                    hotel.search_token = attrs["value"]
                elif not empty and name == "MealPlan":
                    if "code" not in attrs:
                        raise MissingRequiredFieldError("MealPlan code")
                    hotel.board_type = attrs["code"]
                elif name == "Price" and not result.currency:
                    result.currency = attrs.get("currency", "")
                elif name == "Price" and not hotel.price.currency:
                    hotel.price = Price(
                        amount=_parse_f64(attrs.get("amount", "")),
                        currency=attrs.get("currency", ""),
                    )
                elif not empty and name == "Option":
                    hotel.payment_type = attrs.get("paymentType", "")
                elif not empty and name == "HoursBefore":
                    text = _read_text(stream, name)
                    policy.hours_before = _parse_i32(text or "")
                elif not empty and name == "Penalty":
                    policy.penalty_type = attrs.get("type", "")
                    policy.currency = attrs.get("currency", "")
                    text = _read_text(stream, name)
                    policy.penalty_amount = _parse_f64(text or "")
                elif not empty and name == "Deadline":
                    text = _read_text(stream, name)
                    if text is None:
                        raise XmlParseError("Unable to read text of Deadline")
                    policy.deadline = text
            elif isinstance(event, _End):
                if event.name == "Hotel":
                    hotels.append(hotel)
                    hotel = HotelOption()
                elif event.name == "Hotels":
                    result.hotels = hotels
                    result.total_options = len(hotels)
                    hotels = []
                elif event.name == "CancelPenalty":
                    policies.append(policy)
                    policy = CancellationPolicy()
                elif event.name == "CancelPenalties":
                    hotel.cancellation_policies = policies
                    policies = []

        if error is not None:
            _log.warning("stopped reading hotel search response: %s", error)
        return result

    def convert_json_to_xml(self, json_str: str) -> str:
        """Convert a supplier JSON response into the availability XML layout."""
        supplier = SupplierResponse.from_json(json_str)
        currency = supplier.currency
        lines = ['<?xml version="1.0" encoding="UTF-8"?>', "<AvailRS>", "  <Hotels>"]

        for hotel in supplier.hotels:
            lines.append(f'    <Hotel code="{hotel.hotel_id}", name="{hotel.name}">')
            lines.append("      <MealPlans>")

            by_board: dict[str, list] = {}
            for room in hotel.rooms:
                for rate in room.rates:
                    by_board.setdefault(rate.board_type, []).append((room, rate))

            for board_type, room_rates in by_board.items():
                first_price = _format_f64(room_rates[0][1].price)
                lines += [
                    f'        <MealPlan code="{board_type}">',
                    "          <Options>",
                    '            <Option type="Hotel" paymentType="MerchantPay" status="OK">',
                    f'              <Price currency="{currency}" amount="{first_price}"'
                    ' binding="false" commission="-1" minimumSellingPrice="-1"/>',
                    "              <Rooms>",
                ]
                for room, rate in room_rates:
                    lines.append(
                        f'                <Room id="1#{room.room_id}" roomCandidateRefId="1"'
                        f' code="{room.room_id}" description="{room.name}"'
                        ' numberOfUnits="1" nonRefundable="false">'
                    )
                    lines.append(
                        f'                  <Price currency="{currency}"'
                        f' amount="{_format_f64(rate.price)}" binding="false"'
                        ' commission="-1" minimumSellingPrice="-1"/>'
                    )
                    if rate.cancellation_policies:
                        lines.append('                  <CancelPenalties nonRefundable="false">')
                        for cancellation in rate.cancellation_policies:
                            lines += [
                                "                    <CancelPenalty>",
                                "                      <HoursBefore>24</HoursBefore>",
                                f'                      <Penalty type="Importe" currency="{currency}">'
                                f"{_format_f64(cancellation.amount)}</Penalty>",
                                f"                      <Deadline>{cancellation.from_date}</Deadline>",
                                "                    </CancelPenalty>",
                            ]
                        lines.append("                  </CancelPenalties>")
                    lines.append("                </Room>")
                lines += [
                    "              </Rooms>",
                    "              <Parameters>",
                    '                <Parameter key="search_token"'
                    f' value="{hotel.hotel_id}|||||{supplier.search_id}"/>',
                    "              </Parameters>",
                    "            </Option>",
                    "          </Options>",
                    "        </MealPlan>",
                ]

            lines.append("      </MealPlans>")
            lines.append("    </Hotel>")

        lines.append("  </Hotels>")
        lines.append("</AvailRS>")
        return "\n".join(lines) + "\n"

    def filter_options(
        self, response: ProcessedResponse, criteria: FilterCriteria
    ) -> list[HotelOption]:
        """Return copies of the hotel options that meet every given criterion."""

        def accepted(hotel: HotelOption) -> bool:
            if criteria.max_price is not None and not hotel.price.amount <= criteria.max_price:
                return False
            if criteria.board_types is not None and hotel.board_type not in criteria.board_types:
                return False
            if criteria.free_cancellation and not hotel.is_refundable:
                return False
            if criteria.hotel_ids is not None and hotel.hotel_id not in criteria.hotel_ids:
                return False
            if (
                criteria.room_type_contains is not None
                and criteria.room_type_contains not in hotel.room_type
            ):
                return False
            return True

        return [copy.deepcopy(hotel) for hotel in response.hotels if accepted(hotel)]

    def load_sample_json(self, path: str = SAMPLE_JSON_PATH) -> str:
        """Read the sample supplier JSON; raises OSError if it cannot be read."""
        with open(path, encoding="utf-8") as handle:
            return handle.read()

    def load_sample_response(self, path: str = SAMPLE_XML_PATH) -> str:
        """Read the sample response XML; raises OSError if it cannot be read."""
        with open(path, encoding="utf-8") as handle:
            return handle.read()

    def load_sample_request(self, path: str = SAMPLE_REQUEST_PATH) -> str:
        """Read the sample request XML; raises OSError if it cannot be read."""
        with open(path, encoding="utf-8") as handle:
            return handle.read()

    def extract_search_params(self, request_xml: str) -> tuple[str, str, str, str]:
        """Return (currency, nationality, start_date, end_date) from a request.

        Raises XmlParseError on malformed XML met before all four are found and
        MissingRequiredFieldError if the document ends without them.
        """
        events, error = _scan(request_xml)
        values = dict.fromkeys(_SEARCH_FIELDS, "")

        def found() -> tuple[str, str, str, str] | None:
            if all(values.values()):
                return tuple(values[name] for name in _SEARCH_FIELDS)  # type: ignore[return-value]
            return None

        stream = iter(events)
        for event in stream:
            if isinstance(event, _Start) and not event.empty and event.name in values:
                text = _read_text(stream, event.name)
                if text is None:
                    raise XmlParseError(f"Unable to read text of {event.name}")
                values[event.name] = text
            else:
                complete = found()
                if complete is not None:
                    return complete

        if error is not None:
            raise XmlParseError(error)
        complete = found()
        if complete is not None:
            return complete
        missing = tuple(values[name] for name in _SEARCH_FIELDS)
        raise MissingRequiredFieldError(f"Fields missing {missing!r}")