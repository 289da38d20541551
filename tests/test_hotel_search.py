import json

import pytest

from staylink.hotel_models import (
    CancellationPolicy,
    ConversionError,
    FilterCriteria,
    HotelOption,
    JsonParseError,
    MissingRequiredFieldError,
    Price,
    ProcessedResponse,
    SupplierResponse,
    XmlParseError,
)
from staylink.hotel_search import SMALL_SAMPLE_XML, HotelSearchProcessor

SAMPLE_JSON = """{
    "hotels": [
        {
            "hotel_id": "12345",
            "name": "Test Hotel",
            "category": 4,
            "destination_code": "NYC",
            "rooms": [
                {
                    "room_id": "DBL",
                    "name": "Double Room",
                    "capacity": {"adults": 2, "children": 0},
                    "rates": [
                        {
                            "rate_id": "R1",
                            "board_type": "BB",
                            "price": 120.50,
                            "booking_code": "TESTCODE",
                            "cancellation_policies": [
                                {"from_date": "2023-12-01T00:00:00Z", "amount": 50.25}
                            ]
                        }
                    ]
                }
            ]
        }
    ],
    "search_id": "SEARCH123",
    "currency": "USD",
    "timestamp": "2023-11-15T10:30:00Z"
}"""


@pytest.fixture
def processor():
    return HotelSearchProcessor()


def _options_response():
    return ProcessedResponse(
        search_id="test_search",
        total_options=3,
        currency="GBP",
        nationality="GB",
        check_in="2025-06-01",
        check_out="2025-06-05",
        hotels=[
            HotelOption(
                hotel_id="hotel1",
                hotel_name="Luxury Hotel",
                room_type="Deluxe King",
                room_description="Spacious room with king bed",
                board_type="BB",
                price=Price(150.0, "GBP"),
                cancellation_policies=[
                    CancellationPolicy("2025-05-30T00:00:00Z", 75.0, "GBP", 48, "Importe")
                ],
                payment_type="MerchantPay",
                is_refundable=True,
                search_token="token1",
            ),
            HotelOption(
                hotel_id="hotel2",
                hotel_name="Budget Inn",
                room_type="Standard Twin",
                room_description="Basic room with twin beds",
                board_type="RO",
                price=Price(80.0, "GBP"),
                cancellation_policies=[],
                payment_type="MerchantPay",
                is_refundable=False,
                search_token="token2",
            ),
            HotelOption(
                hotel_id="hotel3",
                hotel_name="Resort Spa",
                room_type="Premium Suite",
                room_description="Luxury suite with ocean view",
                board_type="HB",
                price=Price(250.0, "GBP"),
                cancellation_policies=[
                    CancellationPolicy("2025-05-25T00:00:00Z", 100.0, "GBP", 168, "Importe")
                ],
                payment_type="MerchantPay",
                is_refundable=True,
                search_token="token3",
            ),
        ],
    )


def test_version(processor):
    xml = processor.convert_json_to_xml(SAMPLE_JSON)
    assert "<AvailRS>" in xml
    assert '<Hotel code="12345"' in xml
    assert '<MealPlan code="BB">' in xml
    assert '<Room id="1#DBL"' in xml
    assert '<Price currency="USD" amount="120.5"' in xml
    assert "<Deadline>2023-12-01T00:00:00Z</Deadline>" in xml
    assert '<Parameter key="search_token" value="12345|||||SEARCH123"/>' in xml


def test_convert_json_to_xml_structure(processor):
    xml = processor.convert_json_to_xml(SAMPLE_JSON)
    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<AvailRS>\n  <Hotels>\n')
    assert xml.endswith("  </Hotels>\n</AvailRS>\n")
    assert '<Penalty type="Importe" currency="USD">50.25</Penalty>' in xml
    assert "<HoursBefore>24</HoursBefore>" in xml


def test_convert_json_to_xml_groups_by_board_type(processor):
    data = json.loads(SAMPLE_JSON)
    room = data["hotels"][0]["rooms"][0]
    room["rates"].append(
        {
            "rate_id": "R2",
            "board_type": "HB",
            "price": 140.0,
            "booking_code": "CODE2",
            "cancellation_policies": [],
        }
    )
    xml = processor.convert_json_to_xml(json.dumps(data))
    assert xml.count("<MealPlan code=") == 2
    assert '<MealPlan code="HB">' in xml
    assert '<Price currency="USD" amount="140"' in xml
    assert xml.count("<CancelPenalties") == 1


def test_convert_json_to_xml_without_hotels(processor):
    doc = json.dumps({"hotels": [], "search_id": "S", "currency": "EUR", "timestamp": "t"})
    xml = processor.convert_json_to_xml(doc)
    assert "<Hotel " not in xml
    assert "<Hotels>" in xml


def test_convert_json_to_xml_rejects_bad_json(processor):
    with pytest.raises(JsonParseError):
        processor.convert_json_to_xml("{not json")
    with pytest.raises(JsonParseError):
        processor.convert_json_to_xml('{"hotels": []}')


def test_process_xml(processor):
    response = processor.process(SMALL_SAMPLE_XML)
    assert len(response.hotels) == 1
    hotel = response.hotels[0]
    assert hotel.hotel_id == "39776757"
    assert hotel.hotel_name == "Days Inn By Wyndham Fargo"
    assert hotel.board_type == "RO"
    assert hotel.price.amount == 84.82
    assert hotel.price.currency == "GBP"
    assert hotel.is_refundable is True
    assert len(hotel.cancellation_policies) == 1
    policy = hotel.cancellation_policies[0]
    assert policy.hours_before == 26
    assert policy.penalty_amount == 84.82
    assert policy.currency == "GBP"


def test_process_xml_other_fields(processor):
    response = processor.process(SMALL_SAMPLE_XML)
    assert response.currency == "GBP"
    assert response.total_options == 1
    hotel = response.hotels[0]
    assert hotel.room_description == "ROOM, QUEEN BED"
    assert hotel.payment_type == "MerchantPay"
    # A self-closing Parameter element is not read.
    assert hotel.search_token == ""
    policy = hotel.cancellation_policies[0]
    assert policy.deadline == "2025-06-10T10:00:00Z"
    assert policy.penalty_type == "Importe"


def test_process_reads_open_parameter_element(processor):
    xml = (
        '<AvailRS><Hotels><Hotel code="1" name="A">'
        '<Parameter key="search_token" value="tok"></Parameter>'
        "</Hotel></Hotels></AvailRS>"
    )
    response = processor.process(xml)
    assert response.hotels[0].search_token == "tok"


def test_process_second_hotel_takes_first_price(processor):
    xml = (
        "<AvailRS><Hotels>"
        '<Hotel code="1" name="A"><Price currency="EUR" amount="1.0"/>'
        '<Price currency="EUR" amount="10.5"/></Hotel>'
        '<Hotel code="2" name="B"><Price currency="USD" amount="20"/>'
        '<Price currency="USD" amount="30"/></Hotel>'
        "</Hotels></AvailRS>"
    )
    response = processor.process(xml)
    assert response.currency == "EUR"
    assert [h.price.amount for h in response.hotels] == [10.5, 20.0]
    assert response.hotels[1].price.currency == "USD"
    assert response.total_options == 2


def test_process_non_refundable_room(processor):
    xml = (
        '<AvailRS><Hotels><Hotel code="1" name="A">'
        '<Room description="d" nonRefundable="true"></Room>'
        "</Hotel></Hotels></AvailRS>"
    )
    assert processor.process(xml).hotels[0].is_refundable is False


def test_process_bad_hours_before(processor):
    xml = (
        "<AvailRS><CancelPenalties><CancelPenalty>"
        "<HoursBefore>soon</HoursBefore>"
        "</CancelPenalty></CancelPenalties></AvailRS>"
    )
    with pytest.raises(ConversionError):
        processor.process(xml)


def test_process_bad_price_amount(processor):
    xml = '<AvailRS><Price currency="EUR"/><Price currency="EUR" amount="cheap"/></AvailRS>'
    with pytest.raises(ConversionError):
        processor.process(xml)


def test_process_missing_meal_plan_code(processor):
    with pytest.raises(MissingRequiredFieldError):
        processor.process("<AvailRS><MealPlan></MealPlan></AvailRS>")


def test_process_stops_at_malformed_xml(processor):
    xml = (
        '<AvailRS><Hotels><Hotel code="1" name="A"></Hotel></Hotels>'
        "<Broken></Wrong></AvailRS>"
    )
    response = processor.process(xml)
    assert [h.hotel_id for h in response.hotels] == ["1"]


def test_process_empty_document(processor):
    response = processor.process("")
    assert response.hotels == []
    assert response.total_options == 0


def test_filter_options(processor):
    response = _options_response()

    results = processor.filter_options(response, FilterCriteria(max_price=100.0))
    assert [h.hotel_id for h in results] == ["hotel2"]

    results = processor.filter_options(response, FilterCriteria(board_types=["BB", "HB"]))
    assert len(results) == 2
    assert {h.hotel_id for h in results} == {"hotel1", "hotel3"}

    results = processor.filter_options(response, FilterCriteria(free_cancellation=True))
    assert len(results) == 2
    assert all(h.is_refundable for h in results)

    results = processor.filter_options(response, FilterCriteria(room_type_contains="Suite"))
    assert [h.hotel_id for h in results] == ["hotel3"]

    results = processor.filter_options(
        response,
        FilterCriteria(
            max_price=300.0,
            board_types=["HB"],
            free_cancellation=True,
            room_type_contains="Suite",
        ),
    )
    assert [h.hotel_id for h in results] == ["hotel3"]


def test_filter_options_by_hotel_ids(processor):
    response = _options_response()
    results = processor.filter_options(response, FilterCriteria(hotel_ids=["hotel1", "hotel2"]))
    assert [h.hotel_id for h in results] == ["hotel1", "hotel2"]


def test_filter_options_returns_copies(processor):
    response = _options_response()
    results = processor.filter_options(response, FilterCriteria())
    assert results == response.hotels
    results[0].hotel_name = "Changed"
    assert response.hotels[0].hotel_name == "Luxury Hotel"


def test_load_sample_json(processor, tmp_path):
    path = tmp_path / "supplier_response.json"
    path.write_text(SAMPLE_JSON, encoding="utf-8")
    content = processor.load_sample_json(str(path))
    assert content == SAMPLE_JSON
    assert SupplierResponse.from_json(content).search_id == "SEARCH123"


def test_sample_json_to_xml_workflow(processor, tmp_path):
    path = tmp_path / "supplier_response.json"
    path.write_text(SAMPLE_JSON, encoding="utf-8")
    xml = processor.convert_json_to_xml(processor.load_sample_json(str(path)))
    assert "<AvailRS>" in xml
    assert "<Hotels>" in xml


def test_load_sample_response(processor, tmp_path):
    path = tmp_path / "response.xml"
    path.write_text(SMALL_SAMPLE_XML, encoding="utf-8")
    assert processor.load_sample_response(str(path)) == SMALL_SAMPLE_XML


def test_load_sample_request(processor, tmp_path):
    path = tmp_path / "request.xml"
    path.write_text("<request/>", encoding="utf-8")
    assert processor.load_sample_request(str(path)) == "<request/>"


def test_load_missing_file(processor, tmp_path):
    with pytest.raises(FileNotFoundError):
        processor.load_sample_json(str(tmp_path / "absent.json"))


REQUEST_XML = """<?xml version="1.0" encoding="UTF-8"?>
<request>
  <currency>GBP</currency>
  <nationality>US</nationality>
  <start_date>2025-06-11</start_date>
  <end_date>2025-06-12</end_date>
</request>
"""


def test_extract_search_params(processor):
    assert processor.extract_search_params(REQUEST_XML) == (
        "GBP",
        "US",
        "2025-06-11",
        "2025-06-12",
    )


def test_extract_search_params_compact(processor):
    xml = (
        "<r><end_date>2025-01-02</end_date><start_date>2025-01-01</start_date>"
        "<nationality>ES</nationality><currency>EUR</currency></r>"
    )
    assert processor.extract_search_params(xml) == ("EUR", "ES", "2025-01-01", "2025-01-02")


def test_extract_search_params_missing_field(processor):
    xml = "<r><currency>GBP</currency><nationality>US</nationality></r>"
    with pytest.raises(MissingRequiredFieldError):
        processor.extract_search_params(xml)


def test_extract_search_params_empty_document(processor):
    with pytest.raises(MissingRequiredFieldError):
        processor.extract_search_params("")


def test_extract_search_params_malformed(processor):
    with pytest.raises(XmlParseError):
        processor.extract_search_params("<r><currency>GBP</currency><oops></r>")