# staylink

Building blocks for a hotel availability service. The package uses only the standard library.

- **`staylink.cache`** provides `TtlCache`, a thread-safe availability cache. Entries are keyed by hotel and stay dates, and each entry has its own time to live. The module also holds `CacheConfig`, `CacheStats`, `EvictionPolicy`, `create_cache_key` and `calculate_item_size`.
- **`staylink.hotel_search`** provides `HotelSearchProcessor`. It reads availability response XML into a `ProcessedResponse` and converts supplier JSON into that XML layout. It also filters hotel options and extracts search parameters from request XML.
- **`staylink.hotel_models`** holds the data records and the errors used by the processor. The records are `SupplierResponse`, `HotelOption`, `ProcessedResponse`, `FilterCriteria` and the others. The errors are `ProcessingError` and its subclasses.
- **`staylink.circuit_breaker`** provides `CircuitBreaker`, which has closed, open and half-open states.

## Installation

```
pip install staylink
```

## Caching availability

```python
from staylink.cache import CacheConfig, TtlCache

cache = TtlCache(CacheConfig(max_size_mb=5, default_ttl_seconds=300))
cache.store("hotel123", "2025-06-01", "2025-06-05", b"\x01\x02\x03", None)

hit = cache.get("hotel123", "2025-06-01", "2025-06-05")
if hit is not None:
    data, alive = hit

removed = cache.invalidate("hotel123", None, None)
print(cache.stats())
```

### `store`

- `store` returns `False` when the cache is too full to take the entry.
- `ttl` is given in seconds. `None` means the configured `default_ttl_seconds` is used.
- Storing under a key that already exists replaces the data. The entry keeps its original expiry.

### `get`

- `get` first drops entries whose expiry has passed.
- It returns `None` on a miss.
- On a hit it returns a `(data, alive)` tuple.

### `invalidate`

- `invalidate` removes the entries that match whichever of hotel id, check-in and check-out are given.
- It returns the number of entries removed.
- Called with no arguments, it removes nothing.

### `resize`

- `resize(new_max_size_mb)` drops the entries that expire earliest until the tracked size fits.

### `stats`

- `stats()` returns a copy of the counters.

### Clock

- `TtlCache` takes an optional `clock` callable that returns the time in seconds, for example for tests.
- `CircuitBreaker` takes one as well.

## Processing supplier responses

```python
from staylink.hotel_search import HotelSearchProcessor
from staylink.hotel_models import FilterCriteria

processor = HotelSearchProcessor()
response = processor.process(xml_text)

cheap = processor.filter_options(
    response,
    FilterCriteria(max_price=100.0, free_cancellation=True),
)

xml = processor.convert_json_to_xml(supplier_json)
currency, nationality, start, end = processor.extract_search_params(request_xml)
```

### `process`

- If the XML is malformed, `process` stops reading at that point and returns what it has read so far.
- It raises `ConversionError` for numbers it cannot parse.
- It raises `MissingRequiredFieldError` when a `Parameter` element has no `value` attribute.
- It raises the same error when a `MealPlan` element has no `code` attribute.

### `convert_json_to_xml`

- `convert_json_to_xml` raises `JsonParseError` when the input is not valid JSON.
- It raises the same error when the JSON does not have the shape of a supplier response.

### `extract_search_params`

- `extract_search_params` returns the `currency`, `nationality`, `start_date` and `end_date` values, in that order.
- It raises `XmlParseError` on malformed XML.
- It raises `MissingRequiredFieldError` when any of the four values is missing.

### `filter_options`

- `filter_options` returns copies of the options that meet every criterion that is set.
- A criterion set to `None` is not checked.

### Sample files

- `load_sample_json`, `load_sample_response` and `load_sample_request` read a file and return its text.
- Each takes a path. The defaults are paths under `samples/`.
- They raise `OSError` when the file cannot be read.

## Circuit breaker

```python
from staylink.circuit_breaker import CircuitBreaker

breaker = CircuitBreaker(failure_threshold=5, success_threshold=3, open_duration_ms=4000)
if breaker.should_allow_call():
    try:
        ...  # call the downstream service
        breaker.success()
    except Exception:
        breaker.fail()
```

- While the breaker is closed, calls pass. `failure_threshold` failures open it.
- While it is open, calls are refused until `open_duration_ms` has passed. After that, `should_allow_call` moves it to half-open.
- In half-open, `success_threshold` successes close it again. Any failure opens it.

## What the package does not do

- It has no API client and no rate limiter. It does not queue requests by priority and does not retry requests.
- It has no server. The circuit breaker is a standalone object for the caller to use.
- `EvictionPolicy` names LRU, LFU and TTL policies, but `TtlCache` has no way to choose among them. It always drops entries by expiry.
- The cache keeps everything in memory and has no persistent storage.
- There is no command-line tool.

## Running the tests

```
pip install staylink[test]
pytest
```