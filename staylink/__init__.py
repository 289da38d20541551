"""Hotel availability caching, supplier search response processing and a circuit breaker."""

__version__ = "0.1.0"

__all__ = [
    "cache",
    "circuit_breaker",
    "hotel_models",
    "hotel_search",
]