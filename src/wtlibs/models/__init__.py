"""
Models - ledger-backed entities built on datasets and storage pointers.
"""

from .airline import OnChainAirline, validate_airline_data
from .hotel import HOTEL_DATA_INDEX_SCHEMA, OnChainHotel, validate_hotel_data
from .json_index import IndexWriteResult, JsonHotel, JsonWTIndex
from .wt_index import WTIndex

__all__ = [
    "HOTEL_DATA_INDEX_SCHEMA",
    "IndexWriteResult",
    "JsonHotel",
    "JsonWTIndex",
    "OnChainAirline",
    "OnChainHotel",
    "WTIndex",
    "validate_airline_data",
    "validate_hotel_data",
]
