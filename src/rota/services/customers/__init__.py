"""Customer service helpers."""

from .book import (
    MergeResult,
    digits_only,
    merge_extracted_customers,
    search_customers,
)
from .spreadsheet import parse_customer_spreadsheet

__all__ = [
    "MergeResult",
    "digits_only",
    "merge_extracted_customers",
    "search_customers",
    "parse_customer_spreadsheet",
]
