"""Utility modules for the Complaint Tracker backend."""

from .dynamodb_utils import (
    combine_conditions,
    decimal_to_python,
    parse_from_dynamodb,
    parse_items_from_dynamodb,
    prepare_for_dynamodb,
    python_to_decimal,
    query_all,
    scan_all,
)
from .tags import InvalidTagFormatError, parse_tag_filter, validate_tags

__all__ = [
    "combine_conditions",
    "decimal_to_python",
    "python_to_decimal",
    "prepare_for_dynamodb",
    "parse_from_dynamodb",
    "parse_items_from_dynamodb",
    "query_all",
    "scan_all",
    "InvalidTagFormatError",
    "parse_tag_filter",
    "validate_tags",
]
