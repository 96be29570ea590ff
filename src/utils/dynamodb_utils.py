"""DynamoDB helpers.

DynamoDB hands numbers back as Decimal; the pydantic models want int/float.
Scans and queries are paginated, so the collection helpers follow
LastEvaluatedKey until the result set is exhausted.
"""

from decimal import Decimal
from functools import reduce
from typing import Any


def decimal_to_python(obj: Any) -> Any:
    """Recursively convert Decimal values to int (whole numbers) or float."""
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    elif isinstance(obj, dict):
        return {key: decimal_to_python(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [decimal_to_python(item) for item in obj]
    elif isinstance(obj, set):
        return {decimal_to_python(item) for item in obj}
    return obj


def python_to_decimal(obj: Any) -> Any:
    """Recursively convert int/float values to Decimal for storage.

    Booleans are left alone even though bool subclasses int.
    """
    if isinstance(obj, float):
        # Go through str to avoid binary float artefacts
        return Decimal(str(round(obj, 6)))
    elif isinstance(obj, int) and not isinstance(obj, bool):
        return Decimal(obj)
    elif isinstance(obj, dict):
        return {key: python_to_decimal(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [python_to_decimal(item) for item in obj]
    return obj


def prepare_for_dynamodb(item: dict[str, Any]) -> dict[str, Any]:
    """Prepare an item for put_item, dropping None values."""
    return python_to_decimal({k: v for k, v in item.items() if v is not None})


def parse_from_dynamodb(item: dict[str, Any]) -> dict[str, Any]:
    """Parse a DynamoDB item to Python-native types."""
    return decimal_to_python(item)


def parse_items_from_dynamodb(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Parse a list of DynamoDB items to Python-native types."""
    return [parse_from_dynamodb(item) for item in items]


def combine_conditions(conditions: list) -> Any | None:
    """AND together boto3 condition objects; None when the list is empty."""
    if not conditions:
        return None
    return reduce(lambda left, right: left & right, conditions)


def query_all(table, **kwargs) -> list[dict[str, Any]]:
    """Run a query and follow pagination, returning every item."""
    items: list[dict[str, Any]] = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def scan_all(table, **kwargs) -> list[dict[str, Any]]:
    """Run a scan and follow pagination, returning every item."""
    items: list[dict[str, Any]] = []
    while True:
        response = table.scan(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key
