"""
Response key casing: services and schemas speak snake_case, API bodies are camelCase.
"""
from typing import Any

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


def to_camel_key(key: str) -> str:
    """snake_case -> camelCase. Keys without underscores are already final and pass through."""
    if "_" not in key:
        return key
    return to_camel(key)


def dict_keys_to_camel(obj: Any) -> Any:
    """Recursively convert dict keys from snake_case to camelCase for API responses."""
    if isinstance(obj, dict):
        return {to_camel_key(k): dict_keys_to_camel(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [dict_keys_to_camel(x) for x in obj]
    return obj


def model_to_response(model: BaseModel) -> dict[str, Any]:
    """JSON-ready camelCase dict; Decimal money renders as a string such as "300.00"."""
    return dict_keys_to_camel(model.model_dump(mode="json"))
