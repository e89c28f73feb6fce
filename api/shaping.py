"""
Data shaping: returning only the fields a client asked for.
"""

from typing import Any, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel


def _split_fields(fields: Optional[str]) -> List[str]:
    if not fields or not fields.strip():
        return []
    return [name.strip() for name in fields.split(",") if name.strip()]


def _resolve_field(model: Type[BaseModel], name: str) -> Optional[str]:
    """Find the model attribute matching name or its alias, ignoring case."""
    wanted = name.lower()
    for attribute, info in model.model_fields.items():
        if attribute.lower() == wanted or (info.alias and info.alias.lower() == wanted):
            return attribute
    return None


def type_has_properties(model: Type[BaseModel], fields: Optional[str]) -> bool:
    """Check that every comma-separated name in fields exists on model."""
    return all(_resolve_field(model, name) is not None for name in _split_fields(fields))


def shape_data(instance: BaseModel, fields: Optional[str] = None) -> Dict[str, Any]:
    """
    Serialize instance, keeping only the requested fields in request order.

    Raises:
        ValueError: If a requested field does not exist on the model
    """
    data = instance.model_dump(mode="json", by_alias=True)
    requested = _split_fields(fields)
    if not requested:
        return data

    model = type(instance)
    shaped: Dict[str, Any] = {}
    for name in requested:
        attribute = _resolve_field(model, name)
        if attribute is None:
            raise ValueError(f"Property {name} wasn't found on {model.__name__}")
        key = model.model_fields[attribute].alias or attribute
        shaped[key] = data[key]
    return shaped


def shape_collection(instances: Iterable[BaseModel], fields: Optional[str] = None) -> List[Dict[str, Any]]:
    return [shape_data(instance, fields) for instance in instances]
