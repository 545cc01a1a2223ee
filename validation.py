"""
Generic validation over the schema models.

``check_required`` reports every absent required field at once and
``validate`` reports every constraint violation at once, so a client can fix
a form in one round trip.
"""

from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from errors import MissingFields, ValidationError

M = TypeVar("M", bound=BaseModel)


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def required_fields(model: Type[BaseModel]) -> List[str]:
    return [field.alias or name for name, field in model.model_fields.items() if field.is_required()]


def format_error(error: dict) -> str:
    loc = ".".join(str(part) for part in error.get("loc", ()))
    return f"{loc}: {error['msg']}" if loc else error["msg"]


def ensure_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationError(["Request body must be a JSON object"])
    return payload


def present_fields(model: Type[BaseModel], payload: Dict[str, Any]) -> List[str]:
    """Aliases of the model fields the payload sends under either name."""
    return [
        field.alias or name
        for name, field in model.model_fields.items()
        if (field.alias or name) in payload or name in payload
    ]


def to_aliases(model: Type[BaseModel], payload: Dict[str, Any]) -> Dict[str, Any]:
    """Rename python field names in ``payload`` to their wire aliases."""
    aliases = {name: field.alias for name, field in model.model_fields.items() if field.alias}
    renamed = {}
    for key, value in payload.items():
        alias = aliases.get(key, key)
        if alias != key and alias in payload:
            # the alias wins when both are sent, as in model_validate
            continue
        renamed[alias] = value
    return renamed


def check_required(model: Type[BaseModel], payload: Any) -> None:
    payload = to_aliases(model, ensure_object(payload))
    missing = [name for name in required_fields(model) if is_blank(payload.get(name))]
    if missing:
        raise MissingFields(missing)


def validate(model: Type[M], payload: Any) -> M:
    payload = ensure_object(payload)
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError([format_error(e) for e in exc.errors()]) from None


def validate_new(model: Type[M], payload: Any) -> M:
    check_required(model, payload)
    return validate(model, payload)


def dump(record: BaseModel, **kwargs) -> Dict[str, Any]:
    return record.model_dump(by_alias=True, **kwargs)
