"""
Field-name driven reshaping between entities and DTOs.

Two strategies:

- ``project``: serialize round trip. Only values the JSON serializer can
  represent survive; anything else is dropped silently.
- ``merge_onto``: structural decode. Copies the fields a source actually set
  onto an existing target, or builds a zero-valued target from a class.

Both accept mappings, pydantic models, dataclasses and SQLAlchemy mapped
instances as sources.
"""
import types
from dataclasses import MISSING, fields, is_dataclass
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import InstanceState, Mapper

from crudcore.core.errors import ConversionError
from crudcore.core.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_CONTAINERS = (list, set, frozenset, tuple, dict)


# --------------------------------------------------------------------------
# reading sources
# --------------------------------------------------------------------------
def _instance_state(obj: Any) -> InstanceState | None:
    if isinstance(obj, type):
        return None
    state = sa_inspect(obj, raiseerr=False)
    return state if isinstance(state, InstanceState) else None


def _entity_mapping(state: InstanceState, path: frozenset[int]) -> Dict[str, Any]:
    """Loaded attributes of a mapped instance; relationships become nested mappings."""
    path = path | {id(state.obj())}
    unloaded = state.unloaded
    relationships = state.mapper.relationships
    out: Dict[str, Any] = {}
    for attr in state.mapper.attrs:
        key = attr.key
        if key in unloaded:
            continue
        value = state.dict.get(key)
        if key not in relationships:
            out[key] = value
            continue
        if value is None:
            out[key] = None
        elif isinstance(value, Iterable):
            out[key] = [
                _entity_mapping(sa_inspect(v), path)
                for v in value
                if id(v) not in path
            ]
        elif id(value) not in path:
            out[key] = _entity_mapping(sa_inspect(value), path)
    return out


def as_mapping(source: Any, *, only_set: bool = False) -> Dict[str, Any]:
    """
    Read the fields of `source` into a plain dict.

    With `only_set`, pydantic models contribute only explicitly set fields and
    dataclasses only their non-None fields. Mapped instances always contribute
    every loaded attribute.
    """
    if isinstance(source, Mapping):
        return dict(source)
    if isinstance(source, BaseModel):
        return source.model_dump(exclude_unset=only_set)
    if is_dataclass(source) and not isinstance(source, type):
        data = {f.name: getattr(source, f.name) for f in fields(source)}
        if only_set:
            return {k: v for k, v in data.items() if v is not None}
        return data
    state = _instance_state(source)
    if state is not None:
        return _entity_mapping(state, frozenset())
    raise ConversionError(f"Cannot read fields from {type(source).__name__}")


# --------------------------------------------------------------------------
# describing targets
# --------------------------------------------------------------------------
def _column_type(column_prop) -> Any:
    column = column_prop.columns[0]
    try:
        py_type = column.type.python_type
    except NotImplementedError:
        return Any
    return py_type | None


@lru_cache(maxsize=None)
def _field_types(target_type: type) -> Dict[str, Any]:
    """Field name -> annotation for a dataclass, pydantic model or mapped class."""
    if isinstance(target_type, type) and issubclass(target_type, BaseModel):
        return {name: f.annotation for name, f in target_type.model_fields.items()}
    if is_dataclass(target_type):
        hints = get_type_hints(target_type)
        return {f.name: hints.get(f.name, Any) for f in fields(target_type) if f.init}
    mapper = sa_inspect(target_type, raiseerr=False)
    if isinstance(mapper, Mapper):
        return {prop.key: _column_type(prop) for prop in mapper.column_attrs}
    raise ConversionError(f"Unsupported conversion target: {getattr(target_type, '__name__', target_type)}")


def _required_fields(target_type: type) -> set[str]:
    if issubclass(target_type, BaseModel):
        return {name for name, f in target_type.model_fields.items() if f.is_required()}
    if is_dataclass(target_type):
        return {
            f.name for f in fields(target_type)
            if f.init and f.default is MISSING and f.default_factory is MISSING
        }
    return set()


def _zero_value(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin in (Union, types.UnionType) and type(None) in get_args(annotation):
        return None
    if origin in _CONTAINERS:
        return origin()
    if annotation in _CONTAINERS or annotation in (int, float, str, bool, bytes):
        return annotation()
    return None


@lru_cache(maxsize=512)
def _cached_adapter(annotation: Any) -> TypeAdapter:
    return TypeAdapter(annotation)


def _adapter(annotation: Any) -> TypeAdapter:
    try:
        return _cached_adapter(annotation)
    except TypeError:  # unhashable annotation
        return TypeAdapter(annotation)


def _coerce(annotation: Any, value: Any, name: str) -> Any:
    if annotation is Any:
        return value
    try:
        return _adapter(annotation).validate_python(value)
    except ValidationError as e:
        raise ConversionError(f"Field '{name}' has an incompatible value: {e}", field=name) from e


# --------------------------------------------------------------------------
# building targets
# --------------------------------------------------------------------------
def _build(target_type: Type[T], data: Mapping[str, Any]) -> T:
    spec = _field_types(target_type)
    values = {name: _coerce(ann, data[name], name) for name, ann in spec.items() if name in data}

    if issubclass(target_type, BaseModel):
        present = set(values)
        for name in _required_fields(target_type) - present:
            values[name] = _zero_value(spec[name])
        return target_type.model_construct(_fields_set=present, **values)

    if is_dataclass(target_type):
        for name in _required_fields(target_type) - set(values):
            values[name] = _zero_value(spec[name])
        return target_type(**values)

    entity = target_type()
    for name, value in values.items():
        setattr(entity, name, value)
    return entity


def project(source: Any, target_type: Type[T]) -> T:
    """
    Serialize round trip: keep every JSON-representable field `target_type` declares.

    Raises:
        ConversionError: unsupported source/target, or a field that does not fit
            the target's annotation.
    """
    payload: Dict[str, Any] = {}
    for key, value in as_mapping(source).items():
        try:
            payload[key] = to_jsonable_python(value)
        except (PydanticSerializationError, ValueError):  # includes undecodable bytes
            logger.debug("[converter] dropping non-serializable field '%s' (%s)", key, type(value).__name__)
    return _build(target_type, payload)


def project_many(sources: Iterable[Any], target_type: Type[T]) -> List[T]:
    return [project(s, target_type) for s in sources]


def merge_onto(source: Any, target: Union[T, Type[T]]) -> T:
    """
    Structural decode of `source` onto `target`.

    If `target` is a class, a fresh zero-valued instance is built from every
    field of `source`. If it is an instance, only the fields `source` set are
    written and the rest of `target` is left untouched (partial update).
    Mapped targets receive column attributes only.
    """
    if isinstance(target, type):
        return _build(target, as_mapping(source))

    spec = _field_types(type(target))
    for name, value in as_mapping(source, only_set=True).items():
        if name not in spec:
            continue
        setattr(target, name, _coerce(spec[name], value, name))
    return target
