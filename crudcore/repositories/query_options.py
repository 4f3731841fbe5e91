from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Tuple, Union

from crudcore.core.logger import get_logger

logger = get_logger(__name__)


def _names(value: Union[str, Iterable[str]]) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, Iterable):
        logger.debug("[query_options] ignoring relation name %r", value)
        return ()
    out: List[str] = []
    for v in value:
        if isinstance(v, str):
            out.append(v)
        else:
            logger.debug("[query_options] ignoring relation name %r", v)
    return tuple(out)


@dataclass(frozen=True, slots=True)
class Preload:
    """Eagerly load the named relations (dotted paths load nested relations)."""
    names: Tuple[str, ...]

    def __init__(self, *names: Union[str, Iterable[str]]):
        flat: List[str] = []
        for n in names:
            flat.extend(_names(n))
        object.__setattr__(self, "names", tuple(flat))


@dataclass(frozen=True, slots=True)
class Join:
    """Add an explicit join along each named relation."""
    names: Tuple[str, ...]

    def __init__(self, *names: Union[str, Iterable[str]]):
        flat: List[str] = []
        for n in names:
            flat.extend(_names(n))
        object.__setattr__(self, "names", tuple(flat))


QueryOption = Union[Preload, Join]


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def normalize_query_options(options: Any) -> List[QueryOption]:
    """
    Normalize caller options into typed modifiers.

    Accepts a sequence of Preload/Join values, or the untyped mapping form
    ``{"preload": [...], "join": name | [...]}``. Unknown keys, a non-sequence
    preload value and any other shape are ignored.
    """
    if options is None:
        return []

    if isinstance(options, (Preload, Join)):
        return [options]

    if isinstance(options, Mapping):
        out: List[QueryOption] = []
        for key, value in options.items():
            if key == "preload":
                if _is_sequence(value):
                    out.append(Preload(*value))
                else:
                    logger.debug("[query_options] ignoring non-sequence preload: %r", value)
            elif key == "join":
                if isinstance(value, str):
                    out.append(Join(value))
                elif _is_sequence(value):
                    out.append(Join(*value))
            else:
                logger.debug("[query_options] ignoring unknown option key: %r", key)
        return out

    if _is_sequence(options):
        return [o for o in options if isinstance(o, (Preload, Join))]

    logger.debug("[query_options] ignoring options of type %s", type(options).__name__)
    return []
