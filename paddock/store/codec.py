"""
Record Codec - one entity <-> one ordered list of text fields.

Columns follow the model's field declaration order. String fields are
taken verbatim. Integer fields that fail to parse (or are negative)
decode as 0 so a corrupted or legacy row does not halt a whole job.
"""

import logging
from typing import Dict, List, Sequence, Type, TypeVar

from pydantic import BaseModel

from paddock.core.errors import MalformedRecord
from paddock.schemas.entities import Driver, OfficialResult, Participant, Prediction

logger = logging.getLogger(__name__)

Record = TypeVar("Record", bound=BaseModel)

# Table name on disk -> entity kind stored in it.
TABLES: Dict[str, Type[BaseModel]] = {
    "users": Participant,
    "bets": Prediction,
    "race_results": OfficialResult,
    "drivers": Driver,
}


def arity(model: Type[BaseModel]) -> int:
    return len(model.model_fields)


def _to_int(raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        logger.debug("Non-numeric field %r decoded as 0", raw)
        return 0
    return value if value >= 0 else 0


def encode(entity: BaseModel) -> List[str]:
    return [str(getattr(entity, name)) for name in type(entity).model_fields]


def decode(model: Type[Record], fields: Sequence[str]) -> Record:
    expected = arity(model)
    if len(fields) != expected:
        raise MalformedRecord(
            f"{model.__name__} expects {expected} fields, got {len(fields)}: {list(fields)!r}"
        )
    values = {}
    for (name, info), raw in zip(model.model_fields.items(), fields):
        values[name] = _to_int(raw) if info.annotation is int else raw
    return model(**values)


def encode_line(entity: BaseModel, delimiter: str = ",") -> str:
    return delimiter.join(encode(entity))


def decode_line(model: Type[Record], line: str, delimiter: str = ",") -> Record:
    return decode(model, line.split(delimiter))


def unstorable(values: Sequence[str], delimiter: str = ",") -> List[str]:
    """Values that would split or end a row if written as a field."""
    return [v for v in values if delimiter in v or "\n" in v or "\r" in v]
