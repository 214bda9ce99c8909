"""JSON blob (de)serialization for structured columns.

Blobs are stored as text so the schema stays flexible; in memory they are
strict pydantic models.  A blob that fails to parse is never fatal: the
caller gets ``None`` (or its default) and a warning is logged.
"""

from __future__ import annotations

from typing import TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)


def load_blob(model: type[M], raw: str | None, *, field: str = "blob") -> M | None:
    """Parse *raw* JSON into *model*; ``None`` when empty or unparseable."""
    if not raw:
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Ignoring unparseable {} ({}): {}", field, model.__name__, exc.errors()[0]["msg"])
        return None


def dump_blob(value: BaseModel | None) -> str | None:
    """Serialize a model for storage; ``None`` stays ``None``."""
    if value is None:
        return None
    return value.model_dump_json(exclude_none=True)
