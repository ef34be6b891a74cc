"""Versioned serialization of ledger snapshots.

Schema version 1 stores snake_case item fields under a ``version`` tag.
Records without a version tag use the older camelCase shape and
are migrated on read. Missing top-level collections and missing per-item
fields fall back to defaults; items that still fail validation are dropped and
logged rather than failing the whole load, and reported on the result so the
caller can keep a copy of the stored record.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError
from sqlmodel import SQLModel

from ..constants import default_categories, default_sources
from ..errors import SnapshotDecodeError
from ..logging_config import get_logger
from ..models import Budget, Category, Goal, LedgerSnapshot, Source, Transaction

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_ITEM_MODELS: dict[str, type[SQLModel]] = {
    "transactions": Transaction,
    "sources": Source,
    "categories": Category,
    "budgets": Budget,
    "goals": Goal,
}

# camelCase keys written by unversioned records, per collection
_LEGACY_RENAMES: dict[str, dict[str, str]] = {
    "transactions": {"sourceId": "source_id", "categoryId": "category_id"},
    "sources": {"type": "kind", "color": "color_tag"},
    "categories": {"color": "color_tag"},
    "budgets": {"categoryId": "category_id"},
    "goals": {
        "targetAmount": "target_amount",
        "currentAmount": "current_amount",
        "periodicTarget": "periodic_target",
    },
}


def default_snapshot() -> LedgerSnapshot:
    """Snapshot used when nothing has been stored yet."""

    return LedgerSnapshot(sources=default_sources(), categories=default_categories())


def encode_snapshot(snapshot: LedgerSnapshot) -> str:
    """Serialize the full snapshot as a versioned JSON document."""

    payload = {"version": SCHEMA_VERSION, **snapshot.model_dump(mode="json")}
    return json.dumps(payload, ensure_ascii=False)


@dataclass
class DecodedSnapshot:
    """A decoded snapshot plus a note for every stored item that was dropped."""

    snapshot: LedgerSnapshot
    dropped: list[str] = field(default_factory=list)

    @property
    def lossy(self) -> bool:
        return bool(self.dropped)


def decode_snapshot(raw: str) -> LedgerSnapshot:
    """Parse a stored document into a snapshot.

    Raises:
        SnapshotDecodeError: when ``raw`` is not JSON or not a JSON object.
    """

    return read_snapshot(raw).snapshot


def read_snapshot(raw: str) -> DecodedSnapshot:
    """Parse a stored document and report anything that could not be kept."""

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise SnapshotDecodeError(f"Stored ledger is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SnapshotDecodeError(f"Stored ledger must be an object, got {type(data).__name__}")

    version = data.get("version", 0)
    if not isinstance(version, int):
        version = 0
    if version > SCHEMA_VERSION:
        logger.warning(
            "Stored ledger has a newer schema; unknown fields are ignored",
            extra={"stored_version": version, "supported_version": SCHEMA_VERSION},
        )

    defaults = {"sources": default_sources, "categories": default_categories}
    collections: dict[str, list[Any]] = {}
    dropped: list[str] = []
    for name, model in _ITEM_MODELS.items():
        items = data.get(name)
        if items is None:
            collections[name] = defaults[name]() if name in defaults else []
            continue
        if not isinstance(items, list):
            logger.warning("Ignoring malformed %s collection", name, extra={"found": type(items).__name__})
            dropped.append(f"{name}: not a list")
            collections[name] = defaults[name]() if name in defaults else []
            continue
        renames = _LEGACY_RENAMES[name] if version < 1 else {}
        collections[name] = _decode_items(name, model, items, renames, dropped)

    return DecodedSnapshot(snapshot=LedgerSnapshot(**collections), dropped=dropped)


def _decode_items(
    name: str,
    model: type[SQLModel],
    items: list[Any],
    renames: dict[str, str],
    dropped: list[str],
) -> list[Any]:
    decoded = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning("Dropping non-object %s entry", name, extra={"index": index})
            dropped.append(f"{name}[{index}]: not an object")
            continue
        fields = {renames.get(key, key): value for key, value in item.items() if value is not None}
        try:
            decoded.append(model.model_validate(fields))
        except ValidationError as exc:
            logger.warning(
                "Dropping invalid %s entry",
                name,
                extra={"index": index, "errors": exc.error_count()},
            )
            dropped.append(f"{name}[{index}]: {exc.error_count()} invalid field(s)")
    return decoded
