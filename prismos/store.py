"""JSON-file subscription store, keyed by lower-cased smart account."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Any

from .models import Subscription

logger = logging.getLogger(__name__)

_FIELDS = {f.name for f in fields(Subscription)}


class SubscriptionStoreError(RuntimeError):
    """The backing file exists but cannot be parsed; it is left untouched."""


def _from_record(record: dict[str, Any]) -> Subscription:
    return Subscription(**{k: v for k, v in record.items() if k in _FIELDS})


class JsonSubscriptionStore:
    """Reads the whole file on every access and rewrites it on every change.

    There is no cross-record transaction; each write replaces the file with
    the latest view of all records.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise SubscriptionStoreError(
                    f"Subscription file {self.path} is corrupt: {e}"
                ) from e
        records = data.get("subscriptions") if isinstance(data, dict) else None
        if not isinstance(records, dict):
            raise SubscriptionStoreError(
                f"Subscription file {self.path} has no subscriptions object"
            )
        return records

    def _write(self, records: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump({"subscriptions": records, "last_updated": time.time()}, f, indent=2)
        tmp.replace(self.path)

    async def get_all(self) -> list[Subscription]:
        return [_from_record(r) for r in self._read().values()]

    async def get(self, smart_account: str) -> Subscription | None:
        record = self._read().get(smart_account.lower())
        return _from_record(record) if record else None

    async def save(self, subscription: Subscription) -> Subscription:
        records = self._read()
        records[subscription.key] = asdict(subscription)
        self._write(records)
        return subscription

    async def update(self, smart_account: str, **changes: Any) -> Subscription | None:
        """Apply ``changes`` to an existing record; ``None`` if it does not exist."""
        records = self._read()
        key = smart_account.lower()
        if key not in records:
            logger.debug("No subscription %s to update", smart_account)
            return None
        updated = replace(_from_record(records[key]), **changes)
        records[key] = asdict(updated)
        self._write(records)
        return updated
