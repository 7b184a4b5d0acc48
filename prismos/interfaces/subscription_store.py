"""Subscription store protocol — the only persisted shared state."""
from typing import Any, Protocol

from ..models import Subscription


class SubscriptionStore(Protocol):
    """Keyed by lower-cased smart account address."""

    async def get_all(self) -> list[Subscription]: ...

    async def get(self, smart_account: str) -> Subscription | None: ...

    async def save(self, subscription: Subscription) -> Subscription: ...

    async def update(
        self, smart_account: str, **changes: Any
    ) -> Subscription | None: ...
