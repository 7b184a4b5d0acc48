"""Submitter protocol — delegated-key batch submission."""
from typing import Protocol

from ..models import Call, SubmissionResult, Subscription


class Submitter(Protocol):
    """Submits a batch of calls on behalf of a subscriber and awaits the result."""

    async def submit(
        self, subscription: Subscription, calls: list[Call]
    ) -> SubmissionResult: ...
