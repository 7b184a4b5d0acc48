"""Service modules"""
from .executor import ActionExecutor
from .fees import FeeAccumulator
from .position_loop import PositionLoop
from .scheduler import Scheduler
from .settlement import LoggingSettlementStrategy, SettlementRunner
from .subscriptions import (
    SubscriptionError,
    list_subscribers,
    list_user_subscriptions,
    revoke,
    subscribe,
)

__all__ = [
    "ActionExecutor",
    "FeeAccumulator",
    "LoggingSettlementStrategy",
    "PositionLoop",
    "Scheduler",
    "SettlementRunner",
    "SubscriptionError",
    "list_subscribers",
    "list_user_subscriptions",
    "revoke",
    "subscribe",
]
