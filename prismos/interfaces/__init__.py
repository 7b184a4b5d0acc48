"""Protocol interfaces for the agent kernel's external collaborators."""
from .agent_directory import AgentDirectory
from .calldata import CalldataBuilder
from .market_data import MarketDataSource
from .position_reader import PositionReader
from .reasoning import ReasoningClient
from .settlement import SettlementStrategy
from .submitter import Submitter
from .subscription_store import SubscriptionStore

__all__ = [
    "AgentDirectory",
    "CalldataBuilder",
    "MarketDataSource",
    "PositionReader",
    "ReasoningClient",
    "SettlementStrategy",
    "Submitter",
    "SubscriptionStore",
]
