"""Agent directory protocol — resolves an agent name to its profile."""
from typing import Protocol

from ..models import AgentProfile


class AgentDirectory(Protocol):
    async def get_agent_profile(self, agent_ens: str) -> AgentProfile: ...
