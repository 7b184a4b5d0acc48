"""Agent directory backed by the ``agents`` section of the config."""
from __future__ import annotations

import logging

from .models import AgentProfile

logger = logging.getLogger(__name__)


class ConfigAgentDirectory:
    """Resolves agent names to profiles; unknown agents get default fee rates."""

    def __init__(self, profiles: dict[str, AgentProfile]) -> None:
        self._profiles = {name.lower(): p for name, p in profiles.items()}

    async def get_agent_profile(self, agent_ens: str) -> AgentProfile:
        profile = self._profiles.get(agent_ens.lower())
        if profile is None:
            logger.debug("No profile for agent %s, using defaults", agent_ens)
            return AgentProfile(name=agent_ens)
        return profile
