"""Adapters for automation components that record into AgentDB."""

from agentdb.integrations.click_factory import ClickFactoryAdapter

__all__ = ["ClickFactoryAdapter"]
