"""Utility helpers for AgentDB."""
