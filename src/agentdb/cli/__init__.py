"""AgentDB CLI.

Command-line access to a saved action-pattern database.

Usage:
    agentdb record fill -s "#email" -u site.com     Record an action
    agentdb query fill -s "#email" --success-only    Find similar actions
    agentdb stats                                    Show statistics
    agentdb export -o corpus.json                    Export patterns
    agentdb import corpus.json                       Import patterns
"""

from agentdb.cli.main import app, main

__all__ = ["app", "main"]
