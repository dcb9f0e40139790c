"""
Runners module - entry points that execute an agent tree for a user turn.
"""

from .runner import InMemoryRunner, Runner

__all__ = ["InMemoryRunner", "Runner"]
