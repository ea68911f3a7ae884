"""
Delivery layer: local persistence and the terminal interface.

Components:
- StateStore: SQLite persistence for collections, items, attempts and sessions
- app / main: Typer CLI
"""

from .state_store import Collection, StateStore

__all__ = [
    "StateStore",
    "Collection",
]
