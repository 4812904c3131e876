"""Blackjack table host: game-loop driver plus the websocket dispatch surface."""

from .driver import GameDriver
from .server import TableServer

__all__ = ["GameDriver", "TableServer"]
