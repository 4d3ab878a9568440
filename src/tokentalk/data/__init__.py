"""Data layer for tokentalk - token storage, pending ids and interaction history."""

from tokentalk.data.history import InteractionHistory
from tokentalk.data.pending import FilePendingStore, PendingStore
from tokentalk.data.tokens import InMemoryTokenStore, JsonTokenStore, Token, TokenStore

__all__ = [
    "Token",
    "TokenStore",
    "InMemoryTokenStore",
    "JsonTokenStore",
    "PendingStore",
    "FilePendingStore",
    "InteractionHistory",
]
