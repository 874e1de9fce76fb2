from .chat_provider import ChatProvider
from .document_searcher import DocumentSearcher, NullSearcher

__all__ = [
    "ChatProvider",
    "DocumentSearcher",
    "NullSearcher",
]
