from .agent import AiriAssistant, ai_reply
from .models import Catalog, Product, Reply, ReplyRequest, RequesterProfile, UserRecord
from .store import AbstractCatalogRepository, InMemoryCatalogRepository, JsonCatalogRepository

__all__ = [
    "AiriAssistant",
    "ai_reply",
    "Catalog",
    "Product",
    "Reply",
    "ReplyRequest",
    "RequesterProfile",
    "UserRecord",
    "AbstractCatalogRepository",
    "InMemoryCatalogRepository",
    "JsonCatalogRepository",
]
