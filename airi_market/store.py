"""Catalog persistence.

The server loads a fresh snapshot per request and writes the whole catalog
back after a change. Hold ``repository.lock`` around load-modify-save."""

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Optional

from .models import Catalog

logger = logging.getLogger(__name__)


class AbstractCatalogRepository:
    """Interface for catalog stores."""

    def __init__(self) -> None:
        self.lock = threading.RLock()

    def load(self) -> Catalog:
        raise NotImplementedError

    def save(self, catalog: Catalog) -> None:
        raise NotImplementedError


class JsonCatalogRepository(AbstractCatalogRepository):
    """Whole catalog in a single JSON file."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)

    def load(self) -> Catalog:
        if not self.path.exists():
            return Catalog()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Catalog file %s is unreadable, starting empty: %s", self.path, e)
            return Catalog()
        if not isinstance(data, dict):
            logger.warning("Catalog file %s has no top-level object, starting empty", self.path)
            return Catalog()
        return Catalog.from_dict(data)

    def save(self, catalog: Catalog) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(catalog.to_dict(), ensure_ascii=False, indent=2)
        self.path.write_text(payload, encoding="utf-8")


class InMemoryCatalogRepository(AbstractCatalogRepository):
    """Keeps a private copy so callers can't mutate the stored state."""

    def __init__(self, catalog: Optional[Catalog] = None) -> None:
        super().__init__()
        self._catalog = copy.deepcopy(catalog) if catalog else Catalog()

    def load(self) -> Catalog:
        return copy.deepcopy(self._catalog)

    def save(self, catalog: Catalog) -> None:
        self._catalog = copy.deepcopy(catalog)
