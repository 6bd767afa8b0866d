"""Hotlist lookups over the marketplace catalog.

Provides:
- HotlistService: available-now filtering by town
- render_alternatives: the "similar items nearby" sentence used in replies"""

from typing import List, Optional, Sequence

from .config import HOTLIST_LIMIT, NEARBY_LIMIT
from .models import Catalog, Product
from .utils import format_price

NO_MATCHES_TEXT = " No nearby matches at the moment — try widening price range or switching town."


class HotlistService:
    """Filters a catalog snapshot for products that are available now."""

    def __init__(
        self,
        catalog: Catalog,
        nearby_limit: int = NEARBY_LIMIT,
        hotlist_limit: int = HOTLIST_LIMIT,
    ) -> None:
        self.catalog = catalog
        self.nearby_limit = nearby_limit
        self.hotlist_limit = hotlist_limit

    def nearby(self, town: str, limit: Optional[int] = None) -> List[Product]:
        """Available products in exactly this town, catalog order."""
        limit = self.nearby_limit if limit is None else limit
        return self._select(town, limit)

    def hotlist(self, town: Optional[str] = None, limit: Optional[int] = None) -> List[Product]:
        """Available products, optionally narrowed to one town."""
        limit = self.hotlist_limit if limit is None else limit
        return self._select(town or None, limit)

    def _select(self, town: Optional[str], limit: int) -> List[Product]:
        matches = [p for p in self.catalog.products if self._should_include(p, town)]
        return matches[:limit]

    # Basic filters
    def _should_include(self, p: Product, town: Optional[str]) -> bool:
        if not p.available_now:
            return False
        if town is not None and (p.town or "").lower() != str(town).lower():
            return False
        return True


def render_alternatives(products: Sequence[Product]) -> str:
    if not products:
        return NO_MATCHES_TEXT
    items = " • ".join(f"{p.title} (KES {format_price(p.price)})" for p in products)
    return f" Here are similar items nearby: {items}."
