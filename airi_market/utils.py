"""Text helpers for the Airi assistant."""
import math
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .config import SOLID_TERMS, TOWNS, VIRTUAL_TERMS
from .models import PriceWindow, Product

# ASCII digits only; a long run splits into 7-digit chunks.
_NUMBER_RE = re.compile(r"[0-9]{3,7}")


def normalize_question(text: Any) -> str:
    return str(text or "").lower()


def extract_numbers(text: str) -> List[int]:
    """All 3-7 digit runs in order of appearance."""
    return [int(n) for n in _NUMBER_RE.findall(text)]


def half_up(value: float) -> int:
    """Round halves upwards (round() would round them to even)."""
    return int(math.floor(value + 0.5))


def infer_price_window(numbers: List[int]) -> Optional[PriceWindow]:
    """Turn price hints into a window.

    One number is a target price and gets a 0.7x-1.3x window. Two or more are
    read as a stated range: the two smallest, ascending. Any further numbers
    are ignored.
    """
    if not numbers:
        return None
    if len(numbers) == 1:
        base = numbers[0]
        return PriceWindow(low=half_up(base * 0.7), high=half_up(base * 1.3))
    low, high = sorted(numbers)[:2]
    return PriceWindow(low=low, high=high)


def detect_town(question: str, fallback: Optional[str], towns: Iterable[str] = TOWNS) -> str:
    """Town named in the question, else the fallback.

    When several towns are mentioned the last one in vocabulary order wins.
    """
    town = fallback or "your area"
    for t in towns:
        if t in question:
            town = t[:1].upper() + t[1:]
    return town


def classify_commodity(
    question: str,
    solids: Iterable[str] = SOLID_TERMS,
    virtuals: Iterable[str] = VIRTUAL_TERMS,
) -> str:
    # Physical goods take precedence over account-type goods.
    if any(w in question for w in solids):
        return "solid"
    if any(w in question for w in virtuals):
        return "virtual"
    return "mixed"


def format_back_at(value: Optional[str]) -> str:
    """Render an ISO timestamp as local HH:MM, or "later" if it can't be read."""
    if not value:
        return "later"
    raw = str(value).strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
        return dt.astimezone().strftime("%H:%M")
    except (ValueError, TypeError, OverflowError, OSError):
        return "later"


def format_price(price: Any) -> str:
    if isinstance(price, float) and price.is_integer():
        return str(int(price))
    return str(price)


def serialize_product(p: Product) -> Dict[str, Any]:
    """Convert Product to the camelCase dict the API returns."""
    return p.to_dict()
