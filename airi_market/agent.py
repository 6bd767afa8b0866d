"""Airi marketplace assistant: rule-based replies for buyers and sellers.

Flow for one question:
1. Pull signals from the text: town, price window, commodity kind
2. Describe the target seller's availability, if one was given
3. Suggest available products in the same town
4. Wrap it all in a buyer or seller narrative

Entry points: AiriAssistant.reply(), ai_reply()
"""

from typing import Optional

from .config import NEARBY_LIMIT, SIGN_OFF_WITH_DISPLAY_NAME, TOWNS
from .models import Catalog, PriceWindow, Reply, ReplyRequest, RequesterProfile
from .recommender import HotlistService, render_alternatives
from .utils import (
    classify_commodity,
    detect_town,
    extract_numbers,
    format_back_at,
    infer_price_window,
    normalize_question,
)

# Greeting keyed by display mode; anything unknown gets the casual one.
MODE_PREFIXES = {
    "pro": "Here is a structured insight: ",
    "neon": "⚡ Neon scan → ",
}
DEFAULT_PREFIX = "Hey 😊 "

BUSY_TEXT = " This seller is currently busy. You can still leave a message or try similar items."
ONLINE_TEXT = " Seller is online now."


class AiriAssistant:
    """Stateless reply engine. Safe to share between requests."""

    def __init__(
        self,
        sign_off: bool = SIGN_OFF_WITH_DISPLAY_NAME,
        nearby_limit: int = NEARBY_LIMIT,
        towns=TOWNS,
    ) -> None:
        self.sign_off = sign_off
        self.nearby_limit = nearby_limit
        self.towns = tuple(towns)

    def reply(self, request: ReplyRequest) -> Reply:
        """Answer one question. Never raises on odd input."""
        requester = request.requester or RequesterProfile()
        q = normalize_question(request.question)
        prefix = MODE_PREFIXES.get(request.mode, DEFAULT_PREFIX)

        town = detect_town(q, requester.town, self.towns)
        window = infer_price_window(extract_numbers(q))
        commodity = classify_commodity(q)

        availability = self.availability_text(request.catalog, request.seller_id)
        nearby = HotlistService(request.catalog, nearby_limit=self.nearby_limit).nearby(town)
        suggestion = render_alternatives(nearby)

        if request.role == "buyer":
            analysis = f"You are looking for a **{commodity}** in **{town}**."
            if _has_window(window):
                analysis += f" A fair price window is **KES {window.low} – {window.high}**."
            else:
                analysis += ' Add a number (e.g., "under 5000") for price guidance.'
        else:
            # Unknown roles get seller advice; the HTTP layer rejects them earlier.
            analysis = (
                f"For a **{commodity}** targeting **{town}**, craft a clear listing "
                "with 2 images, short bullets, and delivery/meetup details."
            )
            if _has_window(window):
                analysis += f" Consider pricing around **KES {window.low} – {window.high}**."
            else:
                analysis += " Add a price hint to calibrate pricing."
        analysis += availability + suggestion

        text = f"{prefix}{analysis}"
        if self.sign_off:
            text += f" — {display_name(request.role, requester)}"
        return Reply(text=text.strip())

    def availability_text(self, catalog: Catalog, seller_id: Optional[str]) -> str:
        """Sentence about the seller's presence, or "" if unknown."""
        if not seller_id:
            return ""
        seller = catalog.find_user(seller_id)
        if seller is None or seller.availability is None:
            return ""
        status = seller.availability.status or "online"
        if status == "offline":
            back = format_back_at(seller.availability.back_at)
            return f" This seller is currently offline. Expected back at {back}."
        if status == "busy":
            return BUSY_TEXT
        return ONLINE_TEXT


def display_name(role: str, requester: RequesterProfile) -> str:
    if role == "seller" and requester.store_name:
        return requester.store_name
    return requester.name or "friend"


def _has_window(window: Optional[PriceWindow]) -> bool:
    # A zero bound reads as "no usable hint".
    return window is not None and bool(window.low) and bool(window.high)


_default_assistant = AiriAssistant()


def ai_reply(
    question: str,
    mode: str,
    role: str,
    requester: Optional[RequesterProfile],
    catalog: Catalog,
    seller_id: Optional[str] = None,
) -> Reply:
    """Functional shortcut around a shared AiriAssistant."""
    return _default_assistant.reply(
        ReplyRequest(
            question=question,
            mode=mode,
            role=role,
            requester=requester,
            catalog=catalog,
            seller_id=seller_id,
        )
    )
