# Data models for the marketplace catalog and assistant requests.
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Availability:
    """Seller presence. back_at only matters while offline."""

    status: str = "online"  # "online" | "busy" | "offline"
    back_at: Optional[str] = None  # ISO8601 string

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Availability"]:
        if data is None:
            return None
        return cls(status=data.get("status") or "online", back_at=data.get("backAt"))

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "backAt": self.back_at}


@dataclass
class UserRecord:
    """Registered buyer or seller as persisted in the catalog."""
    id: str
    phone: str
    name: str
    role: str  # "buyer" | "seller"
    password_hash: str = ""
    town: Optional[str] = None
    store_name: Optional[str] = None
    availability: Optional[Availability] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserRecord":
        return cls(
            id=str(data.get("id", "")),
            phone=str(data.get("phone", "")),
            name=data.get("name") or "",
            role=data.get("role") or "buyer",
            password_hash=data.get("passwordHash") or "",
            town=data.get("town"),
            store_name=data.get("storeName"),
            availability=Availability.from_dict(data.get("availability")),
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "phone": self.phone,
            "passwordHash": self.password_hash,
            "name": self.name,
            "role": self.role,
            "town": self.town,
            "storeName": self.store_name,
            "availability": self.availability.to_dict() if self.availability else None,
            "createdAt": self.created_at,
        }

    def profile(self) -> "RequesterProfile":
        return RequesterProfile(name=self.name, town=self.town, store_name=self.store_name)


@dataclass
class RequesterProfile:
    """Who is asking the assistant. Every field may be missing."""
    name: Optional[str] = None
    town: Optional[str] = None
    store_name: Optional[str] = None


@dataclass
class Product:
    """Seller listing shown on the hotlist."""
    id: str
    seller_id: str
    title: str
    price: float
    town: str
    available_now: bool = False
    category: str = ""
    images: List[str] = field(default_factory=list)
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        return cls(
            id=str(data.get("id", "")),
            seller_id=str(data.get("sellerId", "")),
            title=data.get("title") or "",
            price=data.get("price") or 0,
            town=data.get("town") or "",
            available_now=bool(data.get("availableNow")),
            category=data.get("category") or "",
            images=list(data.get("images") or []),
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sellerId": self.seller_id,
            "title": self.title,
            "price": self.price,
            "category": self.category,
            "town": self.town,
            "availableNow": self.available_now,
            "images": list(self.images),
            "createdAt": self.created_at,
        }


@dataclass
class Catalog:
    """Snapshot of every user and product."""
    users: List[UserRecord] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Catalog":
        return cls(
            users=[UserRecord.from_dict(u) for u in data.get("users") or []],
            products=[Product.from_dict(p) for p in data.get("products") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [u.to_dict() for u in self.users],
            "products": [p.to_dict() for p in self.products],
        }

    def find_user(self, user_id: Optional[str]) -> Optional[UserRecord]:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def find_user_by_phone(self, phone: str) -> Optional[UserRecord]:
        for user in self.users:
            if user.phone == phone:
                return user
        return None


@dataclass
class PriceWindow:
    low: int
    high: int


@dataclass
class ReplyRequest:
    """Everything the assistant needs to answer one question."""

    question: str
    mode: str
    role: str
    catalog: Catalog
    requester: Optional[RequesterProfile] = None
    seller_id: Optional[str] = None


@dataclass
class Reply:
    text: str
