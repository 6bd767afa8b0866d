import logging
import math
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Literal, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field

from airi_market import config
from airi_market.agent import AiriAssistant
from airi_market.auth import create_access_token, decode_access_token, get_password_hash, verify_password
from airi_market.errors import InvalidTokenError, UploadError
from airi_market.models import Availability, Product, ReplyRequest, UserRecord
from airi_market.recommender import HotlistService
from airi_market.store import AbstractCatalogRepository, JsonCatalogRepository
from airi_market.uploads import read_upload, save_images
from airi_market.utils import serialize_product

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
logger = logging.getLogger("airi_market.server")

AI_UNAVAILABLE_REPLY = "AI is unavailable right now."

PAGES = {
    "/buyer": "buyer_dashboard.html",
    "/seller": "seller_dashboard.html",
    "/hotlist": "hotlist.html",
    "/product-manager": "product_manager.html",
}

bearer_scheme = HTTPBearer(auto_error=False)


class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    store_name: Optional[str] = Field(default=None, alias="storeName")
    town: Optional[str] = None


class LoginRequest(BaseModel):
    phone: Optional[str] = None
    password: Optional[str] = None


class AvailabilityUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[Literal["online", "busy", "offline"]] = None
    back_at: Optional[str] = Field(default=None, alias="backAt")


class AiRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Free text; numbers and other JSON scalars are stringified.
    question: Any = ""
    mode: Any = ""
    # Missing role falls back to the caller's own role.
    role: Optional[Literal["buyer", "seller"]] = None
    seller_id: Optional[str] = Field(default=None, alias="sellerId")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _session_payload(user: UserRecord) -> dict:
    return {
        "token": create_access_token(user.id),
        "role": user.role,
        "name": user.name,
        "storeName": user.store_name,
    }


def get_repository(request: Request) -> AbstractCatalogRepository:
    return request.app.state.repository


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    repository: AbstractCatalogRepository = Depends(get_repository),
) -> UserRecord:
    if credentials is None or not credentials.credentials.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    try:
        user_id = decode_access_token(credentials.credentials.strip())
    except InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user = repository.load().find_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user")
    return user


def get_current_seller(user: UserRecord = Depends(get_current_user)) -> UserRecord:
    if user.role != "seller":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a seller")
    return user


def create_app(
    repository: Optional[AbstractCatalogRepository] = None,
    uploads_dir: Optional[Path] = None,
    frontend_dir: Optional[Path] = None,
    assistant: Optional[AiriAssistant] = None,
) -> FastAPI:
    app = FastAPI(title="Airi Marketplace")

    # Enable CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    uploads_dir = Path(uploads_dir or config.UPLOADS_DIR)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    frontend_dir = Path(frontend_dir or config.FRONTEND_DIR)

    app.state.repository = repository or JsonCatalogRepository(config.DATA_FILE)
    app.state.assistant = assistant or AiriAssistant()
    app.state.uploads_dir = uploads_dir
    app.mount("/uploads", StaticFiles(directory=uploads_dir), name="uploads")

    @app.get("/")
    async def root():
        return {"status": "Airi Marketplace API is running", "docs": "/docs"}

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    @app.post("/api/signup")
    def signup(body: SignupRequest, repository: AbstractCatalogRepository = Depends(get_repository)):
        if not body.phone or not body.password or not body.name or not body.role:
            raise HTTPException(status_code=400, detail="Missing required fields")
        if body.role not in ("buyer", "seller"):
            raise HTTPException(status_code=400, detail="Role must be buyer or seller")
        # Hashing stays outside the lock.
        password_hash = get_password_hash(body.password)
        with repository.lock:
            catalog = repository.load()
            if catalog.find_user_by_phone(body.phone):
                raise HTTPException(status_code=400, detail="Phone already registered")
            is_seller = body.role == "seller"
            user = UserRecord(
                id=str(uuid.uuid4()),
                phone=body.phone,
                name=body.name,
                role=body.role,
                password_hash=password_hash,
                town=body.town or config.DEFAULT_TOWN,
                store_name=(body.store_name or config.DEFAULT_STORE_NAME) if is_seller else None,
                availability=Availability() if is_seller else None,
                created_at=_now_iso(),
            )
            catalog.users.append(user)
            repository.save(catalog)
        logger.info("Registered %s %s", user.role, user.id)
        return _session_payload(user)

    @app.post("/api/login")
    def login(body: LoginRequest, repository: AbstractCatalogRepository = Depends(get_repository)):
        user = repository.load().find_user_by_phone(body.phone or "")
        if user is None or not verify_password(body.password or "", user.password_hash):
            raise HTTPException(status_code=401, detail="Invalid credentials")
        return _session_payload(user)

    @app.get("/api/me")
    def me(user: UserRecord = Depends(get_current_user)):
        return {
            "id": user.id,
            "role": user.role,
            "name": user.name,
            "storeName": user.store_name,
            "town": user.town,
            "availability": user.availability.to_dict() if user.availability else None,
        }

    @app.post("/api/seller/availability")
    def update_availability(
        body: AvailabilityUpdate,
        seller: UserRecord = Depends(get_current_seller),
        repository: AbstractCatalogRepository = Depends(get_repository),
    ):
        with repository.lock:
            catalog = repository.load()
            user = catalog.find_user(seller.id)
            if user is None:
                raise HTTPException(status_code=404, detail="User not found")
            user.availability = Availability(status=body.status or "online", back_at=body.back_at or None)
            repository.save(catalog)
        return {"ok": True, "availability": user.availability.to_dict()}

    @app.post("/api/seller/product")
    def create_product(
        request: Request,
        title: Optional[str] = Form(default=None),
        price: Optional[str] = Form(default=None),
        category: Optional[str] = Form(default=None),
        town: Optional[str] = Form(default=None),
        availableNow: Optional[str] = Form(default=None),
        images: List[UploadFile] = File(default=[]),
        seller: UserRecord = Depends(get_current_seller),
    ):
        if not title or not price or not category:
            raise HTTPException(status_code=400, detail="Missing required fields")
        try:
            price_value = float(price)
        except ValueError:
            raise HTTPException(status_code=400, detail="Price must be a number")
        # nan/inf would be stored but could never be serialized back.
        if not math.isfinite(price_value):
            raise HTTPException(status_code=400, detail="Price must be a number")
        if price_value.is_integer():
            price_value = int(price_value)

        try:
            if len(images) > config.MAX_IMAGES:
                raise UploadError(f"At most {config.MAX_IMAGES} images allowed")
            files = [read_upload(f.filename or "", f.file) for f in images]
            web_paths = save_images(files, seller.id, request.app.state.uploads_dir)
        except UploadError as e:
            raise HTTPException(status_code=400, detail=str(e))

        product = Product(
            id=str(uuid.uuid4()),
            seller_id=seller.id,
            title=title[:100],
            price=price_value,
            category=category[:50],
            town=town or seller.town or config.DEFAULT_TOWN,
            available_now=(availableNow or "").lower() in ("on", "true"),
            images=web_paths[: config.MAX_IMAGES],
            created_at=_now_iso(),
        )
        repository = request.app.state.repository
        with repository.lock:
            catalog = repository.load()
            catalog.products.insert(0, product)
            repository.save(catalog)
        logger.info("Seller %s listed product %s", seller.id, product.id)
        return {"ok": True, "product": serialize_product(product)}

    @app.get("/api/hotlist")
    def hotlist(town: Optional[str] = None, repository: AbstractCatalogRepository = Depends(get_repository)):
        items = HotlistService(repository.load()).hotlist(town)
        return {"items": [serialize_product(p) for p in items]}

    @app.post("/api/ai")
    def ai_endpoint(
        body: AiRequest,
        request: Request,
        user: UserRecord = Depends(get_current_user),
    ):
        try:
            catalog = request.app.state.repository.load()
            reply = request.app.state.assistant.reply(
                ReplyRequest(
                    question=str(body.question or ""),
                    mode=str(body.mode or ""),
                    role=body.role or user.role,
                    requester=user.profile(),
                    catalog=catalog,
                    seller_id=body.seller_id,
                )
            )
            return {"reply": reply.text}
        except Exception:
            logger.exception("AI error")
            return JSONResponse(status_code=500, content={"reply": AI_UNAVAILABLE_REPLY})

    def _page_route(filename: str):
        def serve_page():
            page = frontend_dir / filename
            if not page.is_file():
                raise HTTPException(status_code=404, detail="Page not found")
            return FileResponse(page)
        return serve_page

    for path, filename in PAGES.items():
        app.add_api_route(path, _page_route(filename), methods=["GET"], include_in_schema=False)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
