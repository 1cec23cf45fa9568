import hashlib
import hmac
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Union
from urllib.parse import quote

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Depends, Query, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel, Field

import access
import catalog
import ledger
import recovery
import reports
from cart import Cart, DeliveryInfo, submit
from database import Store, get_store
from export import encode, export_filename
from schemas import (
    AccessCodeConfig,
    AdminConfig,
    AdminSession,
    Collection,
    InfluencerSession,
    LookbookItem,
    Order,
    OrderStatus,
    Product,
    StatEntry,
)

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("seeding")

# Auth settings
SECRET_KEY = os.getenv("SECRET_KEY", "secret-key-change-me")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 12))

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_store().seed()
    yield


app = FastAPI(title="Seeding Collections API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class LoginPayload(BaseModel):
    code: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session: Union[AdminSession, InfluencerSession]


class RecoverPayload(BaseModel):
    phrase: str


# Helper functions for auth

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def password_fingerprint(password: str) -> str:
    return hmac.new(SECRET_KEY.encode(), access.normalize_code(password).encode(), hashlib.sha256).hexdigest()


def session_claims(session, admin_config: AdminConfig) -> dict:
    if isinstance(session, AdminSession):
        # Tokens stop working once the admin password changes
        return {"sub": "admin", "pwd": password_fingerprint(admin_config.password)}
    return {"sub": "influencer", "cid": session.collection_id, "code": session.access_code}


def get_session(token: str = Depends(oauth2_scheme), store: Store = Depends(get_store)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise credentials_exception

    role = payload.get("sub")
    if role == "admin":
        current = password_fingerprint(store.get_admin_config().password)
        if not hmac.compare_digest(str(payload.get("pwd", "")).encode(), current.encode()):
            raise credentials_exception
        return AdminSession()
    if role != "influencer":
        raise credentials_exception

    # The code may have been removed or its limit changed since login
    col = store.get_collection(payload.get("cid", ""))
    if col is None:
        raise credentials_exception
    wanted = access.normalize_code(payload.get("code", ""))
    match = next((ac for ac in col.access_codes if access.normalize_code(ac.code) == wanted), None)
    if match is None:
        raise credentials_exception
    return InfluencerSession(collection_id=col.id, access_code=match.code, limit=match.limit)


def get_current_admin(session=Depends(get_session)) -> AdminSession:
    if not isinstance(session, AdminSession):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return session


def get_current_influencer(session=Depends(get_session)) -> InfluencerSession:
    if not isinstance(session, InfluencerSession):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Influencer access required")
    return session


def load_collection(store: Store, collection_id: str) -> Collection:
    col = store.get_collection(collection_id)
    if col is None:
        raise HTTPException(404, "Collection not found")
    return col


@app.get("/")
def root():
    return {"message": "Seeding Collections Backend Running"}


# Auth endpoints
@app.post("/auth/login", response_model=Token)
def login(payload: LoginPayload, store: Store = Depends(get_store)):
    admin_config = store.get_admin_config()
    session = access.resolve(payload.code, admin_config, store.list_collections())
    if session is None:
        raise HTTPException(status_code=401, detail="Invalid access code")

    logger.info(f"Login as {session.role}")
    access_token = create_access_token(data=session_claims(session, admin_config))
    return {"access_token": access_token, "token_type": "bearer", "session": session}


@app.post("/auth/recover")
def recover(payload: RecoverPayload, store: Store = Depends(get_store)):
    ok, config = recovery.reset(payload.phrase, store.get_admin_config(), store.list_collections())
    if not ok:
        raise HTTPException(status_code=400, detail="Recovery failed")
    store.save_admin_config(config)
    return {"status": "reset"}


# Admin config
@app.get("/admin/config", response_model=AdminConfig)
def admin_get_config(admin=Depends(get_current_admin), store: Store = Depends(get_store)):
    return store.get_admin_config()


@app.put("/admin/config", response_model=AdminConfig)
def admin_update_config(config: AdminConfig, admin=Depends(get_current_admin), store: Store = Depends(get_store)):
    if not config.password.strip():
        raise HTTPException(400, "Password must not be empty")
    if not config.recovery_phrase.strip():
        raise HTTPException(400, "Recovery phrase must not be empty")
    wanted = access.normalize_code(config.password)
    for col in store.list_collections():
        if any(access.normalize_code(ac.code) == wanted for ac in col.access_codes):
            raise HTTPException(400, f"Password collides with an access code of {col.name}")
    return store.save_admin_config(config)


# Collections admin
class CollectionCreate(BaseModel):
    name: str = Field(..., min_length=1)


class CollectionSettings(BaseModel):
    name: str = Field(..., min_length=1)
    logo_url: Optional[str] = None
    access_codes: List[AccessCodeConfig] = []
    description_title: str = ""
    description_body: str = ""
    lookbook: List[LookbookItem] = []


@app.get("/admin/collections")
def admin_list_collections(admin=Depends(get_current_admin), store: Store = Depends(get_store)):
    return [{"id": c.id, "name": c.name, "orders": len(c.orders)} for c in store.list_collections()]


@app.post("/admin/collections", response_model=Collection)
def admin_create_collection(payload: CollectionCreate, admin=Depends(get_current_admin), store: Store = Depends(get_store)):
    col = Collection(id=catalog.new_id(), name=payload.name)
    logger.info(f"Created collection {col.id}")
    return store.save_collection(col)


@app.get("/admin/collections/{collection_id}", response_model=Collection)
def admin_get_collection(collection_id: str, admin=Depends(get_current_admin), store: Store = Depends(get_store)):
    return load_collection(store, collection_id)


@app.put("/admin/collections/{collection_id}/settings", response_model=Collection)
def admin_update_settings(
    collection_id: str,
    payload: CollectionSettings,
    admin=Depends(get_current_admin),
    store: Store = Depends(get_store),
):
    col = load_collection(store, collection_id)
    conflicts = access.find_code_conflicts(
        collection_id, payload.access_codes, store.get_admin_config(), store.list_collections()
    )
    if conflicts:
        raise HTTPException(400, f"Access codes already in use: {', '.join(conflicts)}")
    col = Collection.model_validate({**col.model_dump(), **payload.model_dump()})
    return store.save_collection(col)


@app.delete("/admin/collections/{collection_id}")
def admin_delete_collection(collection_id: str, admin=Depends(get_current_admin), store: Store = Depends(get_store)):
    if not store.delete_collection(collection_id):
        raise HTTPException(404, "Collection not found")
    logger.info(f"Deleted collection {collection_id}")
    return {"status": "deleted"}


# Products admin
class CatalogImport(BaseModel):
    text: str
    replace: bool = False


@app.post("/admin/collections/{collection_id}/products/import")
def admin_import_products(
    collection_id: str,
    payload: CatalogImport,
    admin=Depends(get_current_admin),
    store: Store = Depends(get_store),
):
    col = load_collection(store, collection_id)
    imported = catalog.parse(payload.text)
    col.products = catalog.merge(col.products, imported, replace=payload.replace)
    store.save_collection(col)
    return {"imported": len(imported), "products": col.products}


@app.put("/admin/collections/{collection_id}/products", response_model=List[Product])
def admin_save_products(
    collection_id: str,
    products: List[Product],
    admin=Depends(get_current_admin),
    store: Store = Depends(get_store),
):
    col = load_collection(store, collection_id)
    col.products = products
    store.save_collection(col)
    return col.products


@app.delete("/admin/collections/{collection_id}/products/{product_id}")
def admin_delete_product(
    collection_id: str,
    product_id: str,
    admin=Depends(get_current_admin),
    store: Store = Depends(get_store),
):
    col = load_collection(store, collection_id)
    col.products = [p for p in col.products if p.id != product_id]
    store.save_collection(col)
    return {"status": "deleted"}


@app.delete("/admin/collections/{collection_id}/products")
def admin_delete_all_products(collection_id: str, admin=Depends(get_current_admin), store: Store = Depends(get_store)):
    col = load_collection(store, collection_id)
    col.products = []
    store.save_collection(col)
    return {"status": "deleted"}


# Orders admin
class FieldChange(BaseModel):
    field: str
    value: Optional[str] = None


class StatusChange(BaseModel):
    ids: List[str]
    status: OrderStatus


class ExportRequest(BaseModel):
    ids: List[str] = []
    include_header: bool = True


@app.get("/admin/collections/{collection_id}/orders", response_model=List[Order])
def admin_list_orders(
    collection_id: str,
    sort: Optional[str] = None,
    direction: str = Query("asc", alias="dir", pattern="^(asc|desc)$"),
    admin=Depends(get_current_admin),
    store: Store = Depends(get_store),
):
    col = load_collection(store, collection_id)
    if not sort:
        return col.orders
    try:
        return ledger.sort_orders(col.orders, sort, descending=direction == "desc")
    except ValueError as e:
        raise HTTPException(400, str(e))


@app.patch("/admin/collections/{collection_id}/orders/{order_id}", response_model=List[Order])
def admin_update_order(
    collection_id: str,
    order_id: str,
    payload: FieldChange,
    admin=Depends(get_current_admin),
    store: Store = Depends(get_store),
):
    col = load_collection(store, collection_id)
    try:
        col.orders = ledger.update_field(col.orders, order_id, payload.field, payload.value)
    except ValueError as e:
        raise HTTPException(400, str(e))
    store.save_collection(col)
    return col.orders


@app.post("/admin/collections/{collection_id}/orders/bulk-status", response_model=List[Order])
def admin_bulk_status(
    collection_id: str,
    payload: StatusChange,
    admin=Depends(get_current_admin),
    store: Store = Depends(get_store),
):
    col = load_collection(store, collection_id)
    col.orders = ledger.bulk_status(col.orders, payload.ids, payload.status)
    store.save_collection(col)
    return col.orders


@app.post("/admin/collections/{collection_id}/orders/{order_id}/duplicate")
def admin_duplicate_order(
    collection_id: str,
    order_id: str,
    admin=Depends(get_current_admin),
    store: Store = Depends(get_store),
):
    col = load_collection(store, collection_id)
    col.orders, copy = ledger.duplicate(col.orders, order_id)
    if copy is None:
        raise HTTPException(404, "Order not found")
    store.save_collection(col)
    return {"order": copy}


@app.delete("/admin/collections/{collection_id}/orders/{order_id}")
def admin_delete_order(
    collection_id: str,
    order_id: str,
    admin=Depends(get_current_admin),
    store: Store = Depends(get_store),
):
    col = load_collection(store, collection_id)
    col.orders = ledger.remove(col.orders, order_id)
    store.save_collection(col)
    return {"status": "deleted"}


# Export CSV
@app.post("/admin/collections/{collection_id}/orders/export")
def admin_export_orders(
    collection_id: str,
    payload: ExportRequest,
    admin=Depends(get_current_admin),
    store: Store = Depends(get_store),
):
    col = load_collection(store, collection_id)
    body = encode(ledger.select(col.orders, payload.ids), include_header=payload.include_header)
    filename = export_filename(col.name)
    return Response(
        content=body.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


# Reports
class ReportOut(BaseModel):
    total: int
    preparing: int
    shipped: int
    products: List[StatEntry]
    skus: List[StatEntry]


@app.get("/admin/collections/{collection_id}/reports", response_model=ReportOut)
def admin_reports(collection_id: str, admin=Depends(get_current_admin), store: Store = Depends(get_store)):
    col = load_collection(store, collection_id)
    return ReportOut(
        products=reports.product_distribution(col.orders),
        skus=reports.sku_ranking(col.orders),
        **reports.summary(col.orders),
    )


# Influencer shop
class ShopView(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None
    description_title: str
    description_body: str
    lookbook: List[LookbookItem]
    products: List[Product]
    access_code: str
    limit: int


class OrderLine(BaseModel):
    product_id: str
    size: str = ""


class OrderSubmission(BaseModel):
    items: List[OrderLine]
    delivery: DeliveryInfo


@app.get("/shop", response_model=ShopView)
def shop(session: InfluencerSession = Depends(get_current_influencer), store: Store = Depends(get_store)):
    col = load_collection(store, session.collection_id)
    return ShopView(
        access_code=session.access_code,
        limit=session.limit,
        **col.model_dump(exclude={"orders", "access_codes"}),
    )


@app.post("/shop/orders", response_model=List[Order])
def shop_submit_order(
    payload: OrderSubmission,
    session: InfluencerSession = Depends(get_current_influencer),
    store: Store = Depends(get_store),
):
    col = load_collection(store, session.collection_id)
    products = {p.id: p for p in col.products}
    cart = Cart(limit=session.limit)
    try:
        for line in payload.items:
            product = products.get(line.product_id)
            if product is None:
                raise HTTPException(400, f"Product {line.product_id} not found")
            cart.add(product, line.size)
        orders = submit(cart, payload.delivery)
    except ValueError as e:
        raise HTTPException(400, str(e))

    col.orders = ledger.add(col.orders, orders)
    store.save_collection(col)
    return orders


# Simple health and db test
@app.get("/test")
def test_database(store: Store = Depends(get_store)):
    try:
        collections = store.ping()
        return {"backend": "ok", "db": "ok" if store.db is not None else "memory", "collections": collections}
    except Exception as e:
        return {"backend": "ok", "db": f"error: {str(e)}"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
