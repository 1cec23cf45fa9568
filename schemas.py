"""
Schemas for the seeding collections backend

Each Collection is stored as a single document (products and orders embedded),
keyed by its id. AdminConfig is a single document. Sessions are derived from a
submitted code and never persisted.
"""
from __future__ import annotations
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


DEFAULT_ADMIN_PASSWORD = "ADMIN"
DEFAULT_RECOVERY_PHRASE = "nuuanu"


class OrderStatus(str, Enum):
    preparing = "Preparing"
    shipped = "Shipped"


class AccessCodeConfig(BaseModel):
    code: str
    limit: int = Field(1, ge=1, description="Maximum cart size for this code")


class Product(BaseModel):
    id: str
    name: str
    price: int = Field(0, ge=0, description="Smallest currency unit")
    options: List[str] = []
    summary: str = ""
    images: List[str] = []


class Order(BaseModel):
    id: str
    status: OrderStatus = OrderStatus.preparing
    date: str
    instagram_id: str
    name: str
    phone: str
    address: str
    message: Optional[str] = None
    additional_request: Optional[str] = None
    product_name: str
    size: str
    admin_memo: Optional[str] = None
    shipped_date: Optional[str] = None


class LookbookItem(BaseModel):
    id: str
    url: str
    order: int = 0


class Collection(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None
    access_codes: List[AccessCodeConfig] = []
    description_title: str = ""
    description_body: str = ""
    lookbook: List[LookbookItem] = []
    products: List[Product] = []
    orders: List[Order] = []


class AdminConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    password: str = DEFAULT_ADMIN_PASSWORD
    recovery_phrase: str = DEFAULT_RECOVERY_PHRASE


# Sessions

class AdminSession(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    role: Literal["admin"] = "admin"


class InfluencerSession(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    role: Literal["influencer"] = "influencer"
    collection_id: str
    access_code: str
    limit: int = Field(ge=1)


Session = Annotated[Union[AdminSession, InfluencerSession], Field(discriminator="role")]


# Reports

class StatEntry(BaseModel):
    name: str
    count: int
    percentage: float
