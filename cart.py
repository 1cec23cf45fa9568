"""
Influencer cart and order submission.

The cart limit comes from the session's access code and is checked each time an
item is added. Submitting turns every cart line into one Preparing order.
"""
import logging
from typing import List

from pydantic import BaseModel, Field

from ledger import new_order_id, today
from schemas import Order, OrderStatus, Product

logger = logging.getLogger("seeding")


class CartLimitExceeded(ValueError):
    pass


class InvalidCartItem(ValueError):
    pass


class SubmissionRejected(ValueError):
    pass


class CartItem(BaseModel):
    product: Product
    size: str = ""


class DeliveryInfo(BaseModel):
    instagram_id: str
    name: str
    phone: str
    address: str
    message: str = ""
    additional_request: str = ""
    agreed: bool = False


class Cart(BaseModel):
    limit: int = Field(ge=1)
    items: List[CartItem] = []

    @property
    def remaining(self) -> int:
        return max(self.limit - len(self.items), 0)

    def add(self, product: Product, size: str = "") -> CartItem:
        if len(self.items) >= self.limit:
            raise CartLimitExceeded(f"You can select up to {self.limit} products.")
        if product.options and size not in product.options:
            raise InvalidCartItem(f"Size {size!r} is not available for {product.name}")
        if not product.options and size:
            raise InvalidCartItem(f"{product.name} has no size options")
        item = CartItem(product=product, size=size)
        self.items.append(item)
        return item

    def remove(self, index: int) -> None:
        if 0 <= index < len(self.items):
            del self.items[index]


REQUIRED_DELIVERY_FIELDS = ("instagram_id", "name", "phone", "address")


def submit(cart: Cart, delivery: DeliveryInfo) -> List[Order]:
    if not delivery.agreed:
        raise SubmissionRejected("Please agree to the terms.")
    missing = [f for f in REQUIRED_DELIVERY_FIELDS if not getattr(delivery, f).strip()]
    if missing:
        raise SubmissionRejected(f"Missing delivery fields: {', '.join(missing)}")
    if not cart.items:
        raise SubmissionRejected("Cart is empty")

    created = today()
    orders = [
        Order(
            id=new_order_id(),
            status=OrderStatus.preparing,
            date=created,
            instagram_id=delivery.instagram_id,
            name=delivery.name,
            phone=delivery.phone,
            address=delivery.address,
            message=delivery.message,
            additional_request=delivery.additional_request,
            product_name=item.product.name,
            size=item.size,
        )
        for item in cart.items
    ]
    logger.info(f"Submitted {len(orders)} order(s)")
    return orders
