from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# order_items.price_at_purchase and orders.total are Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")


class Product(BaseModel):
    """Catalog snapshot of a product as seen at lookup time."""

    model_config = ConfigDict(frozen=True)

    id: str
    sku: str | None = None
    name: str | None = None
    price: Decimal = Field(ge=0, le=MAX_AMOUNT)
    category: str | None = None
