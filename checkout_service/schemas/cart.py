from pydantic import BaseModel, ConfigDict, Field

# order_items.quantity is a 32-bit Integer column
MAX_QUANTITY = 2_147_483_647


class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str = Field(pattern=r"^[a-fA-F0-9]{24}$")
    quantity: int = Field(gt=0, le=MAX_QUANTITY)
