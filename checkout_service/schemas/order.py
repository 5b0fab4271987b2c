from __future__ import annotations

from decimal import Decimal
from typing import List, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class OrderSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    user_id: UUID = Field(alias="userId")
    total: Decimal

    @field_serializer("total")
    def _total_as_text(self, value: Decimal) -> str:
        return f"{value:.2f}"


class CheckoutData(BaseModel):
    order: OrderSummary


class CheckoutResponse(BaseModel):
    status: Literal["success"] = "success"
    data: CheckoutData


class ErrorItem(BaseModel):
    msg: str
    path: str


class FailResponse(BaseModel):
    status: Literal["fail"] = "fail"
    errors: List[ErrorItem] | None = None
    message: str | None = None


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str
