import uuid
from decimal import Decimal
from typing import List

from sqlalchemy import Numeric, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from checkout_service.models.base import Base, uuidpk, created_ts


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuidpk]
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    created_at: Mapped[created_ts]

    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )
