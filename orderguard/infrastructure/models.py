"""SQLAlchemy models for database tables.

Provides ORM models for purchase orders, their lines, edit locks and
the expired locks still awaiting release.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from orderguard.infrastructure.database import Base


# ============================================================================
# Order Models
# ============================================================================


class PurchaseOrderModel(Base):
    """Order model for database persistence.

    The ``version`` column is the optimistic-locking counter. Updates are
    issued as ``WHERE number = ? AND version = ?`` and bump it by one.
    """

    __tablename__ = "purchase_order"

    number = Column(String(50), primary_key=True)
    version = Column(Integer, nullable=False)
    state = Column(String(20), nullable=False, index=True)

    # Orderer
    orderer_id = Column(String(50), nullable=False, index=True)
    orderer_name = Column(String(100), nullable=False)

    # Totals
    total_amounts = Column(BigInteger, nullable=False)

    # Shipping info
    receiver_name = Column(String(100), nullable=False)
    receiver_phone = Column(String(50), nullable=False)
    shipping_zip_code = Column(String(20), nullable=False)
    shipping_addr1 = Column(String(255), nullable=False)
    shipping_addr2 = Column(String(255), nullable=True)
    shipping_message = Column(Text, nullable=True)

    # Timestamps
    order_date = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    lines = relationship(
        "OrderLineModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLineModel.line_idx",
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "number": self.number,
            "version": self.version,
            "state": self.state,
            "orderer_id": self.orderer_id,
            "orderer_name": self.orderer_name,
            "total_amounts": self.total_amounts,
            "order_date": self.order_date.isoformat() if self.order_date else None,
        }


class OrderLineModel(Base):
    """Order line model, positioned by ``line_idx``."""

    __tablename__ = "order_line"

    order_number = Column(
        String(50),
        ForeignKey("purchase_order.number", ondelete="CASCADE"),
        primary_key=True,
    )
    line_idx = Column(Integer, primary_key=True)
    product_id = Column(String(50), nullable=False)
    price = Column(BigInteger, nullable=False)
    quantity = Column(Integer, nullable=False)
    amounts = Column(BigInteger, nullable=False)

    # Relationships
    order = relationship("PurchaseOrderModel", back_populates="lines")


# ============================================================================
# Lock Models
# ============================================================================


class LockModel(Base):
    """Edit lock record.

    The composite primary key on (type, id) is what makes acquisition a
    compare-and-set: a second insert for a held subject fails.
    """

    __tablename__ = "locks"

    type = Column(String(100), primary_key=True)
    id = Column(String(100), primary_key=True)
    lock_id = Column(String(64), nullable=False, unique=True)
    expiration_time = Column(DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": self.type,
            "id": self.id,
            "lock_id": self.lock_id,
            "expiration_time": self.expiration_time.isoformat(),
        }


class ExpiredLockModel(Base):
    """Lock that expired and lost its subject without being released.

    Remembers the lock id so later lookups report expiry instead of an
    unknown lock. The row is removed when the holder releases the lock.
    """

    __tablename__ = "expired_locks"

    lock_id = Column(String(64), primary_key=True)
    expiration_time = Column(DateTime(timezone=True), nullable=False)
