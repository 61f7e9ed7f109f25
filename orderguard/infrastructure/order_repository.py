"""Order repositories.

Both implementations enforce the version guard as a compare-and-swap:
a write succeeds only while the stored version equals the version the
aggregate was loaded with, and the stored version then advances by one.
"""

import copy
import threading

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from orderguard.domain.entities import Order
from orderguard.domain.exceptions import (
    ConcurrentModificationError,
    DuplicateOrderError,
    OrderNotFoundError,
)
from orderguard.domain.repositories import OrderRepository
from orderguard.domain.state_machines import OrderState
from orderguard.domain.value_objects import (
    Address,
    MemberId,
    Money,
    OrderLine,
    OrderNo,
    Orderer,
    ProductId,
    Receiver,
    ShippingInfo,
)
from orderguard.infrastructure.database import as_utc, async_session_factory
from orderguard.infrastructure.models import OrderLineModel, PurchaseOrderModel

logger = structlog.get_logger()


# ============================================================================
# In-Memory Order Repository
# ============================================================================


class InMemoryOrderRepository(OrderRepository):
    """In-memory repository for orders.

    Stores private copies, so two callers loading the same order hold
    independent aggregates exactly as they would against a database.
    """

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._lock = threading.Lock()

    async def load(self, number: OrderNo) -> Order:
        """Load a copy of a stored order."""
        with self._lock:
            stored = self._orders.get(str(number))
            if stored is None:
                raise OrderNotFoundError(str(number))
            return copy.deepcopy(stored)

    async def add(self, order: Order) -> None:
        """Store a newly placed order."""
        with self._lock:
            if str(order.id) in self._orders:
                raise DuplicateOrderError(str(order.id))
            self._orders[str(order.id)] = self._snapshot(order)

    async def save(self, order: Order) -> None:
        """Write back an order if nobody else wrote it in the meantime."""
        key = str(order.id)
        with self._lock:
            stored = self._orders.get(key)
            if stored is None:
                raise OrderNotFoundError(key)
            if not stored.match_version(order.version):
                raise ConcurrentModificationError(key, order.version, stored.version)
            order.version += 1
            self._orders[key] = self._snapshot(order)
        logger.debug("Order saved", order_number=key, version=order.version)

    def count(self) -> int:
        return len(self._orders)

    @staticmethod
    def _snapshot(order: Order) -> Order:
        stored = copy.deepcopy(order)
        stored.collect_events()
        return stored


# ============================================================================
# SQLAlchemy Order Repository
# ============================================================================


class SqlAlchemyOrderRepository(OrderRepository):
    """Order repository backed by the ``purchase_order`` and ``order_line`` tables.

    Each call runs in its own session and transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        """Initialize repository.

        Args:
            session_factory: Async session factory; defaults to the configured database.
        """
        self._session_factory = session_factory or async_session_factory

    async def load(self, number: OrderNo) -> Order:
        """Load an order with its lines."""
        async with self._session_factory() as session:
            model = await session.get(
                PurchaseOrderModel,
                str(number),
                options=[selectinload(PurchaseOrderModel.lines)],
            )
            if model is None:
                raise OrderNotFoundError(str(number))
            return self._to_domain(model)

    async def add(self, order: Order) -> None:
        """Insert a newly placed order."""
        async with self._session_factory() as session:
            model = self._to_model(order)
            model.lines = self._to_line_models(order)
            session.add(model)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise DuplicateOrderError(str(order.id)) from None
        logger.info("Order inserted", order_number=str(order.id), version=order.version)

    async def save(self, order: Order) -> None:
        """Update an order with a version compare-and-swap."""
        number = str(order.id)
        new_version = order.version + 1
        async with self._session_factory() as session:
            result = await session.execute(
                update(PurchaseOrderModel)
                .where(
                    PurchaseOrderModel.number == number,
                    PurchaseOrderModel.version == order.version,
                )
                .values(version=new_version, **self._column_values(order))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await session.rollback()
                actual = await session.scalar(
                    select(PurchaseOrderModel.version).where(PurchaseOrderModel.number == number)
                )
                if actual is None:
                    raise OrderNotFoundError(number)
                logger.warning(
                    "Order version conflict",
                    order_number=number,
                    expected_version=order.version,
                    actual_version=actual,
                )
                raise ConcurrentModificationError(number, order.version, actual)

            await session.execute(delete(OrderLineModel).where(OrderLineModel.order_number == number))
            session.add_all(self._to_line_models(order))
            await session.commit()

        order.version = new_version
        logger.info("Order updated", order_number=number, version=new_version)

    # -------------------------------------------------------------------------
    # Mapping
    # -------------------------------------------------------------------------

    @staticmethod
    def _column_values(order: Order) -> dict[str, object]:
        info = order.shipping_info
        return {
            "state": order.state.value,
            "orderer_id": str(order.orderer.member_id),
            "orderer_name": order.orderer.name,
            "total_amounts": order.total_amounts.amount,
            "receiver_name": info.receiver.name,
            "receiver_phone": info.receiver.phone,
            "shipping_zip_code": info.address.zip_code,
            "shipping_addr1": info.address.address1,
            "shipping_addr2": info.address.address2,
            "shipping_message": info.message,
        }

    def _to_model(self, order: Order) -> PurchaseOrderModel:
        return PurchaseOrderModel(
            number=str(order.id),
            version=order.version,
            order_date=order.created_at,
            **self._column_values(order),
        )

    @staticmethod
    def _to_line_models(order: Order) -> list[OrderLineModel]:
        return [
            OrderLineModel(
                order_number=str(order.id),
                line_idx=idx,
                product_id=str(line.product_id),
                price=line.price.amount,
                quantity=line.quantity,
                amounts=line.amounts.amount,
            )
            for idx, line in enumerate(order.order_lines)
        ]

    @staticmethod
    def _to_domain(model: PurchaseOrderModel) -> Order:
        return Order.restore(
            number=OrderNo(model.number),
            orderer=Orderer(member_id=MemberId(model.orderer_id), name=model.orderer_name),
            order_lines=[
                OrderLine(
                    product_id=ProductId(line.product_id),
                    price=Money(line.price),
                    quantity=line.quantity,
                )
                for line in model.lines
            ],
            shipping_info=ShippingInfo(
                receiver=Receiver(name=model.receiver_name, phone=model.receiver_phone),
                address=Address(
                    zip_code=model.shipping_zip_code,
                    address1=model.shipping_addr1,
                    address2=model.shipping_addr2 or "",
                ),
                message=model.shipping_message or "",
            ),
            state=OrderState(model.state),
            version=model.version,
            ordered_at=as_utc(model.order_date),
        )
