"""Tests for order repositories."""

import asyncio

import pytest
from sqlalchemy import select

from orderguard.domain import (
    Address,
    MemberId,
    Money,
    Order,
    OrderLine,
    OrderNo,
    Orderer,
    OrderState,
    ProductId,
    Receiver,
    ShippingInfo,
)
from orderguard.domain.exceptions import (
    ConcurrentModificationError,
    DuplicateOrderError,
    OrderNotFoundError,
)
from orderguard.infrastructure.models import OrderLineModel, PurchaseOrderModel
from orderguard.infrastructure.order_repository import (
    InMemoryOrderRepository,
    SqlAlchemyOrderRepository,
)


def make_order(number: str = "ORD-10") -> Order:
    """Place a test order totalling 2500."""
    return Order.place(
        number=OrderNo(number),
        orderer=Orderer(member_id=MemberId("M-1"), name="Kim"),
        order_lines=[
            OrderLine(ProductId("P-1"), Money(1000), 2),
            OrderLine(ProductId("P-2"), Money(500), 1),
        ],
        shipping_info=ShippingInfo(
            receiver=Receiver(name="Kim", phone="010-1234-5678"),
            address=Address(zip_code="06236", address1="123 Teheran-ro", address2="5F"),
            message="Leave at the door",
        ),
    )


@pytest.fixture(params=["memory", "sqlalchemy"])
def repository(request, session_factory):
    """Each test runs against both repository implementations."""
    if request.param == "memory":
        return InMemoryOrderRepository()
    return SqlAlchemyOrderRepository(session_factory)


class TestOrderRepositoryContract:
    """Behavior shared by every repository."""

    @pytest.mark.asyncio
    async def test_add_and_load(self, repository) -> None:
        """A stored order loads back with the same content."""
        order = make_order()
        await repository.add(order)

        loaded = await repository.load(OrderNo("ORD-10"))

        assert loaded == order
        assert loaded is not order
        assert loaded.version == 1
        assert loaded.state == OrderState.PAYMENT_WAITING
        assert loaded.total_amounts == Money(2500)
        assert loaded.order_lines == order.order_lines
        assert loaded.shipping_info == order.shipping_info
        assert loaded.orderer == order.orderer
        assert loaded.collect_events() == []

    @pytest.mark.asyncio
    async def test_load_missing(self, repository) -> None:
        with pytest.raises(OrderNotFoundError):
            await repository.load(OrderNo("NOPE"))

    @pytest.mark.asyncio
    async def test_exists(self, repository) -> None:
        await repository.add(make_order())
        assert await repository.exists(OrderNo("ORD-10"))
        assert not await repository.exists(OrderNo("NOPE"))

    @pytest.mark.asyncio
    async def test_add_duplicate(self, repository) -> None:
        await repository.add(make_order())
        with pytest.raises(DuplicateOrderError):
            await repository.add(make_order())

    @pytest.mark.asyncio
    async def test_save_bumps_version(self, repository) -> None:
        """A successful save advances stored and in-hand versions together."""
        await repository.add(make_order())
        order = await repository.load(OrderNo("ORD-10"))
        order.start_shipping()

        await repository.save(order)

        assert order.version == 2
        stored = await repository.load(OrderNo("ORD-10"))
        assert stored.version == 2
        assert stored.state == OrderState.SHIPPED

    @pytest.mark.asyncio
    async def test_save_persists_shipping_change(self, repository) -> None:
        await repository.add(make_order())
        order = await repository.load(OrderNo("ORD-10"))
        new_info = ShippingInfo(
            receiver=Receiver(name="Lee", phone="010-9999-0000"),
            address=Address(zip_code="04524", address1="1 Sejong-daero"),
        )
        order.change_shipping_info(new_info)

        await repository.save(order)

        assert (await repository.load(OrderNo("ORD-10"))).shipping_info == new_info

    @pytest.mark.asyncio
    async def test_stale_save_raises(self, repository) -> None:
        """The second writer of the same version loses."""
        await repository.add(make_order())
        first = await repository.load(OrderNo("ORD-10"))
        second = await repository.load(OrderNo("ORD-10"))

        first.cancel()
        await repository.save(first)
        second.start_shipping()

        with pytest.raises(ConcurrentModificationError) as exc_info:
            await repository.save(second)
        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2
        assert second.version == 1

        stored = await repository.load(OrderNo("ORD-10"))
        assert stored.state == OrderState.CANCELED

    @pytest.mark.asyncio
    async def test_save_unknown_order(self, repository) -> None:
        with pytest.raises(OrderNotFoundError):
            await repository.save(make_order("NOPE"))

    @pytest.mark.asyncio
    async def test_concurrent_saves_have_one_winner(self, repository) -> None:
        """Simultaneous writers of one version: exactly one succeeds."""
        await repository.add(make_order())
        orders = [await repository.load(OrderNo("ORD-10")) for _ in range(5)]
        for order in orders:
            order.complete_payment()

        results = await asyncio.gather(
            *(repository.save(order) for order in orders),
            return_exceptions=True,
        )

        assert sum(1 for r in results if r is None) == 1
        assert sum(1 for r in results if isinstance(r, ConcurrentModificationError)) == 4
        assert (await repository.load(OrderNo("ORD-10"))).version == 2


class TestInMemoryOrderRepository:
    @pytest.mark.asyncio
    async def test_stored_copy_is_isolated(self) -> None:
        """Mutating a loaded order does not touch the stored one."""
        repository = InMemoryOrderRepository()
        await repository.add(make_order())

        loaded = await repository.load(OrderNo("ORD-10"))
        loaded.cancel()

        assert (await repository.load(OrderNo("ORD-10"))).state == OrderState.PAYMENT_WAITING
        assert repository.count() == 1


class TestSqlAlchemyOrderRepository:
    """Tests for the table layout."""

    @pytest.mark.asyncio
    async def test_rows(self, session_factory) -> None:
        repository = SqlAlchemyOrderRepository(session_factory)
        await repository.add(make_order())

        async with session_factory() as session:
            order_row = await session.get(PurchaseOrderModel, "ORD-10")
            lines = (
                await session.scalars(
                    select(OrderLineModel)
                    .where(OrderLineModel.order_number == "ORD-10")
                    .order_by(OrderLineModel.line_idx)
                )
            ).all()

        assert order_row.to_dict()["total_amounts"] == 2500
        assert order_row.state == "payment_waiting"
        assert order_row.shipping_addr2 == "5F"
        assert [(line.line_idx, line.product_id, line.amounts) for line in lines] == [
            (0, "P-1", 2000),
            (1, "P-2", 500),
        ]

    @pytest.mark.asyncio
    async def test_order_date_is_utc(self, session_factory) -> None:
        repository = SqlAlchemyOrderRepository(session_factory)
        order = make_order()
        await repository.add(order)

        loaded = await repository.load(OrderNo("ORD-10"))

        assert loaded.order_date.tzinfo is not None
        assert loaded.order_date == order.order_date
