"""Tests for domain value objects."""

import pytest

from orderguard.domain import (
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
from orderguard.domain.exceptions import (
    InvalidMoneyError,
    InvalidValueError,
    MoneyOverflowError,
)
from orderguard.domain.value_objects import MONEY_MAX, MONEY_MIN


class TestMoney:
    """Tests for Money value object."""

    def test_create(self) -> None:
        """Money wraps an integer amount."""
        money = Money(1000)
        assert money.amount == 1000
        assert money.value == 1000

    def test_zero(self) -> None:
        """Zero money can be created."""
        assert Money.zero().is_zero()
        assert Money.zero() == Money(0)

    def test_multiply(self) -> None:
        """Multiply returns a new Money with the product."""
        assert Money(1000).multiply(2) == Money(2000)
        assert Money(500) * 3 == Money(1500)
        assert 3 * Money(500) == Money(1500)

    def test_multiply_by_zero(self) -> None:
        assert Money(1000).multiply(0).is_zero()

    def test_addition(self) -> None:
        """Money can be added."""
        assert Money(2000) + Money(500) == Money(2500)

    def test_equality_by_value(self) -> None:
        """Money compares by amount, not identity."""
        assert Money(700) == Money(700)
        assert hash(Money(700)) == hash(Money(700))
        assert Money(700) != Money(701)

    def test_rejects_non_integer_amount(self) -> None:
        """Floats and bools are not money amounts."""
        with pytest.raises(InvalidMoneyError):
            Money(10.5)  # type: ignore[arg-type]
        with pytest.raises(InvalidMoneyError):
            Money(True)  # type: ignore[arg-type]

    def test_rejects_non_integer_factor(self) -> None:
        with pytest.raises(InvalidMoneyError):
            Money(100).multiply(1.5)  # type: ignore[arg-type]

    def test_bounds_are_accepted(self) -> None:
        """The full signed 64-bit range is representable."""
        assert Money(MONEY_MAX).amount == 2**63 - 1
        assert Money(MONEY_MIN).amount == -(2**63)

    def test_multiply_overflow_raises(self) -> None:
        """A product outside the 64-bit range raises instead of wrapping."""
        with pytest.raises(MoneyOverflowError) as exc_info:
            Money(MONEY_MAX).multiply(2)
        assert exc_info.value.details["amount"] == MONEY_MAX * 2

    def test_addition_overflow_raises(self) -> None:
        with pytest.raises(MoneyOverflowError):
            Money(MONEY_MAX) + Money(1)

    def test_overflow_is_an_overflow_error(self) -> None:
        """Callers catching the builtin error still see money overflow."""
        with pytest.raises(OverflowError):
            Money(MONEY_MIN - 1)

    def test_immutable(self) -> None:
        money = Money(100)
        with pytest.raises(AttributeError):
            money.amount = 200  # type: ignore[misc]


class TestIdentifiers:
    """Tests for typed identifiers."""

    def test_order_no_str(self) -> None:
        assert str(OrderNo("ORD-10")) == "ORD-10"

    def test_order_no_generate_is_unique(self) -> None:
        """Generated order numbers do not repeat."""
        numbers = {OrderNo.generate() for _ in range(50)}
        assert len(numbers) == 50

    @pytest.mark.parametrize("cls", [OrderNo, MemberId, ProductId])
    def test_blank_identifier_raises(self, cls: type) -> None:
        """Blank identifiers are rejected."""
        with pytest.raises(InvalidValueError):
            cls("   ")

    def test_invalid_value_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            MemberId("")


class TestOrderLine:
    """Tests for OrderLine value object."""

    def test_amounts(self) -> None:
        """Line amount is price times quantity."""
        line = OrderLine(ProductId("P-1"), Money(1000), 2)
        assert line.amounts == Money(2000)

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_raises(self, quantity: int) -> None:
        """Quantity must be positive."""
        with pytest.raises(InvalidValueError) as exc_info:
            OrderLine(ProductId("P-1"), Money(1000), quantity)
        assert exc_info.value.details["quantity"] == quantity

    def test_price_must_be_money(self) -> None:
        with pytest.raises(InvalidValueError):
            OrderLine(ProductId("P-1"), 1000, 1)  # type: ignore[arg-type]


class TestShippingInfo:
    """Tests for shipping value objects."""

    def test_address_single_line(self) -> None:
        """Address formats to a single line."""
        address = Address(zip_code="06236", address1="123 Teheran-ro", address2="5F")
        assert address.format_single_line() == "123 Teheran-ro, 5F, 06236"

    def test_address_without_second_line(self) -> None:
        address = Address(zip_code="06236", address1="123 Teheran-ro")
        assert address.format_single_line() == "123 Teheran-ro, 06236"

    def test_missing_zip_code_raises(self) -> None:
        with pytest.raises(InvalidValueError):
            Address(zip_code="", address1="123 Teheran-ro")

    def test_receiver_requires_phone(self) -> None:
        with pytest.raises(InvalidValueError):
            Receiver(name="Kim", phone="")

    def test_shipping_info_requires_address(self) -> None:
        """Shipping info cannot be built without an address."""
        with pytest.raises(InvalidValueError):
            ShippingInfo(receiver=Receiver("Kim", "010-0000-0000"), address=None)  # type: ignore[arg-type]

    def test_shipping_info_equality(self) -> None:
        """Shipping info compares by value."""
        a = ShippingInfo(Receiver("Kim", "010"), Address("06236", "Teheran-ro"), "Leave at door")
        b = ShippingInfo(Receiver("Kim", "010"), Address("06236", "Teheran-ro"), "Leave at door")
        assert a == b


class TestOrderer:
    def test_blank_name_raises(self) -> None:
        with pytest.raises(InvalidValueError):
            Orderer(member_id=MemberId("M-1"), name=" ")
