"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Self
from uuid import uuid4

from orderguard.domain.base import ValueObject
from orderguard.domain.exceptions import (
    InvalidMoneyError,
    InvalidValueError,
    MoneyOverflowError,
)

MONEY_MIN = -(2**63)
MONEY_MAX = 2**63 - 1


def _require_text(value: str | None, name: str) -> None:
    if not value or not value.strip():
        raise InvalidValueError(f"{name} cannot be empty", details={"field": name})


# ============================================================================
# Typed Identifiers
# ============================================================================


@dataclass(frozen=True)
class OrderNo(ValueObject):
    """Strongly-typed order number.

    Order numbers are assigned once at placement and never change.
    """

    number: str

    def __post_init__(self) -> None:
        """Validate order number."""
        _require_text(self.number, "order number")

    @classmethod
    def generate(cls) -> Self:
        """Generate a new order number.

        The number starts with the UTC placement time so that numbers sort
        roughly by age, followed by a random suffix.

        Returns:
            New OrderNo.
        """
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        return cls(number=f"{stamp}-{uuid4().hex[:8].upper()}")

    def __str__(self) -> str:
        return self.number


@dataclass(frozen=True)
class MemberId(ValueObject):
    """Identifier of the customer placing an order."""

    id: str

    def __post_init__(self) -> None:
        _require_text(self.id, "member id")

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class ProductId(ValueObject):
    """Identifier of an ordered product."""

    id: str

    def __post_init__(self) -> None:
        _require_text(self.id, "product id")

    def __str__(self) -> str:
        return self.id


# ============================================================================
# Money Value Object
# ============================================================================


@dataclass(frozen=True)
class Money(ValueObject):
    """Monetary amount in the smallest currency unit.

    Amounts are plain integers bounded to the signed 64-bit range, the
    width used when an order is stored. Any arithmetic result outside
    that range raises MoneyOverflowError instead of wrapping.

    Attributes:
        amount: Amount in minor units (e.g., won, cents).
    """

    amount: int

    def __post_init__(self) -> None:
        """Validate money amount."""
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise InvalidMoneyError(self.amount)
        if not MONEY_MIN <= self.amount <= MONEY_MAX:
            raise MoneyOverflowError(self.amount)

    @classmethod
    def zero(cls) -> Self:
        """Create zero money.

        Returns:
            Money with zero amount.
        """
        return cls(amount=0)

    @property
    def value(self) -> int:
        """Alias of amount."""
        return self.amount

    def multiply(self, factor: int) -> "Money":
        """Multiply money by an integer factor.

        Args:
            factor: Multiplier, usually a quantity.

        Returns:
            New Money with product.

        Raises:
            InvalidMoneyError: If factor is not an integer.
            MoneyOverflowError: If the product leaves the 64-bit range.
        """
        if isinstance(factor, bool) or not isinstance(factor, int):
            raise InvalidMoneyError(factor)
        return Money(amount=self.amount * factor)

    def __mul__(self, factor: int) -> "Money":
        return self.multiply(factor)

    def __rmul__(self, factor: int) -> "Money":
        return self.multiply(factor)

    def __add__(self, other: "Money") -> "Money":
        """Add two money amounts.

        Args:
            other: Money to add.

        Returns:
            New Money with sum.
        """
        if not isinstance(other, Money):
            return NotImplemented
        return Money(amount=self.amount + other.amount)

    def __str__(self) -> str:
        return str(self.amount)

    def is_zero(self) -> bool:
        return self.amount == 0


# ============================================================================
# Order Line
# ============================================================================


@dataclass(frozen=True)
class OrderLine(ValueObject):
    """A product, its unit price and the ordered quantity.

    Attributes:
        product_id: Ordered product.
        price: Price per unit at time of order.
        quantity: Ordered quantity, always positive.
    """

    product_id: ProductId
    price: Money
    quantity: int

    def __post_init__(self) -> None:
        """Validate order line."""
        if self.product_id is None:
            raise InvalidValueError("Order line requires a product", details={"field": "product_id"})
        if not isinstance(self.price, Money):
            raise InvalidValueError("Order line price must be Money", details={"field": "price"})
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise InvalidValueError(
                f"Invalid quantity {self.quantity}: Quantity must be positive",
                details={"field": "quantity", "quantity": self.quantity},
            )

    @property
    def amounts(self) -> Money:
        """Unit price multiplied by quantity."""
        return self.price.multiply(self.quantity)


# ============================================================================
# Orderer
# ============================================================================


@dataclass(frozen=True)
class Orderer(ValueObject):
    """Customer placing the order.

    Attributes:
        member_id: Reference to the customer.
        name: Contact name at time of order.
    """

    member_id: MemberId
    name: str

    def __post_init__(self) -> None:
        """Validate orderer."""
        if self.member_id is None:
            raise InvalidValueError("Orderer requires a member id", details={"field": "member_id"})
        _require_text(self.name, "orderer name")


# ============================================================================
# Shipping Info
# ============================================================================


@dataclass(frozen=True)
class Receiver(ValueObject):
    """Person receiving the shipment."""

    name: str
    phone: str

    def __post_init__(self) -> None:
        _require_text(self.name, "receiver name")
        _require_text(self.phone, "receiver phone")


@dataclass(frozen=True)
class Address(ValueObject):
    """Shipping address.

    Attributes:
        zip_code: Postal/ZIP code.
        address1: Primary address line.
        address2: Secondary address line (optional).
    """

    zip_code: str
    address1: str
    address2: str = ""

    def __post_init__(self) -> None:
        """Validate address fields."""
        _require_text(self.zip_code, "zip code")
        _require_text(self.address1, "address1")

    def format_single_line(self) -> str:
        """Format address as single line.

        Returns:
            Formatted address string.
        """
        parts = [self.address1]
        if self.address2:
            parts.append(self.address2)
        parts.append(self.zip_code)
        return ", ".join(parts)


@dataclass(frozen=True)
class ShippingInfo(ValueObject):
    """Where and to whom an order is shipped.

    Shipping info is replaced as a whole, never edited in place.

    Attributes:
        receiver: Receiving person.
        address: Delivery address.
        message: Optional delivery note.
    """

    receiver: Receiver
    address: Address
    message: str = ""

    def __post_init__(self) -> None:
        """Validate shipping info."""
        if self.receiver is None:
            raise InvalidValueError("Shipping info requires a receiver", details={"field": "receiver"})
        if self.address is None:
            raise InvalidValueError("Shipping info requires an address", details={"field": "address"})
