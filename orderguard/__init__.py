"""orderguard: order aggregate with pessimistic edit locks and optimistic versioning."""

__version__ = "0.1.0"
