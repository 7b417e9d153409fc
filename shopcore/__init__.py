"""
shopcore — reservation accounting, order lifecycle and pricing for a storefront.

    from shopcore import pricing as P     # Totals, tax, shipping
    from shopcore import discounts as D   # Discount codes
    from shopcore import inventory as I   # Stock ledger
    from shopcore import orders as O      # Order state machine
    from shopcore import saga as S        # Compensated multi-step writes
"""

from shopcore import saga
from shopcore import pricing
from shopcore import discounts
from shopcore import inventory
from shopcore import orders
from shopcore import store
from shopcore.errors import ErrorKind, ShopError, StoreError, Errors
from shopcore._types import (
    Result,
    Ok,
    Error,
    Lazy,
    Clock,
)

__version__ = "0.1.0"

__all__ = (
    "saga",
    "pricing",
    "discounts",
    "inventory",
    "orders",
    "store",
    "ErrorKind",
    "ShopError",
    "StoreError",
    "Errors",
    "Result",
    "Ok",
    "Error",
    "Lazy",
    "Clock",
)
