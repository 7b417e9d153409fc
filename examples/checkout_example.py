"""
Checkout — quote, order, ship, refund over an in-memory store.

    python -m examples.checkout_example
"""

from kungfu import Ok, Error

from shopcore.config import ShopSettings
from shopcore.log import configure_logging
from shopcore.pricing import format_price
from shopcore.service import OrderOut, ShopService
from examples._infra import banner, demo_store, run

CART = [{"product_id": "kettle", "quantity": 1}, {"product_id": "beans", "quantity": 2}]


async def main() -> None:
    settings = ShopSettings(_env_file=None)
    configure_logging(settings)
    service = ShopService.build(demo_store(), settings)

    banner("Quote")
    match await service.quote({"customer_id": "alice", "items": CART, "discount_codes": ["WELCOME10"]}):
        case Ok(q):
            b = q.breakdown
            print(f"  subtotal  {format_price(b.subtotal)}")
            print(f"  loyalty  -{format_price(b.loyalty_discount)}")
            print(f"  tax       {format_price(b.tax)}")
            print(f"  shipping  {format_price(b.shipping)}")
            print(f"  payable   {format_price(q.payable)}")
        case Error(e):
            print(f"  ✗ {e}")

    banner("Create order")
    match await service.create_order({
        "customer_id": "alice",
        "items": CART,
        "shipping_address": {"street": "12 Harbour Rd", "city": "Portland", "state": "ME"},
        "payment_method": "card",
        "discount_codes": ["WELCOME10"],
    }):
        case Ok(order):
            print(f"  ✓ {order.id} total {format_price(order.total_amount)} codes {order.applied_codes}")
        case Error(e):
            print(f"  ✗ {e}")
            return

    banner("Oversell attempt")
    match await service.create_order({
        "customer_id": "bob",
        "items": [{"product_id": "kettle", "quantity": 5}],
        "shipping_address": {"street": "3 Elm St", "city": "Salem"},
        "payment_method": "card",
    }):
        case Ok(other):
            print(f"  ? unexpectedly created {other.id}")
        case Error(e):
            print(f"  ✗ {e.kind.value}: {e.message} {e.details}")

    banner("Fulfil and refund")
    for status in ("CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED"):
        match await service.update_order_status(order.id, status, tracking_number="1Z-DEMO"):
            case Ok(o):
                print(f"  → {o.status.value}")
            case Error(e):
                print(f"  ✗ {e}")
                return

    match await service.refund_order(order.id, "arrived dented"):
        case Ok(o):
            print(OrderOut.from_domain(o).model_dump_json(indent=2))
        case Error(e):
            print(f"  ✗ {e}")

    match await service.ledger.get("kettle"):
        case Ok(record):
            print(f"\n  kettle stock: {record.available_stock} available, {record.reserved_stock} reserved")
        case Error(e):
            print(f"  ✗ {e}")


if __name__ == "__main__":
    run(main)
