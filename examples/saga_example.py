"""
Saga — reserve stock, then charge; a declined charge releases the stock.

    python -m examples.saga_example
"""

from kungfu import Ok, Error

from shopcore import saga as S
from shopcore.errors import Errors
from shopcore.inventory import InventoryLedger, MovementMeta
from examples._infra import banner, demo_store, run


# Mock payment gateway
async def charge(amount: str) -> str:
    print(f"  ✗ Charge {amount}")
    raise ValueError("card declined")


async def refund(charge_id: str) -> None:
    print(f"  ← Refund {charge_id}")


async def main() -> None:
    banner("Saga: reserve + charge")

    ledger = InventoryLedger(demo_store())
    meta = MovementMeta(reason="Checkout", reference="CHK-1")

    saga = (
        S.from_result(
            lambda: ledger.reserve("mug", 2, meta),
            compensate=lambda _record: ledger.release("mug", 2, meta),
            name="reserve-mug",
        )
        .then(lambda _: S.from_async(
            lambda: charge("$25.00"),
            on_error=lambda e: Errors.invalid_input(f"Payment failed: {e}"),
            compensate=refund,
            name="charge",
        ))
    )

    print("\nExecuting saga...")
    match await S.run(saga):
        case Ok(r):
            print(f"\n✓ Charged: {r.value}")
        case Error(e):
            print(f"\n✗ Failed: {e.error}")
            print(f"  Rolled back: {e.rollback_complete}")

    match await ledger.get("mug"):
        case Ok(record):
            print(f"  mug stock: {record.available_stock} available, {record.reserved_stock} reserved")
        case Error(e):
            print(f"  ✗ {e}")


if __name__ == "__main__":
    run(main)
