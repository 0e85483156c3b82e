from datetime import date
from decimal import Decimal

import pytest

from backoffice.constants.inward_challan import BillStatus
from backoffice.core.exceptions import ValidationError
from backoffice.schemas.inventory.inward_challan_schemas import InwardBillUpdateSchema, InwardPaymentCreateSchema
from backoffice.services.inventory.inward_challan_service import (
    compute_due_amount,
    get_inward_challan,
    record_inward_payment,
    update_inward_bill,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "bill, paid, due",
    [
        ("3000", "0", "3000.00"),
        ("3000", "1000.50", "1999.50"),
        ("3000", "3000", "0.00"),
        ("100", "150", "0"),
    ],
)
def test_compute_due_amount(bill, paid, due):
    assert compute_due_amount(Decimal(bill), Decimal(paid)) == Decimal(due)


@pytest.fixture
async def received_challan(seed, make_purchase_order, make_inward_challan):
    po = await make_purchase_order([(seed.item_id, 100, 50)])
    return await make_inward_challan(po.id, [{"purchase_order_line_id": po.lines[0].id, "receiving_qty": 60}])


@pytest.mark.integration
async def test_new_challan_is_unpaid_for_its_line_total(received_challan):
    assert received_challan.bill_amount == Decimal("3000")
    assert received_challan.due_amount == Decimal("3000")
    assert received_challan.total_paid_amount == Decimal("0")
    assert received_challan.status == BillStatus.UNPAID


@pytest.mark.integration
async def test_bill_due_date_defaults_from_due_days(session, seed, received_challan):
    payload = InwardBillUpdateSchema(
        bill_no=" INV-778 ",
        bill_date=date(2025, 1, 20),
        bill_amount=Decimal("3100"),
        due_days=30,
    )
    billed = await update_inward_bill(session, received_challan.id, payload, seed.users.accountant)

    assert billed.bill_no == "INV-778"
    assert billed.due_date == date(2025, 2, 19)
    assert billed.due_amount == Decimal("3100")
    # billing does not touch the stock side
    assert billed.version == received_challan.version


@pytest.mark.integration
async def test_payments_settle_the_bill(session, seed, received_challan):
    challan_id = received_challan.id
    accountant = seed.users.accountant

    partial = await record_inward_payment(
        session, challan_id, InwardPaymentCreateSchema(amount=Decimal("1000")), accountant
    )
    assert partial.status == BillStatus.PARTIALLY_PAID
    assert partial.due_amount == Decimal("2000")

    with pytest.raises(ValidationError) as exc:
        await record_inward_payment(session, challan_id, InwardPaymentCreateSchema(amount=Decimal("2500")), accountant)
    assert Decimal(exc.value.details["due_amount"]) == Decimal("2000")

    unchanged = await get_inward_challan(session, challan_id, include_closing_stock=False)
    assert unchanged.total_paid_amount == Decimal("1000")

    paid = await record_inward_payment(session, challan_id, InwardPaymentCreateSchema(amount=Decimal("2000")), accountant)
    assert paid.status == BillStatus.PAID
    assert paid.due_amount == Decimal("0")
    assert paid.total_paid_amount == Decimal("3000")
