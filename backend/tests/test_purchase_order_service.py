# Overview: Pytest coverage for the purchase order workflow and receiving.

"""
Purchase Order Workflow Tests

- Creation totals and numbering
- Transition table (total, terminal states, same-status no-op)
- Edit window (DRAFT / PENDING only)
- Receiving: full, partial, clamped, idempotent, validation before mutation
- Delete and cancel rules
"""

import re

import pytest

from stockflow.errors import (
    ConflictError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from stockflow.models import AuditLog, PurchaseOrder, PurchaseOrderItem, StockItem
from stockflow.services import purchase_order_service


def _create(identity, supplier, *lines, **extra):
    payload = {
        "supplier_id": supplier.id,
        "items": [
            {"product_id": product.id, "quantity": qty, "unit_price_cents": price}
            for product, qty, price in lines
        ],
    }
    payload.update(extra)
    return purchase_order_service.create_purchase_order(payload, identity=identity)


def _ordered(identity, supplier, *lines):
    po = _create(identity, supplier, *lines)
    return purchase_order_service.update_purchase_order(po.id, {"status": "ORDERED"}, identity=identity)


def _stock_qty(db_session, product, warehouse):
    stock = db_session.query(StockItem).filter_by(product_id=product.id, warehouse_id=warehouse.id).first()
    return stock.quantity if stock else 0


class TestCreatePurchaseOrder:

    def test_totals_and_defaults(self, db_session, identity, supplier, product):
        po = _create(identity, supplier, (product, 10, 500))

        assert po.status == "DRAFT"
        assert po.subtotal_cents == 5000
        assert po.total_amount_cents == 5000
        assert po.items[0].total_price_cents == 5000
        assert po.items[0].received_qty == 0
        assert re.fullmatch(r"PO-\d{4}-[0-9A-Z]{6}", po.order_number)

    def test_total_includes_tax_and_shipping(self, db_session, identity, supplier, product, priced_product):
        po = _create(
            identity, supplier, (product, 2, 500), (priced_product, 1, 9000),
            tax_amount_cents=250, shipping_amount_cents=1000,
        )
        assert po.subtotal_cents == 10000
        assert po.total_amount_cents == 11250

    def test_audited(self, db_session, identity, supplier, product):
        po = _create(identity, supplier, (product, 1, 100))
        entry = db_session.query(AuditLog).filter_by(entity_type="PurchaseOrder", entity_id=str(po.id)).one()
        assert entry.action == "CREATE"

    def test_unknown_supplier(self, db_session, identity, product):
        with pytest.raises(NotFoundError):
            purchase_order_service.create_purchase_order(
                {"supplier_id": 99999, "items": [{"product_id": product.id, "quantity": 1, "unit_price_cents": 1}]},
                identity=identity,
            )

    def test_requires_items(self, db_session, identity, supplier):
        with pytest.raises(ValidationError):
            purchase_order_service.create_purchase_order({"supplier_id": supplier.id, "items": []}, identity=identity)

    def test_rejects_zero_quantity(self, db_session, identity, supplier, product):
        with pytest.raises(ValidationError):
            _create(identity, supplier, (product, 0, 100))

    def test_rejects_negative_price(self, db_session, identity, supplier, product):
        with pytest.raises(ValidationError):
            _create(identity, supplier, (product, 1, -5))

    def test_unknown_product(self, db_session, identity, supplier):
        with pytest.raises(NotFoundError):
            purchase_order_service.create_purchase_order(
                {"supplier_id": supplier.id, "items": [{"product_id": 99999, "quantity": 1, "unit_price_cents": 1}]},
                identity=identity,
            )

    def test_duplicate_order_number(self, db_session, identity, supplier, product):
        _create(identity, supplier, (product, 1, 100), order_number="PO-CUSTOM-1")
        with pytest.raises(ConflictError):
            _create(identity, supplier, (product, 1, 100), order_number="PO-CUSTOM-1")


class TestTransitions:

    @pytest.mark.parametrize("current,target,allowed", [
        ("DRAFT", "PENDING", True),
        ("DRAFT", "ORDERED", True),
        ("DRAFT", "RECEIVED", False),
        ("PENDING", "DRAFT", True),
        ("ORDERED", "PARTIAL", True),
        ("ORDERED", "DRAFT", False),
        ("PARTIAL", "ORDERED", False),
        ("RECEIVED", "CANCELLED", False),
        ("CANCELLED", "DRAFT", False),
        ("ORDERED", "ORDERED", True),
    ])
    def test_table(self, current, target, allowed):
        assert purchase_order_service.can_transition(current, target) is allowed

    def test_every_status_has_an_entry(self):
        assert set(purchase_order_service.TRANSITIONS) == set(purchase_order_service.STATUSES)

    def test_ordered_stamps_ordered_at(self, db_session, identity, supplier, product):
        po = _ordered(identity, supplier, (product, 1, 100))
        assert po.status == "ORDERED"
        assert po.ordered_at is not None

    def test_illegal_transition_rejected(self, db_session, identity, supplier, product):
        po = _create(identity, supplier, (product, 1, 100))
        with pytest.raises(InvalidTransitionError) as exc:
            purchase_order_service.update_purchase_order(po.id, {"status": "RECEIVED"}, identity=identity)
        assert "DRAFT" in str(exc.value)
        assert "RECEIVED" in str(exc.value)

    def test_unknown_status_rejected(self, db_session, identity, supplier, product):
        po = _create(identity, supplier, (product, 1, 100))
        with pytest.raises(ValidationError):
            purchase_order_service.update_purchase_order(po.id, {"status": "LOST"}, identity=identity)


class TestUpdatePurchaseOrder:

    def test_replace_items_recomputes_totals(self, db_session, identity, supplier, product, priced_product):
        po = _create(identity, supplier, (product, 10, 500), shipping_amount_cents=100)
        po = purchase_order_service.update_purchase_order(po.id, {
            "items": [{"product_id": priced_product.id, "quantity": 3, "unit_price_cents": 2000}],
        }, identity=identity)

        assert len(po.items) == 1
        assert po.items[0].product_id == priced_product.id
        assert po.subtotal_cents == 6000
        assert po.total_amount_cents == 6100
        assert db_session.query(PurchaseOrderItem).filter_by(purchase_order_id=po.id).count() == 1

    def test_shipping_change_recomputes_total(self, db_session, identity, supplier, product):
        po = _create(identity, supplier, (product, 10, 500))
        po = purchase_order_service.update_purchase_order(po.id, {"shipping_amount_cents": 700}, identity=identity)
        assert po.total_amount_cents == 5700

    def test_not_editable_once_ordered(self, db_session, identity, supplier, product):
        po = _ordered(identity, supplier, (product, 1, 100))
        with pytest.raises(InvalidStateError) as exc:
            purchase_order_service.update_purchase_order(po.id, {"notes": "late"}, identity=identity)
        assert "ORDERED" in str(exc.value)


class TestReceive:

    def test_receive_everything(self, db_session, identity, supplier, product, warehouse):
        po = _ordered(identity, supplier, (product, 10, 500))
        po = purchase_order_service.receive_purchase_order(po.id, {"warehouse_id": warehouse.id}, identity=identity)

        assert po.status == "RECEIVED"
        assert po.received_at is not None
        assert po.items[0].received_qty == 10
        stock = db_session.query(StockItem).filter_by(product_id=product.id, warehouse_id=warehouse.id).one()
        assert stock.quantity == 10
        assert stock.available_qty == 10
        assert stock.reserved_qty == 0

    def test_receive_adds_to_existing_stock_and_keeps_reservation(
        self, db_session, identity, supplier, product, warehouse
    ):
        db_session.add(StockItem(product_id=product.id, warehouse_id=warehouse.id,
                                 quantity=4, reserved_qty=3, available_qty=1))
        db_session.commit()

        po = _ordered(identity, supplier, (product, 6, 500))
        purchase_order_service.receive_purchase_order(po.id, {"warehouse_id": warehouse.id}, identity=identity)

        stock = db_session.query(StockItem).filter_by(product_id=product.id, warehouse_id=warehouse.id).one()
        assert stock.quantity == 10
        assert stock.reserved_qty == 3
        assert stock.available_qty == 7

    def test_partial_then_complete(self, db_session, identity, supplier, product, priced_product, warehouse):
        po = _ordered(identity, supplier, (product, 10, 500), (priced_product, 2, 9000))
        first, second = po.items

        po = purchase_order_service.receive_purchase_order(po.id, {
            "warehouse_id": warehouse.id,
            "items": [{"item_id": first.id, "received_qty": 4}],
        }, identity=identity)
        assert po.status == "PARTIAL"
        assert po.received_at is None
        assert _stock_qty(db_session, product, warehouse) == 4

        po = purchase_order_service.receive_purchase_order(po.id, {"warehouse_id": warehouse.id}, identity=identity)
        assert po.status == "RECEIVED"
        assert _stock_qty(db_session, product, warehouse) == 10
        assert _stock_qty(db_session, priced_product, warehouse) == 2

    def test_over_receipt_is_clamped(self, db_session, identity, supplier, product, priced_product, warehouse):
        po = _ordered(identity, supplier, (product, 5, 500), (priced_product, 1, 9000))
        line = po.items[0]
        po = purchase_order_service.receive_purchase_order(po.id, {
            "warehouse_id": warehouse.id,
            "items": [{"item_id": line.id, "received_qty": 50}],
        }, identity=identity)

        assert po.items[0].received_qty == 5
        assert po.status == "PARTIAL"
        assert _stock_qty(db_session, product, warehouse) == 5

    def test_repeat_receipt_of_full_line_is_noop(self, db_session, identity, supplier, product, priced_product, warehouse):
        po = _ordered(identity, supplier, (product, 5, 500), (priced_product, 1, 9000))
        line = po.items[0]
        body = {"warehouse_id": warehouse.id, "items": [{"item_id": line.id, "received_qty": 5}]}

        purchase_order_service.receive_purchase_order(po.id, body, identity=identity)
        po = purchase_order_service.receive_purchase_order(po.id, body, identity=identity)

        assert po.status == "PARTIAL"
        assert po.items[0].received_qty == 5
        assert _stock_qty(db_session, product, warehouse) == 5

    def test_received_order_cannot_be_received_again(self, db_session, identity, supplier, product, warehouse):
        po = _ordered(identity, supplier, (product, 5, 500))
        purchase_order_service.receive_purchase_order(po.id, {"warehouse_id": warehouse.id}, identity=identity)
        with pytest.raises(InvalidStateError):
            purchase_order_service.receive_purchase_order(po.id, {"warehouse_id": warehouse.id}, identity=identity)
        assert _stock_qty(db_session, product, warehouse) == 5

    def test_draft_cannot_be_received(self, db_session, identity, supplier, product, warehouse):
        po = _create(identity, supplier, (product, 5, 500))
        with pytest.raises(InvalidStateError):
            purchase_order_service.receive_purchase_order(po.id, {"warehouse_id": warehouse.id}, identity=identity)

    def test_warehouse_required(self, db_session, identity, supplier, product):
        po = _ordered(identity, supplier, (product, 5, 500))
        with pytest.raises(ValidationError):
            purchase_order_service.receive_purchase_order(po.id, {}, identity=identity)

    def test_unknown_warehouse(self, db_session, identity, supplier, product):
        po = _ordered(identity, supplier, (product, 5, 500))
        with pytest.raises(NotFoundError):
            purchase_order_service.receive_purchase_order(po.id, {"warehouse_id": 99999}, identity=identity)

    def test_unknown_line_rejected_before_any_change(self, db_session, identity, supplier, product, warehouse):
        po = _ordered(identity, supplier, (product, 5, 500))
        line_id = po.items[0].id
        with pytest.raises(ValidationError):
            purchase_order_service.receive_purchase_order(po.id, {
                "warehouse_id": warehouse.id,
                "items": [
                    {"item_id": line_id, "received_qty": 2},
                    {"item_id": 99999, "received_qty": 1},
                ],
            }, identity=identity)

        po = db_session.get(PurchaseOrder, po.id)
        assert po.status == "ORDERED"
        assert po.items[0].received_qty == 0
        assert _stock_qty(db_session, product, warehouse) == 0

    def test_failure_mid_receipt_rolls_back_every_line(
        self, db_session, identity, supplier, product, priced_product, warehouse, monkeypatch
    ):
        po = _ordered(identity, supplier, (product, 5, 500), (priced_product, 2, 9000))
        real_increment = purchase_order_service._increment_stock
        calls = []

        def failing_increment(product_id, warehouse_id, qty):
            calls.append(product_id)
            if len(calls) == 2:
                raise RuntimeError("stock write failed")
            return real_increment(product_id, warehouse_id, qty)

        monkeypatch.setattr(purchase_order_service, "_increment_stock", failing_increment)
        with pytest.raises(RuntimeError):
            purchase_order_service.receive_purchase_order(po.id, {"warehouse_id": warehouse.id}, identity=identity)

        assert len(calls) == 2
        assert db_session.query(StockItem).count() == 0
        po = db_session.get(PurchaseOrder, po.id)
        assert po.status == "ORDERED"
        assert po.received_at is None
        assert all(line.received_qty == 0 for line in po.items)

    def test_negative_received_qty_rejected(self, db_session, identity, supplier, product, warehouse):
        po = _ordered(identity, supplier, (product, 5, 500))
        with pytest.raises(ValidationError):
            purchase_order_service.receive_purchase_order(po.id, {
                "warehouse_id": warehouse.id,
                "items": [{"item_id": po.items[0].id, "received_qty": -1}],
            }, identity=identity)


class TestCancelAndDelete:

    def test_cancel_ordered(self, db_session, identity, supplier, product):
        po = _ordered(identity, supplier, (product, 1, 100))
        po = purchase_order_service.cancel_purchase_order(po.id, identity=identity)
        assert po.status == "CANCELLED"
        assert po.cancelled_at is not None

    def test_cancel_received_rejected(self, db_session, identity, supplier, product, warehouse):
        po = _ordered(identity, supplier, (product, 1, 100))
        purchase_order_service.receive_purchase_order(po.id, {"warehouse_id": warehouse.id}, identity=identity)
        with pytest.raises(InvalidTransitionError):
            purchase_order_service.cancel_purchase_order(po.id, identity=identity)

    def test_delete_draft_cascades_items(self, db_session, identity, supplier, product):
        po = _create(identity, supplier, (product, 1, 100))
        po_id = po.id
        result = purchase_order_service.delete_purchase_order(po_id, identity=identity)

        assert result == {"id": po_id, "deleted": True, "soft_deleted": False}
        assert db_session.get(PurchaseOrder, po_id) is None
        assert db_session.query(PurchaseOrderItem).filter_by(purchase_order_id=po_id).count() == 0

    def test_delete_non_draft_rejected(self, db_session, identity, supplier, product):
        po = _ordered(identity, supplier, (product, 1, 100))
        with pytest.raises(InvalidStateError):
            purchase_order_service.delete_purchase_order(po.id, identity=identity)
