# Overview: Pytest coverage for the stock ledger service.

"""
Stock Ledger Tests

Covers the three write modes of set_stock, the reserved/available
invariants, count stamping, audit attribution, bulk counts and listing.
"""

import pytest

from stockflow.errors import NotFoundError, ValidationError
from stockflow.models import AuditLog, StockItem
from stockflow.services import stock_service


def _stock(db_session, product, warehouse):
    return db_session.query(StockItem).filter_by(product_id=product.id, warehouse_id=warehouse.id).first()


def _assert_invariants(stock):
    assert stock.quantity >= 0
    assert stock.reserved_qty >= 0
    assert stock.reserved_qty <= stock.quantity
    assert stock.available_qty == stock.quantity - stock.reserved_qty


class TestGetStock:

    def test_missing_pair_returns_zero_record(self, db_session, product, warehouse):
        data = stock_service.get_stock(product.id, warehouse.id)
        assert data["id"] is None
        assert data["quantity"] == 0
        assert data["reserved_qty"] == 0
        assert data["available_qty"] == 0

    def test_existing_pair(self, db_session, product, warehouse, identity):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 12}, identity=identity)
        data = stock_service.get_stock(product.id, warehouse.id)
        assert data["quantity"] == 12
        assert data["available_qty"] == 12


class TestSetStock:

    def test_absolute_creates_row(self, db_session, product, warehouse, identity):
        stock = stock_service.set_stock(
            product.id, warehouse.id, {"quantity": 20, "reserved_qty": 5}, identity=identity
        )
        assert stock.quantity == 20
        assert stock.reserved_qty == 5
        assert stock.available_qty == 15
        _assert_invariants(stock)

    def test_absolute_negative_clamps_to_zero(self, db_session, product, warehouse, identity):
        stock = stock_service.set_stock(product.id, warehouse.id, {"quantity": -4}, identity=identity)
        assert stock.quantity == 0
        assert stock.available_qty == 0

    def test_relative_adjustment(self, db_session, product, warehouse, identity):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 10}, identity=identity)
        stock = stock_service.set_stock(product.id, warehouse.id, {"adjustment": -3}, identity=identity)
        assert stock.quantity == 7
        assert stock.available_qty == 7

    def test_adjustment_below_zero_clamps(self, db_session, product, warehouse, identity):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 3}, identity=identity)
        stock = stock_service.set_stock(product.id, warehouse.id, {"adjustment": -10}, identity=identity)
        assert stock.quantity == 0
        _assert_invariants(stock)

    def test_adjustment_keeps_existing_reservation(self, db_session, product, warehouse, identity):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 10, "reserved_qty": 4}, identity=identity)
        stock = stock_service.set_stock(product.id, warehouse.id, {"adjustment": 2}, identity=identity)
        assert stock.quantity == 12
        assert stock.reserved_qty == 4
        assert stock.available_qty == 8

    def test_adjustment_below_reservation_rejected(self, db_session, product, warehouse, identity):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 10, "reserved_qty": 8}, identity=identity)
        with pytest.raises(ValidationError):
            stock_service.set_stock(product.id, warehouse.id, {"adjustment": -5}, identity=identity)
        stock = _stock(db_session, product, warehouse)
        assert stock.quantity == 10
        assert stock.reserved_qty == 8

    def test_reserved_only_update(self, db_session, product, warehouse, identity):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 10}, identity=identity)
        stock = stock_service.set_stock(product.id, warehouse.id, {"reserved_qty": 6}, identity=identity)
        assert stock.quantity == 10
        assert stock.reserved_qty == 6
        assert stock.available_qty == 4

    def test_reserved_exceeding_quantity_rejected(self, db_session, product, warehouse, identity):
        """Existing quantity 5, reserve 10 without changing quantity."""
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 5}, identity=identity)
        with pytest.raises(ValidationError):
            stock_service.set_stock(product.id, warehouse.id, {"reserved_qty": 10}, identity=identity)
        stock = _stock(db_session, product, warehouse)
        assert stock.quantity == 5
        assert stock.reserved_qty == 0

    def test_negative_reserved_rejected(self, db_session, product, warehouse, identity):
        with pytest.raises(ValidationError):
            stock_service.set_stock(product.id, warehouse.id, {"quantity": 5, "reserved_qty": -1}, identity=identity)

    def test_empty_body_rejected(self, db_session, product, warehouse, identity):
        with pytest.raises(ValidationError):
            stock_service.set_stock(product.id, warehouse.id, {}, identity=identity)

    def test_quantity_and_adjustment_together_rejected(self, db_session, product, warehouse, identity):
        with pytest.raises(ValidationError):
            stock_service.set_stock(product.id, warehouse.id, {"quantity": 5, "adjustment": 1}, identity=identity)

    def test_non_integer_quantity_rejected(self, db_session, product, warehouse, identity):
        with pytest.raises(ValidationError):
            stock_service.set_stock(product.id, warehouse.id, {"quantity": 2.5}, identity=identity)

    def test_quantity_beyond_column_range_rejected(self, db_session, product, warehouse, identity):
        with pytest.raises(ValidationError):
            stock_service.set_stock(product.id, warehouse.id, {"quantity": 2 ** 70}, identity=identity)
        assert _stock(db_session, product, warehouse) is None

    def test_adjustment_beyond_column_range_rejected(self, db_session, product, warehouse, identity):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 2_000_000_000}, identity=identity)
        with pytest.raises(ValidationError):
            stock_service.set_stock(product.id, warehouse.id, {"adjustment": 2_000_000_000}, identity=identity)
        assert _stock(db_session, product, warehouse).quantity == 2_000_000_000

    def test_unknown_product(self, db_session, warehouse, identity):
        with pytest.raises(NotFoundError):
            stock_service.set_stock(99999, warehouse.id, {"quantity": 1}, identity=identity)

    def test_unknown_warehouse(self, db_session, product, identity):
        with pytest.raises(NotFoundError):
            stock_service.set_stock(product.id, 99999, {"quantity": 1}, identity=identity)

    def test_count_stamps_last_count_at(self, db_session, product, warehouse, identity):
        stock = stock_service.set_stock(product.id, warehouse.id, {"quantity": 3}, identity=identity)
        assert stock.last_count_at is None

        stock = stock_service.set_stock(
            product.id, warehouse.id, {"quantity": 4, "is_count": True}, identity=identity
        )
        assert stock.last_count_at is not None


class TestStockAudit:

    def test_create_then_update_actions(self, db_session, product, warehouse, identity):
        stock = stock_service.set_stock(product.id, warehouse.id, {"quantity": 5}, identity=identity)
        stock_service.set_stock(product.id, warehouse.id, {"adjustment": 2}, identity=identity)

        entries = (
            db_session.query(AuditLog)
            .filter_by(entity_type="StockItem", entity_id=str(stock.id))
            .order_by(AuditLog.id)
            .all()
        )
        assert [e.action for e in entries] == ["CREATE", "UPDATE"]
        assert entries[0].changes["before"] is None
        assert entries[1].changes["before"] == {"quantity": 5, "reserved_qty": 0}
        assert entries[1].changes["after"] == {"quantity": 7, "reserved_qty": 0}

    def test_caller_without_user_row_not_audited(self, db_session, product, warehouse, anonymous_identity):
        stock = stock_service.set_stock(product.id, warehouse.id, {"quantity": 5}, identity=anonymous_identity)
        assert stock.quantity == 5
        assert db_session.query(AuditLog).count() == 0


class TestBulkSetStock:

    def test_mixed_results_commit_successful_items(self, db_session, product, warehouse, second_warehouse, identity):
        result = stock_service.bulk_set_stock([
            {"product_id": product.id, "warehouse_id": warehouse.id, "quantity": 10},
            {"product_id": product.id, "warehouse_id": second_warehouse.id, "quantity": 2, "reserved_qty": 5},
            {"product_id": 99999, "warehouse_id": warehouse.id, "quantity": 1},
            {"warehouse_id": warehouse.id, "quantity": 1},
        ], identity=identity)

        assert [r["success"] for r in result["data"]] == [True, False, False, False]
        assert result["summary"] == {"total": 4, "success": 1, "failed": 3}
        assert "Reserved quantity" in result["data"][1]["error"]

        first = _stock(db_session, product, warehouse)
        assert first.quantity == 10
        assert first.last_count_at is not None
        assert _stock(db_session, product, second_warehouse) is None

    def test_oversized_value_fails_only_its_item(self, db_session, product, warehouse, second_warehouse, identity):
        result = stock_service.bulk_set_stock([
            {"product_id": product.id, "warehouse_id": warehouse.id, "quantity": 2 ** 70},
            {"product_id": product.id, "warehouse_id": second_warehouse.id, "quantity": 7},
        ], identity=identity)

        assert [r["success"] for r in result["data"]] == [False, True]
        assert result["summary"] == {"total": 2, "success": 1, "failed": 1}
        assert "out of range" in result["data"][0]["error"]
        assert _stock(db_session, product, warehouse) is None
        assert _stock(db_session, product, second_warehouse).quantity == 7

    def test_items_must_be_list(self, db_session, identity):
        with pytest.raises(ValidationError):
            stock_service.bulk_set_stock({"product_id": 1}, identity=identity)


class TestListStock:

    def test_summary_and_low_stock_filter(self, db_session, product, priced_product, warehouse, identity):
        # product.min_stock_level == 5, priced_product.min_stock_level == 0
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 3, "reserved_qty": 1}, identity=identity)
        stock_service.set_stock(priced_product.id, warehouse.id, {"quantity": 40}, identity=identity)

        everything = stock_service.list_stock(limit=100, offset=0)
        assert everything["summary"] == {"total_items": 2, "total_quantity": 43, "total_reserved": 1}
        assert everything["pagination"]["total"] == 2
        assert everything["pagination"]["has_more"] is False

        low = stock_service.list_stock(low_stock=True, limit=100, offset=0)
        assert [row["product_id"] for row in low["data"]] == [product.id]
        assert low["data"][0]["product"]["sku"] == "WID-001"

    def test_pagination_has_more(self, db_session, product, warehouse, second_warehouse, identity):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 1}, identity=identity)
        stock_service.set_stock(product.id, second_warehouse.id, {"quantity": 1}, identity=identity)

        page = stock_service.list_stock(limit=1, offset=0)
        assert len(page["data"]) == 1
        assert page["pagination"]["has_more"] is True
