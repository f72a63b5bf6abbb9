# Overview: Pytest coverage for catalog services (products, categories, warehouses, partners, users).

import pytest

from stockflow.errors import (
    ConflictError,
    DependencyExistsError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from stockflow.identity import Identity
from stockflow.models import Category, Customer, Organization, Product, StockItem, Supplier, User, Warehouse
from stockflow.services import (
    category_service,
    customer_service,
    order_service,
    organization_service,
    product_service,
    purchase_order_service,
    stock_service,
    supplier_service,
    user_service,
    warehouse_service,
)


class TestProductService:

    def test_create_and_duplicate_sku(self, db_session, identity, org):
        payload = {"organization_id": org.id, "sku": "NEW-1", "name": "New", "unit_price_cents": 250}
        product = product_service.create_product(payload, identity=identity)
        assert product.is_active is True

        with pytest.raises(ConflictError):
            product_service.create_product(payload, identity=identity)

    def test_missing_required_fields(self, db_session, identity, org):
        with pytest.raises(ValidationError):
            product_service.create_product({"organization_id": org.id, "sku": "X"}, identity=identity)

    def test_negative_price_rejected(self, db_session, identity, org):
        with pytest.raises(ValidationError):
            product_service.create_product(
                {"organization_id": org.id, "sku": "NEG", "name": "Neg", "unit_price_cents": -1},
                identity=identity,
            )

    def test_unknown_category(self, db_session, identity, org):
        with pytest.raises(NotFoundError):
            product_service.create_product(
                {"organization_id": org.id, "sku": "C1", "name": "C", "unit_price_cents": 1, "category_id": 99999},
                identity=identity,
            )

    def test_get_includes_stock_totals(self, db_session, identity, product, warehouse, second_warehouse):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 4, "reserved_qty": 1}, identity=identity)
        stock_service.set_stock(product.id, second_warehouse.id, {"quantity": 6}, identity=identity)

        data = product_service.get_product(product.id)
        assert len(data["stock"]) == 2
        assert data["total_quantity"] == 10
        assert data["total_available"] == 9

    def test_search_filter(self, db_session, product, priced_product):
        result = product_service.list_products(search="gadg", limit=50, offset=0)
        assert [row["sku"] for row in result["data"]] == ["GAD-100"]

    def test_referenced_product_is_soft_deleted(self, db_session, identity, customer, product):
        order_service.create_order(
            {"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]}, identity=identity
        )
        result = product_service.delete_product(product.id, identity=identity)

        assert result["soft_deleted"] is True
        assert db_session.get(Product, product.id).is_active is False

    def test_product_with_stock_cannot_be_deleted(self, db_session, identity, product, warehouse):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 1}, identity=identity)
        with pytest.raises(DependencyExistsError):
            product_service.delete_product(product.id, identity=identity)
        assert db_session.get(Product, product.id) is not None

    def test_unreferenced_product_is_removed_with_empty_stock(self, db_session, identity, product, warehouse):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 0}, identity=identity)
        product_id = product.id
        result = product_service.delete_product(product_id, identity=identity)

        assert result == {"id": product_id, "deleted": True, "soft_deleted": False}
        assert db_session.get(Product, product_id) is None
        assert db_session.query(StockItem).filter_by(product_id=product_id).count() == 0


class TestCategoryService:

    def test_slug_and_sort_order_defaults(self, db_session, identity, category):
        child = category_service.create_category({"name": "Power Tools", "parent_id": category.id}, identity=identity)
        sibling = category_service.create_category({"name": "Hand Tools", "parent_id": category.id}, identity=identity)

        assert child.slug == "power-tools"
        assert child.sort_order == 1
        assert sibling.sort_order == 2

    def test_slug_unique_among_siblings_only(self, db_session, identity, category):
        other_root = category_service.create_category({"name": "Garden"}, identity=identity)
        category_service.create_category({"name": "Tools", "parent_id": category.id}, identity=identity)
        category_service.create_category({"name": "Tools", "parent_id": other_root.id}, identity=identity)

        with pytest.raises(ConflictError):
            category_service.create_category({"name": "Tools", "parent_id": category.id}, identity=identity)

    def test_sibling_slug_enforced_by_database(self, db_session, identity, category, monkeypatch):
        monkeypatch.setattr(category_service, "ensure_unique", lambda *args, **kwargs: None)
        category_service.create_category({"name": "Bolts", "parent_id": category.id}, identity=identity)

        with pytest.raises(ConflictError):
            category_service.create_category({"name": "Bolts", "parent_id": category.id}, identity=identity)
        assert db_session.query(Category).filter_by(slug="bolts").count() == 1

    def test_root_slug_enforced_by_database(self, db_session, identity, category, monkeypatch):
        monkeypatch.setattr(category_service, "ensure_unique", lambda *args, **kwargs: None)

        with pytest.raises(ConflictError):
            category_service.create_category({"name": "Hardware"}, identity=identity)
        assert db_session.query(Category).filter_by(slug="hardware").count() == 1

    def test_rename_into_sibling_slug_enforced_by_database(self, db_session, identity, category, monkeypatch):
        first = category_service.create_category({"name": "Bolts", "parent_id": category.id}, identity=identity)
        second = category_service.create_category({"name": "Nuts", "parent_id": category.id}, identity=identity)
        monkeypatch.setattr(category_service, "ensure_unique", lambda *args, **kwargs: None)

        with pytest.raises(ConflictError):
            category_service.update_category(second.id, {"slug": "bolts"}, identity=identity)
        assert db_session.get(Category, second.id).slug == "nuts"
        assert db_session.get(Category, first.id).slug == "bolts"

    def test_unknown_parent(self, db_session, identity):
        with pytest.raises(ValidationError):
            category_service.create_category({"name": "Orphan", "parent_id": 99999}, identity=identity)

    def test_cannot_parent_itself(self, db_session, identity, category):
        with pytest.raises(ValidationError):
            category_service.update_category(category.id, {"parent_id": category.id}, identity=identity)

    def test_cannot_move_under_descendant(self, db_session, identity, category):
        child = category_service.create_category({"name": "Child", "parent_id": category.id}, identity=identity)
        grandchild = category_service.create_category({"name": "Grandchild", "parent_id": child.id}, identity=identity)

        with pytest.raises(ValidationError):
            category_service.update_category(category.id, {"parent_id": grandchild.id}, identity=identity)
        assert db_session.get(Category, category.id).parent_id is None

    def test_tree_and_flat_listing(self, db_session, identity, category, product):
        product.category_id = category.id
        db_session.commit()
        child = category_service.create_category({"name": "Child", "parent_id": category.id}, identity=identity)

        tree = category_service.list_categories()
        assert [node["id"] for node in tree] == [category.id]
        assert tree[0]["product_count"] == 1
        assert [node["id"] for node in tree[0]["children"]] == [child.id]

        flat = category_service.list_categories(flat=True)
        assert {node["id"] for node in flat} == {category.id, child.id}
        assert all("children" not in node for node in flat)

    def test_delete_rules(self, db_session, identity, category, product):
        child = category_service.create_category({"name": "Child", "parent_id": category.id}, identity=identity)
        with pytest.raises(DependencyExistsError):
            category_service.delete_category(category.id, identity=identity)

        product.category_id = child.id
        db_session.commit()
        assert category_service.delete_category(child.id, identity=identity)["soft_deleted"] is True
        assert db_session.get(Category, child.id).is_active is False

        product.category_id = None
        db_session.commit()
        assert category_service.delete_category(child.id, identity=identity)["soft_deleted"] is False
        assert category_service.delete_category(category.id, identity=identity)["soft_deleted"] is False
        assert db_session.query(Category).count() == 0


class TestWarehouseService:

    def test_single_default_per_organization(self, db_session, identity, org, warehouse):
        promoted = warehouse_service.create_warehouse(
            {"organization_id": org.id, "code": "EAST", "name": "East", "is_default": True}, identity=identity
        )
        assert promoted.is_default is True
        assert db_session.get(Warehouse, warehouse.id).is_default is False

        warehouse_service.update_warehouse(warehouse.id, {"is_default": True}, identity=identity)
        defaults = db_session.query(Warehouse).filter_by(organization_id=org.id, is_default=True).all()
        assert [w.id for w in defaults] == [warehouse.id]

    def test_default_cannot_be_deleted(self, db_session, identity, warehouse):
        with pytest.raises(InvalidStateError):
            warehouse_service.delete_warehouse(warehouse.id, identity=identity)

    def test_warehouse_with_stock_cannot_be_deleted(self, db_session, identity, product, second_warehouse):
        stock_service.set_stock(product.id, second_warehouse.id, {"quantity": 2}, identity=identity)
        with pytest.raises(DependencyExistsError):
            warehouse_service.delete_warehouse(second_warehouse.id, identity=identity)

    def test_empty_warehouse_deleted(self, db_session, identity, product, second_warehouse):
        stock_service.set_stock(product.id, second_warehouse.id, {"quantity": 0}, identity=identity)
        warehouse_id = second_warehouse.id
        warehouse_service.delete_warehouse(warehouse_id, identity=identity)

        assert db_session.get(Warehouse, warehouse_id) is None
        assert db_session.query(StockItem).filter_by(warehouse_id=warehouse_id).count() == 0

    def test_stock_summary(self, db_session, identity, product, priced_product, warehouse):
        stock_service.set_stock(product.id, warehouse.id, {"quantity": 3, "reserved_qty": 2}, identity=identity)
        stock_service.set_stock(priced_product.id, warehouse.id, {"quantity": 7}, identity=identity)

        summary = warehouse_service.get_warehouse(warehouse.id)["stock_summary"]
        assert summary == {"total_items": 2, "total_quantity": 10, "total_reserved": 2}


class TestPartners:

    def test_supplier_code_uppercased_and_unique(self, db_session, identity):
        supplier = supplier_service.create_supplier({"code": "acme", "name": "Acme"}, identity=identity)
        assert supplier.code == "ACME"
        with pytest.raises(ConflictError):
            supplier_service.create_supplier({"code": "ACME", "name": "Other"}, identity=identity)

    def test_supplier_with_purchase_orders_is_soft_deleted(self, db_session, identity, supplier, product):
        purchase_order_service.create_purchase_order(
            {"supplier_id": supplier.id, "items": [{"product_id": product.id, "quantity": 1, "unit_price_cents": 1}]},
            identity=identity,
        )
        assert supplier_service.delete_supplier(supplier.id, identity=identity)["soft_deleted"] is True
        assert db_session.get(Supplier, supplier.id).is_active is False

    def test_unused_supplier_is_removed(self, db_session, identity, supplier):
        supplier_id = supplier.id
        assert supplier_service.delete_supplier(supplier_id, identity=identity)["soft_deleted"] is False
        assert db_session.get(Supplier, supplier_id) is None

    def test_customer_with_orders_is_soft_deleted(self, db_session, identity, customer, product):
        order_service.create_order(
            {"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]}, identity=identity
        )
        assert customer_service.delete_customer(customer.id, identity=identity)["soft_deleted"] is True
        assert db_session.get(Customer, customer.id).is_active is False

    def test_customer_requires_known_organization(self, db_session, identity):
        with pytest.raises(NotFoundError):
            customer_service.create_customer(
                {"organization_id": 99999, "code": "C9", "name": "Nobody"}, identity=identity
            )


class TestOrganizationService:

    def test_slug_derived_from_name(self, db_session, identity):
        org = organization_service.create_organization({"name": "Globex Corporation"}, identity=identity)
        assert org.slug == "globex-corporation"

    def test_org_with_users_is_soft_deleted(self, db_session, identity, org):
        assert organization_service.delete_organization(org.id, identity=identity)["soft_deleted"] is True
        assert db_session.get(Organization, org.id).is_active is False

    def test_empty_org_is_removed(self, db_session, identity):
        org = organization_service.create_organization({"name": "Empty"}, identity=identity)
        org_id = org.id
        assert organization_service.delete_organization(org_id, identity=identity)["soft_deleted"] is False
        assert db_session.get(Organization, org_id) is None


class TestUserService:

    def test_profile_created_on_first_access(self, db_session):
        user = user_service.get_or_create_current_user(Identity(user_id="sub-new", email="new@acme.test"))
        assert user.id is not None
        assert user.last_login_at is not None
        assert db_session.query(User).filter_by(cognito_sub="sub-new").count() == 1

    def test_profile_requires_email(self, db_session):
        with pytest.raises(ValidationError):
            user_service.get_or_create_current_user(Identity(user_id="sub-new"))

    def test_self_update(self, db_session, identity, user):
        updated = user_service.update_current_user(identity, {"first_name": "Al"})
        assert updated.first_name == "Al"

    def test_self_update_rejects_privileged_fields(self, db_session, identity, user):
        with pytest.raises(ValidationError):
            user_service.update_current_user(identity, {"is_active": False})
        assert db_session.get(User, user.id).is_active is True

    def test_duplicate_email_rejected(self, db_session, identity, user):
        with pytest.raises(ConflictError):
            user_service.create_user({"cognito_sub": "sub-bob", "email": user.email}, identity=identity)

    def test_current_organization(self, db_session, identity, anonymous_identity, org):
        assert user_service.current_organization_id(identity) == org.id
        assert user_service.current_organization_id(anonymous_identity) is None
