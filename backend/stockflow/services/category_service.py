# Overview: Service-layer operations for the category tree.

"""
Category Service

TREE RULES:
- Slugs are unique among siblings (same parent_id), not globally.
- A category can never be its own ancestor. Re-parenting walks the parent
  chain of the new parent with a visited set, so a corrupted chain cannot
  loop forever.
- Categories with children cannot be deleted; categories with products are
  soft-deleted (is_active=false); anything else is removed.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import DependencyExistsError, ValidationError
from ..identity import Identity
from ..models import Category, Product
from ..validation import ModelValidationPolicy, validate_payload
from . import audit_service
from .crud import apply_patch, commit_or_conflict, flush_or_conflict, ensure_unique, get_or_404, slugify


CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "slug", "description", "sort_order", "parent_id", "is_active"}),
    required_on_create=frozenset({"name"}),
)


def _product_counts() -> dict[int, int]:
    rows = (
        db.session.query(Product.category_id, db.func.count(Product.id))
        .filter(Product.category_id.isnot(None))
        .group_by(Product.category_id)
        .all()
    )
    return {category_id: count for category_id, count in rows}


def list_categories(*, flat: bool = False, parent_id: int | None = None, is_active: bool | None = None) -> list[dict]:
    """
    flat=True: every category, ordered by (parent_id, sort_order, name).
    flat=False: nested tree rooted at parent_id (None = top level).
    """
    query = db.session.query(Category)
    if is_active is not None:
        query = query.filter(Category.is_active.is_(is_active))
    categories = query.order_by(
        Category.parent_id.asc(), Category.sort_order.asc(), Category.name.asc()
    ).all()

    counts = _product_counts()
    nodes: dict[int, dict] = {}
    for category in categories:
        node = category.to_dict()
        node["product_count"] = counts.get(category.id, 0)
        nodes[category.id] = node

    if flat:
        return list(nodes.values())

    for node in nodes.values():
        node["children"] = []
    roots = []
    for category in categories:
        node = nodes[category.id]
        if category.parent_id == parent_id:
            roots.append(node)
        elif category.parent_id in nodes:
            nodes[category.parent_id]["children"].append(node)
    return roots


def get_category(category_id: int) -> dict:
    category = get_or_404(Category, category_id, "Category")
    data = category.to_dict()
    data["parent"] = db.session.get(Category, category.parent_id).to_dict() if category.parent_id else None
    data["children"] = [
        child.to_dict()
        for child in db.session.query(Category)
        .filter_by(parent_id=category.id)
        .order_by(Category.sort_order.asc(), Category.name.asc())
    ]
    data["product_count"] = db.session.query(Product).filter_by(category_id=category.id).count()
    return data


def _check_parent_exists(parent_id: int | None) -> None:
    if parent_id is not None and db.session.get(Category, parent_id) is None:
        raise ValidationError("Parent category not found")


def is_descendant(candidate_id: int, ancestor_id: int) -> bool:
    """True if ancestor_id appears on candidate_id's parent chain."""
    visited: set[int] = set()
    current = candidate_id
    while current is not None and current not in visited:
        visited.add(current)
        parent_id = db.session.query(Category.parent_id).filter(Category.id == current).scalar()
        if parent_id == ancestor_id:
            return True
        current = parent_id
    return False


def _next_sort_order(parent_id: int | None) -> int:
    query = db.session.query(db.func.max(Category.sort_order))
    if parent_id is None:
        query = query.filter(Category.parent_id.is_(None))
    else:
        query = query.filter(Category.parent_id == parent_id)
    current_max = query.scalar()
    return (current_max or 0) + 1


def create_category(payload: dict, *, identity: Identity | None) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    parent_id = patch.get("parent_id")
    patch["slug"] = slugify(patch.get("slug") or patch["name"])

    _check_parent_exists(parent_id)
    ensure_unique(Category, "slug", patch["slug"], label="Category slug", parent_id=parent_id)
    if "sort_order" not in patch:
        patch["sort_order"] = _next_sort_order(parent_id)

    category = Category(**patch)
    db.session.add(category)
    flush_or_conflict("Category slug already exists under the same parent")
    audit_service.record(identity, "CREATE", "Category", category.id, {"after": category.to_dict()})
    commit_or_conflict("Category slug already exists under the same parent")
    return category


def update_category(category_id: int, payload: dict, *, identity: Identity | None) -> Category:
    category = get_or_404(Category, category_id, "Category")
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)

    if "parent_id" in patch and patch["parent_id"] is not None:
        new_parent = patch["parent_id"]
        if new_parent == category.id:
            raise ValidationError("Category cannot be its own parent")
        _check_parent_exists(new_parent)
        if is_descendant(new_parent, category.id):
            raise ValidationError("Cannot set a descendant as parent")

    if "slug" in patch:
        patch["slug"] = slugify(patch["slug"])
    if "slug" in patch or "parent_id" in patch:
        ensure_unique(
            Category,
            "slug",
            patch.get("slug", category.slug),
            label="Category slug",
            exclude_id=category.id,
            parent_id=patch.get("parent_id", category.parent_id),
        )
    diff = apply_patch(category, patch)
    if diff:
        flush_or_conflict("Category slug already exists under the same parent")
        audit_service.record(identity, "UPDATE", "Category", category.id, diff)
    commit_or_conflict("Category slug already exists under the same parent")
    return category


def delete_category(category_id: int, *, identity: Identity | None) -> dict:
    category = get_or_404(Category, category_id, "Category")

    children = db.session.query(Category).filter_by(parent_id=category.id).count()
    if children:
        raise DependencyExistsError(
            "Cannot delete category with sub-categories",
            {"children": children},
        )

    products = db.session.query(Product).filter_by(category_id=category.id).count()
    if products:
        category.is_active = False
        audit_service.record(identity, "DELETE", "Category", category.id, {"soft": True, "products": products})
        db.session.commit()
        return {"id": category_id, "deleted": True, "soft_deleted": True}

    snapshot = category.to_dict()
    db.session.delete(category)
    audit_service.record(identity, "DELETE", "Category", category_id, {"before": snapshot})
    db.session.commit()
    return {"id": category_id, "deleted": True, "soft_deleted": False}
