# Overview: Service-layer operations for product categories.

from __future__ import annotations

from ..extensions import db
from ..models import Category
from ..errors import NotFound
from ..validation import ConflictError


class CategoryNotFoundError(NotFound):
    def __init__(self, category_id: int):
        super().__init__("Category not found")
        self.category_id = category_id


def _check_name_available(name: str, *, exclude_category_id: int | None = None) -> None:
    query = db.session.query(Category).filter(Category.category_name == name)
    if exclude_category_id is not None:
        query = query.filter(Category.category_id != exclude_category_id)
    if query.first():
        raise ConflictError(f"Category '{name}' already exists")


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError(category_id)
    return category


def list_categories(*, include_inactive: bool = False) -> list[Category]:
    query = db.session.query(Category)
    if not include_inactive:
        query = query.filter(Category.is_active.is_(True))
    return query.order_by(Category.category_name.asc()).all()


def create_category(*, patch: dict) -> Category:
    _check_name_available(patch["category_name"])
    category = Category(category_name=patch["category_name"], is_active=patch.get("is_active", True))
    db.session.add(category)
    db.session.commit()
    return category


def update_category(*, category_id: int, patch: dict) -> Category:
    category = get_category(category_id)
    if "category_name" in patch and patch["category_name"] != category.category_name:
        _check_name_available(patch["category_name"], exclude_category_id=category_id)
    for key, value in patch.items():
        setattr(category, key, value)
    db.session.commit()
    return category


def deactivate_category(*, category_id: int) -> Category:
    """
    Soft delete. Products keep their category_id; reports file them under
    "Uncategorized" while the category is inactive.
    """
    category = get_category(category_id)
    category.is_active = False
    db.session.commit()
    return category
