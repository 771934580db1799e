"""Catálogo de categorías: alta con slug derivado del nombre y listado de activas."""
import re
from typing import Any, Dict, List, Optional

from notehub.core.exceptions import ValidationFailed
from notehub.core.logging import get_logger
from notehub.domain.notes.slug import slugify
from notehub.repositories.base import CategoryStore

_log = get_logger("categories")

NAME_MAX = 50
DESCRIPTION_MAX = 500
_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


class CategoryService:
    def __init__(self, categories: CategoryStore) -> None:
        self.categories = categories

    def create(
        self,
        name: str,
        description: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Dict[str, Any]:
        n = (name or "").strip()
        if not n:
            raise ValidationFailed("Category name is required", field="name")
        if len(n) > NAME_MAX:
            raise ValidationFailed(f"name cannot exceed {NAME_MAX} characters", field="name")
        if description and len(description) > DESCRIPTION_MAX:
            raise ValidationFailed(f"description cannot exceed {DESCRIPTION_MAX} characters", field="description")
        if color and not _COLOR.match(color):
            raise ValidationFailed("color must be #RRGGBB", field="color")
        slug = slugify(n)
        if not slug:
            raise ValidationFailed("Category name must contain letters or digits", field="name")
        doc = {
            "name": n,
            "slug": slug,
            "description": description or None,
            "icon": icon or None,
            "color": color or None,
        }
        doc["id"] = self.categories.insert(doc)
        _log.info("Categoría creada %s (%s)", n, slug)
        return doc

    def list_active(self) -> List[Dict[str, Any]]:
        return self.categories.list_active()
