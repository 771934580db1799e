"""Catálogo de categorías."""
from fastapi import APIRouter, Depends, status

from notehub.api.deps import get_category_service, get_identity
from notehub.api.schemas.category import CategoryCreate, CategoryListOut, CategoryOut
from notehub.domain.users.identity import Identity
from notehub.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=CategoryListOut, summary="Categorías activas")
def list_categories(svc: CategoryService = Depends(get_category_service)) -> CategoryListOut:
    return CategoryListOut(items=[CategoryOut(**c) for c in svc.list_active()])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CategoryOut, summary="Crear categoría")
def create_category(
    payload: CategoryCreate,
    identity: Identity = Depends(get_identity),
    svc: CategoryService = Depends(get_category_service),
) -> CategoryOut:
    doc = svc.create(payload.name, payload.description, payload.icon, payload.color)
    return CategoryOut(**doc)
