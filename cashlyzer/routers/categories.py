from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from cashlyzer.constants.categories import CATEGORY_REGISTRY

router = APIRouter()


class CategoryCheck(BaseModel):
    category_id: str
    subcategory: Optional[str] = None


@router.get("/")
def list_categories() -> Dict:
    categories = [category.to_dict() for category in CATEGORY_REGISTRY.list_categories()]
    return {"categories": categories, "count": len(categories)}


@router.post("/validate")
def validate_category(check: CategoryCheck) -> Dict:
    """An absent subcategory is always valid."""
    is_valid = CATEGORY_REGISTRY.is_valid(check.category_id)
    is_valid_subcategory = (
        CATEGORY_REGISTRY.is_valid_subcategory(check.category_id, check.subcategory) if check.subcategory else True
    )
    return {
        "message": "Category validation completed",
        "is_valid": is_valid,
        "is_valid_subcategory": is_valid_subcategory,
    }


@router.get("/{category_id}")
def get_category(category_id: str) -> Dict:
    category = CATEGORY_REGISTRY.get(category_id)
    if category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown category '{category_id}'")
    return category.to_dict()
