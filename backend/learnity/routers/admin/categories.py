"""
Admin categories router for Learnity.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.schemas.course import CategoryCreate
from learnity.services.catalog import create_category


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_category(
    category_data: CategoryCreate,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    category = create_category(db, category_data.name, category_data.description, category_data.icon)
    db.commit()
    db.refresh(category)

    return category.to_dict()
