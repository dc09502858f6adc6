"""
Categories router for Learnity.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.services.catalog import list_categories


router = APIRouter()


@router.get("")
async def get_categories(db: Session = Depends(get_db)) -> Dict[str, Any]:
    categories = list_categories(db)
    return {"categories": [category.to_dict() for category in categories]}
