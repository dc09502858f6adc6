"""
Admin platform settings router for Learnity.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.models.user import User
from learnity.routers.auth import get_current_user
from learnity.schemas.admin import SettingUpdate
from learnity.services import admin as admin_service


router = APIRouter()


@router.get("")
async def get_system_settings(
    category: Optional[str] = None,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get all platform settings grouped by category.
    """
    settings_by_category: Dict[str, list] = {}
    for setting in admin_service.list_settings(db, category):
        settings_by_category.setdefault(setting.category, []).append(setting.to_dict())

    return {"settings": settings_by_category}


@router.put("/{setting_key}")
async def update_system_setting(
    setting_key: str,
    setting_data: SettingUpdate,
    request: Request,
    admin_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    setting = admin_service.update_setting(db, setting_key, setting_data.value, admin_user, request)
    db.commit()
    db.refresh(setting)

    return {
        "message": "Setting updated successfully",
        "setting": setting.to_dict(),
    }
