"""
Typed access to the admin editable platform settings.
"""

from typing import Any

from sqlalchemy.orm import Session

from learnity.models.admin import SystemSettings


def _fallback(key: str, default: Any) -> Any:
    # Use the seeded default when the row has not been created yet
    for item in SystemSettings.get_default_settings():
        if item["key"] == key:
            return SystemSettings(**item).get_typed_value()
    return default


def get_setting(db: Session, key: str, default: Any = None) -> Any:
    """Return the typed value of a platform setting."""
    setting = db.query(SystemSettings).filter(SystemSettings.key == key).first()
    if setting is None:
        return _fallback(key, default)
    return setting.get_typed_value()


def is_enabled(db: Session, key: str) -> bool:
    return bool(get_setting(db, key, True))
