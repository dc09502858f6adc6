"""
Certificates router for Learnity.
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnity.core.database import get_db
from learnity.models.user import User
from learnity.routers.auth import get_current_user
from learnity.services.certificate import list_certificates, verify_certificate


router = APIRouter()


@router.get("")
async def list_my_certificates(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    certificates = list_certificates(db, current_user.id)
    return {"certificates": [certificate.to_dict() for certificate in certificates]}


@router.get("/verify/{code}")
async def verify(code: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Public check that a certificate code was issued by the platform.
    """
    return verify_certificate(db, code)
