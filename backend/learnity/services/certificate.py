"""
Completion certificates.
"""

import logging
import secrets
import string
from typing import Optional, List

from sqlalchemy.orm import Session

from learnity.core.errors import NotFoundError
from learnity.models.progress import Certificate
from learnity.services import platform_settings


logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_certificate_code() -> str:
    """Random public code in the form ``XXXX-XXXX-XXXX``."""
    groups = ["".join(secrets.choice(CODE_ALPHABET) for _ in range(4)) for _ in range(3)]
    return "-".join(groups)


def _unique_code(db: Session) -> str:
    while True:
        code = generate_certificate_code()
        if not db.query(Certificate).filter(Certificate.certificate_id == code).first():
            return code


def issue_certificate(db: Session, student_id: int, course_id: int) -> Optional[Certificate]:
    """
    Issue the certificate for a completed course.

    Returns the existing certificate when one was already issued, or None
    while certificates are disabled.
    """
    existing = db.query(Certificate).filter(
        Certificate.student_id == student_id,
        Certificate.course_id == course_id
    ).first()
    if existing:
        return existing

    if not platform_settings.is_enabled(db, "enable_certificates"):
        return None

    certificate = Certificate(
        student_id=student_id,
        course_id=course_id,
        certificate_id=_unique_code(db)
    )
    db.add(certificate)
    db.flush()
    logger.info(f"Certificate {certificate.certificate_id} issued to user {student_id} for course {course_id}")
    return certificate


def list_certificates(db: Session, student_id: int) -> List[Certificate]:
    return db.query(Certificate).filter(
        Certificate.student_id == student_id
    ).order_by(Certificate.issued_at.desc(), Certificate.id.desc()).all()


def verify_certificate(db: Session, code: str) -> dict:
    certificate = db.query(Certificate).filter(
        Certificate.certificate_id == code.strip().upper()
    ).first()
    if certificate is None:
        raise NotFoundError("Certificate", code="CERTIFICATE_NOT_FOUND")

    return {
        "valid": True,
        "certificate_id": certificate.certificate_id,
        "student_name": certificate.student.full_name,
        "course_title": certificate.course.title,
        "issued_at": certificate.issued_at.isoformat() if certificate.issued_at else None,
    }
