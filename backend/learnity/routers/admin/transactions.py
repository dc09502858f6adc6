"""
Admin transactions router for Learnity.

Admins settle pending deposits and withdrawals.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.models.admin import AuditEventType
from learnity.models.user import User
from learnity.models.wallet import TransactionStatus, TransactionType
from learnity.routers.auth import get_current_user
from learnity.schemas.wallet import TransactionProcess
from learnity.services import audit, wallet as wallet_service


router = APIRouter()


@router.get("")
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    type_filter: Optional[TransactionType] = Query(None, alias="type"),
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    user_id: Optional[int] = None,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    All transactions, filterable by type, status and user.
    """
    return wallet_service.list_transactions(
        db,
        page,
        limit,
        user_id=user_id,
        type_filter=type_filter.value if type_filter else None,
        status_filter=status_filter.value if status_filter else None
    )


@router.post("/{transaction_id}/process")
async def process_transaction(
    transaction_id: int,
    process_data: TransactionProcess,
    request: Request,
    admin_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    transaction = wallet_service.process_transaction(
        db,
        transaction_id,
        process_data.status,
        admin_user.id,
        note=process_data.note
    )
    audit.log_event(
        db,
        user_id=admin_user.id,
        event_type=AuditEventType.TRANSACTION_PROCESS.value,
        action=f"Transaction {process_data.status}",
        request=request,
        entity_type="transaction",
        entity_id=transaction.id,
        new_values={"status": transaction.status},
        details={"type": transaction.type, "amount": str(transaction.amount), "note": process_data.note}
    )
    db.commit()
    db.refresh(transaction)

    return {
        "message": f"Transaction {transaction.status}",
        "transaction": transaction.to_dict(),
        "wallet": transaction.wallet.to_dict(),
    }
