"""
Wallet router for Learnity.

Deposits and withdrawals are requests: they stay pending until an admin
processes them.
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from learnity.core.config import settings
from learnity.core.database import get_db
from learnity.models.user import User
from learnity.models.wallet import TransactionStatus, TransactionType
from learnity.routers.auth import get_current_user
from learnity.schemas.wallet import DepositRequest, WithdrawalRequest
from learnity.services import wallet as wallet_service


router = APIRouter()


@router.get("")
async def get_wallet(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Balance and latest transactions of the current user.
    """
    summary = wallet_service.get_wallet_summary(db, current_user.id)
    db.commit()
    return summary


@router.get("/transactions")
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    type_filter: Optional[TransactionType] = Query(None, alias="type"),
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return wallet_service.list_transactions(
        db,
        page,
        limit,
        user_id=current_user.id,
        type_filter=type_filter.value if type_filter else None,
        status_filter=status_filter.value if status_filter else None
    )


@router.post("/deposits", status_code=status.HTTP_201_CREATED)
async def request_deposit(
    deposit_data: DepositRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    transaction = wallet_service.request_deposit(
        db,
        current_user.id,
        deposit_data.amount,
        reference_id=deposit_data.reference_id,
        receipt_url=deposit_data.receipt_url,
        description=deposit_data.description
    )
    db.commit()
    db.refresh(transaction)

    return {"message": "Deposit request submitted", "transaction": transaction.to_dict()}


@router.post("/withdrawals", status_code=status.HTTP_201_CREATED)
async def request_withdrawal(
    withdrawal_data: WithdrawalRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    transaction = wallet_service.request_withdrawal(
        db,
        current_user.id,
        withdrawal_data.amount,
        description=withdrawal_data.description,
        details=withdrawal_data.account_details
    )
    db.commit()
    db.refresh(transaction)

    return {"message": "Withdrawal request submitted", "transaction": transaction.to_dict()}
