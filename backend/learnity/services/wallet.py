"""
Wallet service for Learnity.

Deposits and withdrawals are requested by users and settled by an
admin. Course purchases are debited immediately.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any

from fastapi import status
from sqlalchemy.orm import Session

from learnity.core.errors import APIError, BadRequestError, NotFoundError
from learnity.models.wallet import Wallet, Transaction, TransactionType, TransactionStatus
from learnity.services import platform_settings
from learnity.utils.pagination import paginate


logger = logging.getLogger(__name__)


def insufficient_funds(message: str = "Insufficient funds") -> APIError:
    return APIError(status.HTTP_402_PAYMENT_REQUIRED, "INSUFFICIENT_FUNDS", message)


def get_or_create_wallet(db: Session, user_id: int) -> Wallet:
    wallet = db.query(Wallet).filter(Wallet.user_id == user_id).first()
    if wallet is None:
        wallet = Wallet(user_id=user_id, balance=Decimal("0.00"), currency="USD")
        db.add(wallet)
        db.flush()
    return wallet


def request_deposit(
    db: Session,
    user_id: int,
    amount: Decimal,
    reference_id: Optional[str] = None,
    receipt_url: Optional[str] = None,
    description: Optional[str] = None
) -> Transaction:
    wallet = get_or_create_wallet(db, user_id)
    transaction = Transaction(
        wallet_id=wallet.id,
        user_id=user_id,
        type=TransactionType.DEPOSIT.value,
        status=TransactionStatus.PENDING.value,
        amount=amount,
        description=description or "Wallet top-up",
        reference_id=reference_id,
        receipt_url=receipt_url
    )
    db.add(transaction)
    db.flush()
    logger.info(f"Deposit of {amount} requested by user {user_id}")
    return transaction


def request_withdrawal(
    db: Session,
    user_id: int,
    amount: Decimal,
    description: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> Transaction:
    """
    Raises:
        BadRequestError: BELOW_MINIMUM_WITHDRAWAL under the platform minimum
        APIError: 402 INSUFFICIENT_FUNDS when the balance is too low
    """
    minimum = Decimal(str(platform_settings.get_setting(db, "min_withdrawal_amount", 0)))
    if amount < minimum:
        raise BadRequestError(
            f"Minimum withdrawal amount is {minimum}",
            code="BELOW_MINIMUM_WITHDRAWAL"
        )

    wallet = get_or_create_wallet(db, user_id)
    if wallet.balance < amount:
        raise insufficient_funds("Insufficient funds for withdrawal")

    transaction = Transaction(
        wallet_id=wallet.id,
        user_id=user_id,
        type=TransactionType.WITHDRAWAL.value,
        status=TransactionStatus.PENDING.value,
        amount=amount,
        description=description or "Withdrawal request",
        details=details
    )
    db.add(transaction)
    db.flush()
    logger.info(f"Withdrawal of {amount} requested by user {user_id}")
    return transaction


def purchase(db: Session, user_id: int, amount: Decimal, description: str, course_id: Optional[int] = None) -> Transaction:
    """Debit ``amount`` and record a completed purchase."""
    wallet = get_or_create_wallet(db, user_id)
    if wallet.balance < amount:
        raise insufficient_funds()

    wallet.balance = wallet.balance - amount
    transaction = Transaction(
        wallet_id=wallet.id,
        user_id=user_id,
        type=TransactionType.PURCHASE.value,
        status=TransactionStatus.COMPLETED.value,
        amount=amount,
        description=description,
        course_id=course_id,
        processed_at=datetime.utcnow()
    )
    db.add(transaction)
    db.flush()
    return transaction


def process_transaction(
    db: Session,
    transaction_id: int,
    new_status: str,
    admin_id: int,
    note: Optional[str] = None
) -> Transaction:
    """
    Settle a pending deposit or withdrawal.

    A completed deposit credits the wallet, a completed withdrawal debits
    it after re-checking the balance.
    """
    transaction = db.query(Transaction).filter(Transaction.id == transaction_id).first()
    if transaction is None:
        raise NotFoundError("Transaction")

    if transaction.type == TransactionType.PURCHASE.value:
        raise BadRequestError(
            "Purchases are settled automatically",
            code="INVALID_TRANSACTION_TYPE"
        )

    if transaction.status != TransactionStatus.PENDING.value:
        raise BadRequestError(
            "Transaction already processed",
            code="TRANSACTION_ALREADY_PROCESSED"
        )

    if new_status == TransactionStatus.COMPLETED.value:
        wallet = transaction.wallet
        if transaction.type == TransactionType.DEPOSIT.value:
            wallet.balance = wallet.balance + transaction.amount
        elif transaction.type == TransactionType.WITHDRAWAL.value:
            if wallet.balance < transaction.amount:
                raise insufficient_funds("Insufficient funds to complete withdrawal")
            wallet.balance = wallet.balance - transaction.amount

    transaction.status = new_status
    transaction.processed_by = admin_id
    transaction.processed_at = datetime.utcnow()
    transaction.admin_note = note
    db.flush()

    logger.info(f"Transaction {transaction.id} ({transaction.type}) marked {new_status} by admin {admin_id}")
    return transaction


def get_wallet_summary(db: Session, user_id: int, recent: int = 5) -> Dict[str, Any]:
    wallet = get_or_create_wallet(db, user_id)
    transactions = db.query(Transaction).filter(
        Transaction.wallet_id == wallet.id
    ).order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(recent).all()

    return {
        **wallet.to_dict(),
        "recent_transactions": [transaction.to_dict() for transaction in transactions],
    }


def list_transactions(
    db: Session,
    page: int,
    limit: int,
    user_id: Optional[int] = None,
    type_filter: Optional[str] = None,
    status_filter: Optional[str] = None
) -> Dict[str, Any]:
    """Transactions newest first; ``user_id`` None lists every wallet."""
    query = db.query(Transaction)
    if user_id is not None:
        query = query.filter(Transaction.user_id == user_id)
    if type_filter:
        query = query.filter(Transaction.type == type_filter)
    if status_filter:
        query = query.filter(Transaction.status == status_filter)
    query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())

    transactions, meta = paginate(query, page, limit)
    return {"transactions": [transaction.to_dict() for transaction in transactions], **meta}
