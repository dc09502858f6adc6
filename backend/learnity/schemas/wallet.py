"""
Wallet request schemas.
"""

from decimal import Decimal
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class DepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, le=Decimal("100000"), decimal_places=2)
    reference_id: str = Field(..., min_length=1, max_length=100)
    receipt_url: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=500)


class WithdrawalRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, le=Decimal("100000"), decimal_places=2)
    description: Optional[str] = Field(None, max_length=500)
    account_details: Optional[Dict[str, Any]] = None


class TransactionProcess(BaseModel):
    status: Literal["completed", "rejected"]
    note: Optional[str] = Field(None, max_length=1000)
