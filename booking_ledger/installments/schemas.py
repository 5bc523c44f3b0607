# booking_ledger/installments/schemas.py

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from booking_ledger.installments.links import LinkType
from booking_ledger.installments.models import InstallmentStatus
from booking_ledger.installments.services import Urgency


class InstallmentResponse(BaseModel):
    """
    One scheduled installment. `outstanding` is zero once paid; covered
    installments report link_type `externally_covered` and paid_amount 0.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_id: int
    installment_number: int
    due_date: date
    amount: Decimal
    paid_amount: Decimal
    outstanding: Decimal
    status: InstallmentStatus
    paid_date: Optional[date] = None
    link_type: LinkType
    ledger_entry_id: Optional[int] = None


class SettleInstallmentRequest(BaseModel):
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {"payment_date": "2025-03-01", "attachment_ref": "receipts/2025/03/0001.pdf"}
        ]
    })

    payment_date: Optional[date] = Field(None, description="Defaults to today")
    attachment_ref: Optional[str] = Field(
        None, max_length=255, description="Reference of an already stored receipt"
    )
    require_attachment: Optional[bool] = Field(
        None, description="Overrides the configured attachment policy for this call"
    )


class SettleInstallmentResponse(BaseModel):
    installment: InstallmentResponse
    ledger_entry_id: int
    remaining: Decimal


class ReverseInstallmentResponse(BaseModel):
    installment: InstallmentResponse
    deleted_ledger_entry_id: Optional[int] = None
    remaining: Decimal


class UpcomingInstallmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    installment_id: int
    booking_id: int
    installment_number: int
    due_date: date
    outstanding: Decimal
    days_until_due: int
    urgency: Urgency


class UpcomingInstallmentListResponse(BaseModel):
    items: List[UpcomingInstallmentResponse]
    total_items: int
    days_ahead: int
