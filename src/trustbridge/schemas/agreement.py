"""Pydantic schemas for the outward six-verb surface.

create, accept, release, refund return receipts; status and list return
agreement views. Amounts appear twice: ``amount`` at human scale and
``amount_raw`` in fixed-point units.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from trustbridge.domain.enums import AgreementStatus


class AgreementReceipt(BaseModel):
    """Result of a mutating verb (accept, release, refund)."""

    id: str
    status: AgreementStatus
    amount: str = Field(description="Amount at human scale, e.g. '100.5'")
    amount_raw: int = Field(description="Amount in fixed-point units")
    tx_hash: str = Field(description="Transport confirmation handle")
    explorer: str | None = None


class CreateAgreementResult(AgreementReceipt):
    """Result of the create verb, echoing the inputs."""

    provider: str
    description: str


class AgreementView(BaseModel):
    """Full agreement as returned by the status and list verbs."""

    id: str
    client: str
    provider: str
    amount: str
    amount_raw: int
    description: str
    status: AgreementStatus
    status_code: int = Field(ge=0, le=4)
    created_at: datetime
    updated_at: datetime
