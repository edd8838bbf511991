"""Pydantic schemas for agreement results."""

from trustbridge.schemas.agreement import (
    AgreementReceipt,
    AgreementView,
    CreateAgreementResult,
)

__all__ = [
    "AgreementReceipt",
    "AgreementView",
    "CreateAgreementResult",
]
