"""Application services — agreement orchestration."""

from trustbridge.services.agreement_client import AgreementClient
from trustbridge.services.amounts import USDC_DECIMALS, from_fixed_point, to_fixed_point

__all__ = ["AgreementClient", "USDC_DECIMALS", "from_fixed_point", "to_fixed_point"]
