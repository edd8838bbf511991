"""Shared test fixtures for the TrustBridge test suite.

Provides:
    - Well-known wallet identities
    - A funded in-memory asset ledger and engine
    - Agreement clients signed as client, provider and an outsider
"""

from __future__ import annotations

import pytest

from trustbridge.engine import EscrowLedgerEngine, InMemoryAssetLedger
from trustbridge.services.agreement_client import AgreementClient
from trustbridge.transport.local import LocalTransport

CLIENT = "0x" + "c1" * 20
PROVIDER = "0x" + "b2" * 20
OUTSIDER = "0x" + "e3" * 20

# 1000 USDC in fixed-point units
STARTING_BALANCE = 1_000_000_000


@pytest.fixture
def assets() -> InMemoryAssetLedger:
    return InMemoryAssetLedger({CLIENT: STARTING_BALANCE})


@pytest.fixture
def engine(assets: InMemoryAssetLedger) -> EscrowLedgerEngine:
    return EscrowLedgerEngine(assets)


def make_client(engine: EscrowLedgerEngine, identity: str, **transport_kwargs) -> AgreementClient:
    transport_kwargs.setdefault("timeout", 5.0)
    return AgreementClient(LocalTransport(engine, identity, **transport_kwargs), decimals=6)


@pytest.fixture
def client_api(engine: EscrowLedgerEngine) -> AgreementClient:
    return make_client(engine, CLIENT)


@pytest.fixture
def provider_api(engine: EscrowLedgerEngine) -> AgreementClient:
    return make_client(engine, PROVIDER)


@pytest.fixture
def outsider_api(engine: EscrowLedgerEngine) -> AgreementClient:
    return make_client(engine, OUTSIDER)
