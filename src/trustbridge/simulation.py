"""TrustBridge — End-to-End Simulation.

Runs escrow scenarios between a client bot and a provider bot against an
in-process ledger engine:

    Scenario 1: Happy Path
        - Client creates a 100 USDC agreement for "logo"
        - Provider accepts -> ACTIVE
        - Client releases -> COMPLETED, provider paid

    Scenario 2: Refund Before Acceptance
        - Client creates a 50 USDC agreement
        - Client refunds before the provider accepts -> REFUNDED

    Scenario 3: Refund After Acceptance
        - Client creates an agreement, provider accepts
        - Client tries to refund -> INVALID_STATE, stays ACTIVE

Usage:
    trustbridge-sim
    trustbridge-sim --scenario 1
    trustbridge-sim --scenario 3 --json-logs
"""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import dataclass
from decimal import Decimal

from trustbridge.config import get_settings
from trustbridge.domain.exceptions import TrustBridgeError
from trustbridge.engine import CUSTODY_ACCOUNT, EscrowLedgerEngine, InMemoryAssetLedger
from trustbridge.logging_config import get_logger, setup_logging
from trustbridge.services.agreement_client import AgreementClient
from trustbridge.services.amounts import to_fixed_point
from trustbridge.transport.local import LocalTransport

logger = get_logger("simulation")

CLIENT_WALLET = "0x" + "c1" * 20
PROVIDER_WALLET = "0x" + "b2" * 20
STARTING_BALANCE = Decimal("1000")


@dataclass
class Party:
    """A simulated agent with its own signed transport."""

    name: str
    wallet: str
    client: AgreementClient


def _bootstrap() -> tuple[EscrowLedgerEngine, Party, Party]:
    """Fresh engine with a funded client and an empty provider.

    TRUSTBRIDGE_IDENTITY replaces the default client wallet and
    TRUSTBRIDGE_CONTRACT names the custody account.
    """
    settings = get_settings()
    client_wallet = settings.identity or CLIENT_WALLET
    assets = InMemoryAssetLedger(
        {client_wallet: to_fixed_point(STARTING_BALANCE, settings.asset_decimals)}
    )
    engine = EscrowLedgerEngine(assets, custodian=settings.contract or CUSTODY_ACCOUNT)

    def party(name: str, wallet: str) -> Party:
        transport = LocalTransport(engine, wallet)
        return Party(name, transport.identity, AgreementClient(transport, explorer_url=settings.explorer_url))

    return engine, party("client", client_wallet), party("provider", PROVIDER_WALLET)


async def _balances(client: Party, provider: Party, agreement_id: str) -> dict:
    return {
        "client": await client.client.get_balance(),
        "provider": await provider.client.get_balance(),
        "custody": await client.client.get_custody(agreement_id),
    }


async def scenario_1_happy_path() -> dict:
    _, client, provider = _bootstrap()

    created = await client.client.create_agreement(PROVIDER_WALLET, "100.0", "logo")
    logger.info("client.created", agreement_id=created.id, status=created.status.value)

    accepted = await provider.client.accept(created.id)
    logger.info("provider.accepted", agreement_id=created.id, status=accepted.status.value)

    released = await client.client.release(created.id)
    logger.info("client.released", agreement_id=created.id, status=released.status.value)

    return {
        "scenario": "happy_path",
        "steps": [s.model_dump(mode="json") for s in (created, accepted, released)],
        "balances": await _balances(client, provider, created.id),
        "history": await client.client.get_history(created.id),
    }


async def scenario_2_refund_before_accept() -> dict:
    _, client, provider = _bootstrap()

    created = await client.client.create_agreement(PROVIDER_WALLET, "50.0", "landing page copy")
    refunded = await client.client.refund(created.id)
    logger.info("client.refunded", agreement_id=created.id, status=refunded.status.value)

    return {
        "scenario": "refund_before_accept",
        "steps": [s.model_dump(mode="json") for s in (created, refunded)],
        "balances": await _balances(client, provider, created.id),
    }


async def scenario_3_refund_after_accept() -> dict:
    _, client, provider = _bootstrap()

    created = await client.client.create_agreement(PROVIDER_WALLET, "75.5", "api integration")
    accepted = await provider.client.accept(created.id)

    try:
        await client.client.refund(created.id)
    except TrustBridgeError as exc:
        rejection = exc.to_dict()
        logger.info("client.refund_rejected", agreement_id=created.id, error=exc.code)
    else:
        raise RuntimeError("refund after acceptance was not rejected")

    status = await client.client.get_status(created.id)
    return {
        "scenario": "refund_after_accept",
        "steps": [s.model_dump(mode="json") for s in (created, accepted)],
        "rejection": rejection,
        "final": status.model_dump(mode="json"),
        "balances": await _balances(client, provider, created.id),
    }


SCENARIOS = {
    1: scenario_1_happy_path,
    2: scenario_2_refund_before_accept,
    3: scenario_3_refund_after_accept,
}


async def run_scenarios(numbers: list[int]) -> list[dict]:
    results = []
    for num in numbers:
        if num not in SCENARIOS:
            raise ValueError(f"Unknown scenario {num}. Available: {sorted(SCENARIOS)}")
        results.append(await SCENARIOS[num]())
    return results


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="TrustBridge escrow simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1, 2, or 3). Default: run all.",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines instead of colored console output.",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=args.json_logs or settings.json_logs)

    numbers = sorted(SCENARIOS) if args.scenario == 0 else [args.scenario]
    results = asyncio.run(run_scenarios(numbers))
    print(json.dumps(results, indent=2))


if __name__ == "__main__":
    main()
