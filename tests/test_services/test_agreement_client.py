"""Tests for the AgreementClient (party-centric API)."""

from __future__ import annotations

import pytest
from conftest import CLIENT, OUTSIDER, PROVIDER, STARTING_BALANCE, make_client

from trustbridge.domain.enums import AgreementStatus
from trustbridge.domain.exceptions import (
    AgreementNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidProviderError,
    InvalidStateError,
    NotAuthorizedError,
    TransportFailureError,
)
from trustbridge.domain.models import ZERO_ADDRESS
from trustbridge.domain.operations import CancelReservation, RegisterAgreement
from trustbridge.engine import EscrowLedgerEngine
from trustbridge.services.agreement_client import AgreementClient
from trustbridge.transport.local import LocalTransport


class RecordingTransport(LocalTransport):
    """LocalTransport that records calls and can fail some of them."""

    def __init__(
        self,
        *args,
        fail_register: bool = False,
        fail_cancel: bool = False,
        flaky_queries: int = 0,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.fail_register = fail_register
        self.fail_cancel = fail_cancel
        self.flaky_queries = flaky_queries
        self.submitted: list[str] = []
        self.queried: list[str] = []

    async def submit(self, operation):
        self.submitted.append(operation.name)
        if self.fail_register and isinstance(operation, RegisterAgreement):
            raise TransportFailureError(operation.name, "connection reset")
        if self.fail_cancel and isinstance(operation, CancelReservation):
            raise TransportFailureError(operation.name, "connection reset")
        return await super().submit(operation)

    async def query(self, operation):
        self.queried.append(operation.name)
        if self.flaky_queries:
            self.flaky_queries -= 1
            raise TransportFailureError(operation.name, "connection reset")
        return await super().query(operation)


class TestScenarios:
    @pytest.mark.asyncio
    async def test_happy_path(
        self,
        engine: EscrowLedgerEngine,
        client_api: AgreementClient,
        provider_api: AgreementClient,
    ) -> None:
        created = await client_api.create_agreement(PROVIDER, "100.0", "logo")
        assert created.status is AgreementStatus.PENDING
        assert engine.balance_of(CLIENT) == STARTING_BALANCE - 100_000_000
        assert engine.custodied_total() == 100_000_000

        accepted = await provider_api.accept(created.id)
        assert accepted.status is AgreementStatus.ACTIVE
        assert engine.custodied_total() == 100_000_000

        released = await client_api.release(created.id)
        assert released.status is AgreementStatus.COMPLETED
        assert engine.balance_of(PROVIDER) == 100_000_000
        assert engine.custodied_total() == 0

    @pytest.mark.asyncio
    async def test_refund_before_accept(
        self, engine: EscrowLedgerEngine, client_api: AgreementClient
    ) -> None:
        created = await client_api.create_agreement(PROVIDER, "50", "draft")
        assert engine.balance_of(CLIENT) == STARTING_BALANCE - 50_000_000

        refunded = await client_api.refund(created.id)
        assert refunded.status is AgreementStatus.REFUNDED
        assert engine.balance_of(CLIENT) == STARTING_BALANCE
        assert engine.custodied_total() == 0

    @pytest.mark.asyncio
    async def test_refund_after_accept_is_rejected(
        self,
        engine: EscrowLedgerEngine,
        client_api: AgreementClient,
        provider_api: AgreementClient,
    ) -> None:
        created = await client_api.create_agreement(PROVIDER, "75.5", "audit")
        await provider_api.accept(created.id)

        with pytest.raises(InvalidStateError):
            await client_api.refund(created.id)

        view = await client_api.get_status(created.id)
        assert view.status is AgreementStatus.ACTIVE
        assert engine.custody_for(created.id) == 75_500_000


class TestCreate:
    @pytest.mark.asyncio
    async def test_result_fields(self, client_api: AgreementClient) -> None:
        created = await client_api.create_agreement(PROVIDER, "100.0", "logo")

        assert created.amount == "100"
        assert created.amount_raw == 100_000_000
        assert created.provider == PROVIDER
        assert created.description == "logo"
        assert created.tx_hash.startswith("0x")
        assert created.explorer is None

    @pytest.mark.asyncio
    async def test_explorer_link(self, engine: EscrowLedgerEngine) -> None:
        api = AgreementClient(
            LocalTransport(engine, CLIENT, timeout=5.0),
            decimals=6,
            explorer_url="https://sepolia.basescan.org/",
        )
        created = await api.create_agreement(PROVIDER, "1", "x")
        assert created.explorer == f"https://sepolia.basescan.org/tx/{created.tx_hash}"

    @pytest.mark.asyncio
    async def test_excess_precision_truncates(self, client_api: AgreementClient) -> None:
        created = await client_api.create_agreement(PROVIDER, "1.2345679", "x")
        assert created.amount_raw == 1_234_567
        assert created.amount == "1.234567"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-1", "0.0000001"])
    async def test_invalid_amount_submits_nothing(self, engine: EscrowLedgerEngine, amount: str) -> None:
        transport = RecordingTransport(engine, CLIENT, timeout=5.0)
        api = AgreementClient(transport, decimals=6)

        with pytest.raises(InvalidAmountError):
            await api.create_agreement(PROVIDER, amount, "x")
        assert transport.submitted == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", [CLIENT, ZERO_ADDRESS])
    async def test_invalid_provider_leaves_nothing_behind(
        self, engine: EscrowLedgerEngine, client_api: AgreementClient, provider: str
    ) -> None:
        with pytest.raises(InvalidProviderError):
            await client_api.create_agreement(provider, "10", "x")

        assert engine.custodied_total() == 0
        assert engine.reservation_of(CLIENT) == 0
        assert engine.balance_of(CLIENT) == STARTING_BALANCE
        assert engine.list_for(CLIENT) == []

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, engine: EscrowLedgerEngine, client_api: AgreementClient) -> None:
        with pytest.raises(InsufficientFundsError):
            await client_api.create_agreement(PROVIDER, "1000.000001", "x")
        assert engine.reservation_of(CLIENT) == 0

    @pytest.mark.asyncio
    async def test_transport_failure_cancels_reservation(self, engine: EscrowLedgerEngine) -> None:
        transport = RecordingTransport(engine, CLIENT, timeout=5.0, fail_register=True)
        api = AgreementClient(transport, decimals=6)

        with pytest.raises(TransportFailureError):
            await api.create_agreement(PROVIDER, "10", "x")

        assert transport.submitted == ["Reserve", "RegisterAgreement", CancelReservation().name]
        assert engine.reservation_of(CLIENT) == 0
        assert engine.custodied_total() == 0

    @pytest.mark.asyncio
    async def test_failed_cancel_keeps_original_error(self, engine: EscrowLedgerEngine) -> None:
        transport = RecordingTransport(engine, CLIENT, timeout=5.0, fail_cancel=True)
        api = AgreementClient(transport, decimals=6)

        with pytest.raises(InvalidProviderError):
            await api.create_agreement(CLIENT, "10", "x")

        assert transport.submitted.count("CancelReservation") == 3
        assert engine.balance_of(CLIENT) == STARTING_BALANCE
        assert engine.custodied_total() == 0


class TestTransitions:
    @pytest.mark.asyncio
    async def test_client_cannot_accept(self, client_api: AgreementClient) -> None:
        created = await client_api.create_agreement(PROVIDER, "10", "x")
        with pytest.raises(NotAuthorizedError):
            await client_api.accept(created.id)

    @pytest.mark.asyncio
    async def test_outsider_cannot_release(
        self,
        client_api: AgreementClient,
        provider_api: AgreementClient,
        outsider_api: AgreementClient,
    ) -> None:
        created = await client_api.create_agreement(PROVIDER, "10", "x")
        await provider_api.accept(created.id)

        with pytest.raises(NotAuthorizedError):
            await outsider_api.release(created.id)

    @pytest.mark.asyncio
    async def test_unknown_agreement(self, provider_api: AgreementClient) -> None:
        with pytest.raises(AgreementNotFoundError):
            await provider_api.accept("0x" + "ff" * 32)

    @pytest.mark.asyncio
    async def test_lost_confirmation_then_retry(
        self, engine: EscrowLedgerEngine, client_api: AgreementClient
    ) -> None:
        created = await client_api.create_agreement(PROVIDER, "10", "x")
        slow_provider = make_client(engine, PROVIDER, timeout=0.01, confirmation_latency=1.0)

        with pytest.raises(TransportFailureError) as exc_info:
            await slow_provider.accept(created.id)
        assert exc_info.value.outcome_unknown
        assert engine.get(created.id).status is AgreementStatus.ACTIVE

        provider_api = make_client(engine, PROVIDER)
        with pytest.raises(InvalidStateError):
            await provider_api.accept(created.id)


class TestQueries:
    @pytest.mark.asyncio
    async def test_status_view(self, client_api: AgreementClient) -> None:
        created = await client_api.create_agreement(PROVIDER, "100.0", "logo")
        view = await client_api.get_status(created.id)

        assert view.id == created.id
        assert view.client == CLIENT
        assert view.provider == PROVIDER
        assert view.amount == "100"
        assert view.amount_raw == 100_000_000
        assert view.status is AgreementStatus.PENDING
        assert view.status_code == 0
        assert view.created_at == view.updated_at

    @pytest.mark.asyncio
    async def test_status_code_tracks_status(
        self, client_api: AgreementClient, provider_api: AgreementClient
    ) -> None:
        created = await client_api.create_agreement(PROVIDER, "1", "x")
        await provider_api.accept(created.id)
        await client_api.release(created.id)

        view = await provider_api.get_status(created.id)
        assert view.status_code == AgreementStatus.COMPLETED.code == 2

    @pytest.mark.asyncio
    async def test_list_defaults_to_own_identity(
        self, client_api: AgreementClient, provider_api: AgreementClient
    ) -> None:
        first = await client_api.create_agreement(PROVIDER, "1", "a")
        second = await client_api.create_agreement(OUTSIDER, "2", "b")

        own = await client_api.list_agreements()
        assert [v.id for v in own] == [first.id, second.id]

        provider_side = await provider_api.list_agreements()
        assert [v.id for v in provider_side] == [first.id]

        other = await provider_api.list_agreements(OUTSIDER)
        assert [v.id for v in other] == [second.id]

    @pytest.mark.asyncio
    async def test_list_status_filter(
        self, client_api: AgreementClient, provider_api: AgreementClient
    ) -> None:
        first = await client_api.create_agreement(PROVIDER, "1", "a")
        second = await client_api.create_agreement(PROVIDER, "2", "b")
        third = await client_api.create_agreement(PROVIDER, "3", "c")
        await provider_api.accept(second.id)
        await client_api.refund(third.id)

        pending = await client_api.list_agreements(status=AgreementStatus.PENDING)
        assert [v.id for v in pending] == [first.id]

        active = await client_api.list_agreements(status=AgreementStatus.ACTIVE)
        assert [v.id for v in active] == [second.id]

    @pytest.mark.asyncio
    async def test_queries_retry_transport_failures(self, engine: EscrowLedgerEngine) -> None:
        transport = RecordingTransport(engine, CLIENT, timeout=5.0, flaky_queries=2)
        api = AgreementClient(transport, decimals=6)

        assert await api.get_balance() == "1000"
        assert transport.queried == ["GetBalance"] * 3

    @pytest.mark.asyncio
    async def test_queries_give_up(self, engine: EscrowLedgerEngine) -> None:
        transport = RecordingTransport(engine, CLIENT, timeout=5.0, flaky_queries=5)
        api = AgreementClient(transport, decimals=6)

        with pytest.raises(TransportFailureError):
            await api.get_balance()
        assert len(transport.queried) == 3

    @pytest.mark.asyncio
    async def test_list_empty(self, outsider_api: AgreementClient) -> None:
        assert await outsider_api.list_agreements() == []

    @pytest.mark.asyncio
    async def test_balances_and_custody(
        self, client_api: AgreementClient, provider_api: AgreementClient
    ) -> None:
        created = await client_api.create_agreement(PROVIDER, "100.0", "logo")

        assert await client_api.get_balance() == "900"
        assert await client_api.get_balance(PROVIDER) == "0"
        assert await client_api.get_custody(created.id) == "100"
        assert await client_api.get_custody() == "100"

        await provider_api.accept(created.id)
        await client_api.release(created.id)

        assert await provider_api.get_balance() == "100"
        assert await client_api.get_custody(created.id) == "0"

    @pytest.mark.asyncio
    async def test_history(self, client_api: AgreementClient) -> None:
        created = await client_api.create_agreement(PROVIDER, "5", "x")
        await client_api.refund(created.id)

        history = await client_api.get_history(created.id)
        assert [h["event_type"] for h in history] == ["AGREEMENT_CREATED", "AGREEMENT_REFUNDED"]
        assert history[-1]["new_status"] == "REFUNDED"
