"""Unit tests for LedgerApplicationService schema composition."""

import pytest

from src.rl_common.auth import Principal
from src.rl_common.errors import AuthorizationError
from src.rl_ledger.application.schemas import BalanceResponse
from src.rl_ledger.application.service import LedgerApplicationService
from src.rl_ledger.infrastructure.memory_store import InMemoryLedgerStore


@pytest.fixture
def service(store: InMemoryLedgerStore) -> LedgerApplicationService:
    return LedgerApplicationService(store)


class TestBalanceDetails:
    async def test_unknown_user_zero_view(
        self, store: InMemoryLedgerStore, service: LedgerApplicationService
    ) -> None:
        result = await service.get_balance_details("ghost")

        assert isinstance(result, BalanceResponse)
        assert result.total_balance == 0
        assert result.total_inr == 0.0
        assert result.open_holds == []
        assert await store.get_account("ghost") is None  # reads never create

    async def test_balances_in_inr(
        self, service: LedgerApplicationService, admin: Principal
    ) -> None:
        await service.credit_purchase(admin, "u1", 1234, "pay_1", None)
        await service.place_hold("u1", "bid-1", 234, "auc-1")

        result = await service.get_balance_details("u1")

        assert (result.available_balance, result.blocked_balance) == (1000, 234)
        assert result.available_inr == 50.0
        assert result.blocked_inr == 11.7
        assert result.total_inr == 61.7
        assert result.total_display == "₹61.70"
        assert [h.bid_id for h in result.open_holds] == ["bid-1"]


class TestTransactions:
    async def test_page_to_offset(
        self, service: LedgerApplicationService, admin: Principal
    ) -> None:
        for i in range(5):
            await service.credit_purchase(admin, "u1", 10 + i, None, None)

        page2 = await service.list_transactions("u1", None, page=2, page_size=2)

        assert [item.amount for item in page2.items] == [12, 11]
        assert page2.pagination.total_count == 5
        assert page2.pagination.total_pages == 3
        assert page2.pagination.has_next_page is True
        assert page2.items[0].id.isdigit()


class TestHolds:
    async def test_place_and_resolve(
        self, service: LedgerApplicationService, admin: Principal
    ) -> None:
        await service.credit_purchase(admin, "u1", 1000, None, None)
        hold = await service.place_hold("u1", "bid-1", 300, None)
        assert hold.status == "OPEN"

        result = await service.resolve_hold(admin, "bid-1", "won")

        assert result.hold.status == "CAPTURED"
        assert result.transaction is not None
        assert result.transaction.type == "bid_capture"
        again = await service.resolve_hold(admin, "bid-1", "won")
        assert again.already_resolved is True
        assert again.transaction is None

    async def test_resolve_requires_admin(
        self, service: LedgerApplicationService, user: Principal
    ) -> None:
        with pytest.raises(AuthorizationError):
            await service.resolve_hold(user, "bid-1", "won")

    async def test_purchase_requires_admin(
        self, service: LedgerApplicationService, user: Principal
    ) -> None:
        with pytest.raises(AuthorizationError):
            await service.credit_purchase(user, "u1", 100, None, None)
