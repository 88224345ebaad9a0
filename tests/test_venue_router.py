"""
Tests for the venue router: probe fallback, execute finality and the
whole-unit budget policy.
"""

from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from postwatch.ca_sniper.signals.signal_schema import Chain, TradeDirection, TradeReceipt
from postwatch.ca_sniper.venues.bsc_venues import PancakeSwapVenue
from postwatch.ca_sniper.venues.router import (
    INSUFFICIENT_BALANCE_ERROR,
    NOT_AVAILABLE_ERROR,
    VenueRouter,
    build_venue_router,
    spendable_budget,
)
from postwatch.ca_sniper.venues.solana_venues import JupiterVenue, PumpFunVenue
from tests.fakes import BSC_TOKEN, USDC_MINT, FakeVenue, FakeWallet


def solana_buy_router(*venues, balance=5.0, cap=None):
    return VenueRouter(
        {(Chain.SOLANA, TradeDirection.BUY): list(venues)},
        wallets={Chain.SOLANA: FakeWallet(balance)},
        buy_caps={Chain.SOLANA: cap} if cap is not None else None,
    )


@pytest.mark.parametrize(
    "balance, expected",
    [(3.7, 3), (1.0, 1), (0.9, 0), (0.0, 0), (-2.0, 0), (12.999, 12)],
)
def test_spendable_budget_floors(balance, expected):
    assert spendable_budget(balance) == expected


@pytest.mark.asyncio
async def test_first_available_venue_executes():
    v1 = FakeVenue("V1", available=False)
    v2 = FakeVenue("V2", available=False)
    v3 = FakeVenue("V3", available=True)
    router = solana_buy_router(v1, v2, v3)

    result = await router.acquire(Chain.SOLANA, USDC_MINT, budget=2.0)

    assert result.success is True
    assert result.venue == "V3"
    assert v1.execute_calls == [] and v2.execute_calls == []
    assert len(v3.execute_calls) == 1
    assert result.proceeds == 1000.0
    assert result.external_ref == "tx-V3"


@pytest.mark.asyncio
async def test_failed_execute_is_final():
    v1 = FakeVenue("V1", receipt=TradeReceipt(success=False, error="slippage exceeded"))
    v2 = FakeVenue("V2")
    v3 = FakeVenue("V3")
    router = solana_buy_router(v1, v2, v3)

    result = await router.acquire(Chain.SOLANA, USDC_MINT, budget=2.0)

    assert result.success is False
    assert result.venue == "V1"
    assert result.error == "slippage exceeded"
    assert v2.probe_calls == [] and v3.probe_calls == []


@pytest.mark.asyncio
async def test_execute_exception_is_final():
    v1 = FakeVenue("V1", receipt=RuntimeError("tx reverted"))
    v2 = FakeVenue("V2")
    router = solana_buy_router(v1, v2)

    result = await router.acquire(Chain.SOLANA, USDC_MINT, budget=2.0)

    assert result.success is False
    assert "tx reverted" in result.error
    assert v2.probe_calls == []


@pytest.mark.asyncio
async def test_probe_exception_falls_through():
    v1 = FakeVenue("V1", available=ConnectionError("timeout"))
    v2 = FakeVenue("V2")
    router = solana_buy_router(v1, v2)

    result = await router.acquire(Chain.SOLANA, USDC_MINT, budget=2.0)

    assert result.success is True
    assert result.venue == "V2"


@pytest.mark.asyncio
async def test_no_venue_available():
    v1 = FakeVenue("V1", available=False)
    v2 = FakeVenue("V2", available=False)
    router = solana_buy_router(v1, v2)

    result = await router.acquire(Chain.SOLANA, USDC_MINT, budget=2.0)

    assert result.success is False
    assert result.error == NOT_AVAILABLE_ERROR
    assert result.venue is None
    assert v1.execute_calls == [] and v2.execute_calls == []


@pytest.mark.asyncio
async def test_spend_is_floor_of_balance():
    venue = FakeVenue("V1")
    router = solana_buy_router(venue, balance=3.7)

    result = await router.acquire(Chain.SOLANA, USDC_MINT)

    assert result.success is True
    assert result.amount_spent == 3.0
    assert venue.execute_calls == [(USDC_MINT, 3.0, TradeDirection.BUY)]


@pytest.mark.asyncio
async def test_balance_below_one_unit_fails_before_probing():
    venue = FakeVenue("V1")
    router = solana_buy_router(venue, balance=0.9)

    result = await router.acquire(Chain.SOLANA, USDC_MINT)

    assert result.success is False
    assert INSUFFICIENT_BALANCE_ERROR in result.error
    assert venue.probe_calls == []


@pytest.mark.asyncio
async def test_buy_cap_limits_spend():
    venue = FakeVenue("V1")
    router = solana_buy_router(venue, balance=25.4, cap=10.0)

    result = await router.acquire(Chain.SOLANA, USDC_MINT)

    assert result.amount_spent == 10.0


@pytest.mark.asyncio
async def test_balance_read_failure_is_a_failed_result():
    venue = FakeVenue("V1")
    router = solana_buy_router(venue, balance=ConnectionError("rpc down"))

    result = await router.acquire(Chain.SOLANA, USDC_MINT)

    assert result.success is False
    assert "rpc down" in result.error
    assert venue.probe_calls == []


@pytest.mark.asyncio
async def test_chain_without_venues_fails():
    router = solana_buy_router(FakeVenue("V1"))

    result = await router.acquire(Chain.BSC, BSC_TOKEN, budget=3.0)

    assert result.success is False
    assert result.chain is Chain.BSC


@pytest.mark.asyncio
async def test_liquidate_sells_full_quantity():
    sell_venue = FakeVenue("V1", receipt=TradeReceipt(success=True, external_ref="sig", amount_out=1.25))
    router = VenueRouter({(Chain.SOLANA, TradeDirection.SELL): [sell_venue]})

    result = await router.liquidate(Chain.SOLANA, USDC_MINT, 5000)

    assert result.success is True
    assert result.direction is TradeDirection.SELL
    assert result.proceeds == 1.25
    assert sell_venue.execute_calls == [(USDC_MINT, 5000, TradeDirection.SELL)]


@pytest.mark.asyncio
async def test_liquidate_zero_quantity_rejected_without_probe():
    sell_venue = FakeVenue("V1")
    router = VenueRouter({(Chain.SOLANA, TradeDirection.SELL): [sell_venue]})

    result = await router.liquidate(Chain.SOLANA, USDC_MINT, 0)

    assert result.success is False
    assert sell_venue.probe_calls == []


def test_venue_order_reports_names():
    router = solana_buy_router(FakeVenue("Pump.fun"), FakeVenue("Meteora"), FakeVenue("Raydium"))
    assert router.venue_order(Chain.SOLANA, TradeDirection.BUY) == ["Pump.fun", "Meteora", "Raydium"]
    assert router.venue_order(Chain.BSC, TradeDirection.SELL) == []


# ---------------------------------------------------------------------------
# build_venue_router
# ---------------------------------------------------------------------------

def bsc_wallet_stub():
    wallet = MagicMock()
    wallet.w3.eth.contract.return_value = MagicMock()
    return wallet


def test_factory_default_venue_orders(make_config):
    router = build_venue_router(
        make_config(auto_execute=True),
        solana_wallet=FakeWallet(3.0),
        bsc_wallet=bsc_wallet_stub(),
        jupiter=MagicMock(),
    )

    assert router.venue_order(Chain.SOLANA, TradeDirection.BUY) == ["Pump.fun", "Meteora", "Raydium"]
    assert router.venue_order(Chain.SOLANA, TradeDirection.SELL) == ["Meteora", "Raydium", "Pump.fun"]
    assert router.venue_order(Chain.BSC, TradeDirection.BUY) == ["PancakeSwap"]
    assert router.venue_order(Chain.BSC, TradeDirection.SELL) == ["PancakeSwap"]


def test_factory_builds_venues_from_registry(make_config):
    cfg = make_config(auto_execute=True)
    cfg.trading = replace(cfg.trading, solana_buy_venues=("raydium", "pumpfun"))
    jupiter = MagicMock()
    solana_wallet = FakeWallet(3.0)
    bsc_wallet = bsc_wallet_stub()

    router = build_venue_router(cfg, solana_wallet=solana_wallet, bsc_wallet=bsc_wallet, jupiter=jupiter)

    raydium, pumpfun = router.venues[(Chain.SOLANA, TradeDirection.BUY)]
    assert isinstance(raydium, JupiterVenue) and raydium.name == "Raydium"
    assert raydium.jupiter is jupiter and raydium.wallet is solana_wallet
    assert isinstance(pumpfun, PumpFunVenue) and pumpfun.wallet is solana_wallet
    (pancakeswap,) = router.venues[(Chain.BSC, TradeDirection.BUY)]
    assert isinstance(pancakeswap, PancakeSwapVenue) and pancakeswap.wallet is bsc_wallet
    assert router.wallets == {Chain.SOLANA: solana_wallet, Chain.BSC: bsc_wallet}


@pytest.mark.asyncio
async def test_factory_chain_without_wallet_has_no_venues(make_config):
    router = build_venue_router(
        make_config(auto_execute=True), solana_wallet=FakeWallet(3.0), jupiter=MagicMock()
    )

    assert router.venue_order(Chain.BSC, TradeDirection.BUY) == []
    assert router.venue_order(Chain.BSC, TradeDirection.SELL) == []
    result = await router.acquire(Chain.BSC, BSC_TOKEN)
    assert result.success is False
    assert Chain.BSC not in router.wallets


@pytest.mark.asyncio
async def test_factory_default_config_spends_whole_balance(make_config):
    router = build_venue_router(
        make_config(auto_execute=True), solana_wallet=FakeWallet(15.3), jupiter=MagicMock()
    )
    venue = FakeVenue("Pump.fun")
    router.venues[(Chain.SOLANA, TradeDirection.BUY)] = [venue]

    result = await router.acquire(Chain.SOLANA, USDC_MINT)

    assert router.buy_caps == {}
    assert result.success is True
    assert result.amount_spent == 15.0
    assert venue.execute_calls == [(USDC_MINT, 15.0, TradeDirection.BUY)]


@pytest.mark.asyncio
async def test_factory_applies_configured_cap(make_config):
    cfg = make_config(auto_execute=True)
    cfg.trading = replace(cfg.trading, max_buy_amount_sol=4.0)
    router = build_venue_router(cfg, solana_wallet=FakeWallet(15.3), jupiter=MagicMock())
    router.venues[(Chain.SOLANA, TradeDirection.BUY)] = [FakeVenue("Pump.fun")]

    result = await router.acquire(Chain.SOLANA, USDC_MINT)

    assert router.buy_caps == {Chain.SOLANA: 4.0}
    assert result.amount_spent == 4.0
