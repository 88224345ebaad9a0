"""Venue adapters and the price source, with HTTP and chain access faked."""

import base64
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from web3 import AsyncWeb3

from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.portfolio.price_source import PriceSource
from postwatch.ca_sniper.signals.signal_schema import Chain, TradeDirection
from postwatch.ca_sniper.venues.bsc_venues import (
    PANCAKE_ROUTER_V2,
    PROBE_AMOUNT_WEI,
    WBNB,
    PancakeSwapVenue,
    min_amount_out,
)
from postwatch.ca_sniper.venues.jupiter import JupiterClient
from postwatch.ca_sniper.venues.solana_venues import PumpFunVenue, meteora_venue
from tests.fakes import BSC_TOKEN, USDC_MINT


def test_min_amount_out_applies_slippage():
    assert min_amount_out(10_000, 500) == 9_500
    assert min_amount_out(10_000, 0) == 10_000
    assert min_amount_out(999, 100) == 989


def pancakeswap_with_quote(amounts):
    """PancakeSwapVenue over a stub router contract and wallet."""
    contract = MagicMock()
    contract.functions.getAmountsOut.return_value.call = AsyncMock(return_value=amounts)
    wallet = MagicMock()
    wallet.address = "0x000000000000000000000000000000000000dEaD"
    wallet.w3.eth.contract.return_value = contract
    wallet.token_balance = AsyncMock()
    wallet.send_transaction = AsyncMock(return_value="0xhash")
    wallet.approve = AsyncMock()
    return PancakeSwapVenue(wallet), wallet, contract


@pytest.mark.asyncio
async def test_pancakeswap_probe_quotes_wbnb_to_token():
    venue, wallet, contract = pancakeswap_with_quote([PROBE_AMOUNT_WEI, 4200])

    probe = await venue.probe(BSC_TOKEN)

    assert probe.available is True
    assert probe.metadata["tokens_per_0_1_bnb"] == 4200
    contract.functions.getAmountsOut.assert_called_once_with(
        PROBE_AMOUNT_WEI, [AsyncWeb3.to_checksum_address(WBNB), BSC_TOKEN]
    )
    assert wallet.w3.eth.contract.call_args.kwargs["address"] == PANCAKE_ROUTER_V2


@pytest.mark.asyncio
async def test_pancakeswap_probe_unavailable_on_zero_quote():
    venue, _, _ = pancakeswap_with_quote([PROBE_AMOUNT_WEI, 0])
    assert (await venue.probe(BSC_TOKEN)).available is False


@pytest.mark.asyncio
async def test_pancakeswap_buy_sends_value_with_min_out():
    quoted = 10_000
    venue, wallet, contract = pancakeswap_with_quote([2 * 10**18, quoted])
    wallet.token_balance.side_effect = [100, 9_800]

    receipt = await venue.execute(BSC_TOKEN, 2.0, TradeDirection.BUY)

    path = [AsyncWeb3.to_checksum_address(WBNB), BSC_TOKEN]
    contract.functions.getAmountsOut.assert_called_once_with(2 * 10**18, path)
    swap = contract.functions.swapExactETHForTokensSupportingFeeOnTransferTokens
    min_out, swap_path, to, _deadline = swap.call_args.args
    assert min_out == min_amount_out(quoted, config.trading.slippage_bps)
    assert swap_path == path
    assert to == wallet.address
    wallet.send_transaction.assert_awaited_once_with(swap.return_value, value=2 * 10**18)
    wallet.approve.assert_not_awaited()
    assert receipt.success is True
    assert receipt.external_ref == "0xhash"
    assert receipt.amount_out == 9_700


@pytest.mark.asyncio
async def test_pancakeswap_sell_approves_before_swapping():
    quoted = 2 * 10**17
    venue, wallet, contract = pancakeswap_with_quote([12_345, quoted])

    receipt = await venue.execute(BSC_TOKEN, 12_345, TradeDirection.SELL)

    path = [BSC_TOKEN, AsyncWeb3.to_checksum_address(WBNB)]
    contract.functions.getAmountsOut.assert_called_once_with(12_345, path)
    wallet.approve.assert_awaited_once_with(BSC_TOKEN, PANCAKE_ROUTER_V2, 12_345)
    order = [name for name, _, _ in wallet.mock_calls if name in ("approve", "send_transaction")]
    assert order == ["approve", "send_transaction"]
    swap = contract.functions.swapExactTokensForETHSupportingFeeOnTransferTokens
    quantity, min_out, swap_path, to, _deadline = swap.call_args.args
    assert quantity == 12_345
    assert min_out == min_amount_out(quoted, config.trading.slippage_bps)
    assert swap_path == path
    assert to == wallet.address
    wallet.send_transaction.assert_awaited_once_with(swap.return_value)
    assert receipt.amount_out == pytest.approx(0.2)


@pytest.mark.asyncio
async def test_pumpfun_probe_available_on_bonding_curve():
    def handler(request):
        assert request.url.path == f"/coins/{USDC_MINT}"
        return httpx.Response(200, json={"name": "Dog", "symbol": "DOG", "complete": False})

    venue = PumpFunVenue(MagicMock(), transport=httpx.MockTransport(handler))
    probe = await venue.probe(USDC_MINT)

    assert probe.available is True
    assert probe.metadata["symbol"] == "DOG"


@pytest.mark.asyncio
async def test_pumpfun_probe_unavailable_after_migration():
    venue = PumpFunVenue(
        MagicMock(),
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"complete": True})),
    )
    assert (await venue.probe(USDC_MINT)).available is False


@pytest.mark.asyncio
async def test_pumpfun_probe_unknown_mint():
    venue = PumpFunVenue(MagicMock(), transport=httpx.MockTransport(lambda r: httpx.Response(404)))
    assert (await venue.probe(USDC_MINT)).available is False


@pytest.mark.asyncio
async def test_pumpfun_buy_measures_tokens_received():
    wallet = MagicMock()
    wallet.address = "Wallet1111"
    wallet.token_balance = AsyncMock(side_effect=[100, 5100])
    wallet.sign_and_send = AsyncMock(return_value="sig123")
    captured = {}

    def handler(request):
        captured["body"] = request.content.decode()
        return httpx.Response(200, content=b"unsigned-tx")

    venue = PumpFunVenue(wallet, transport=httpx.MockTransport(handler))
    receipt = await venue.execute(USDC_MINT, 2.0, TradeDirection.BUY)

    assert receipt.success is True
    assert receipt.external_ref == "sig123"
    assert receipt.amount_out == 5000
    wallet.sign_and_send.assert_awaited_once_with(b"unsigned-tx")
    assert "action=buy" in captured["body"]
    assert "denominatedInSol=true" in captured["body"]


@pytest.mark.asyncio
async def test_jupiter_quote_no_route_returns_none():
    client = JupiterClient(transport=httpx.MockTransport(lambda r: httpx.Response(400, json={"error": "no route"})))
    assert await client.quote("A", "B", 1000) is None


@pytest.mark.asyncio
async def test_jupiter_quote_passes_dex_filter():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"outAmount": "1234"})

    client = JupiterClient(transport=httpx.MockTransport(handler))
    quote = await client.quote("A", "B", 1000, dexes=["Meteora", "Meteora DLMM"])

    assert quote["outAmount"] == "1234"
    assert seen[0].url.params["dexes"] == "Meteora,Meteora DLMM"
    assert seen[0].url.params["amount"] == "1000"


@pytest.mark.asyncio
async def test_jupiter_swap_transaction_decodes_payload():
    raw = b"\x01\x02versioned"

    def handler(request):
        return httpx.Response(200, json={"swapTransaction": base64.b64encode(raw).decode()})

    client = JupiterClient(transport=httpx.MockTransport(handler))
    assert await client.swap_transaction({"outAmount": "1"}, "Wallet1111") == raw


@pytest.mark.asyncio
async def test_amm_venue_probe_uses_jupiter_route():
    jupiter = MagicMock()
    jupiter.quote = AsyncMock(return_value={"outAmount": "777", "routePlan": [{"swapInfo": {"label": "Meteora DLMM"}}]})
    venue = meteora_venue(jupiter, MagicMock())

    probe = await venue.probe(USDC_MINT)

    assert probe.available is True
    assert probe.metadata["route"] == ["Meteora DLMM"]
    assert "Meteora DLMM" in jupiter.quote.await_args.kwargs["dexes"]


@pytest.mark.asyncio
async def test_amm_venue_unavailable_without_route():
    jupiter = MagicMock()
    jupiter.quote = AsyncMock(return_value=None)
    venue = meteora_venue(jupiter, MagicMock())

    assert (await venue.probe(USDC_MINT)).available is False


@pytest.mark.asyncio
async def test_price_source_solana_unit_price():
    jupiter = MagicMock()
    jupiter.quote = AsyncMock(return_value={"outAmount": "50"})
    source = PriceSource(jupiter=jupiter, quote_amount=0.1)

    price = await source.quote(Chain.SOLANA, USDC_MINT)

    assert price == pytest.approx(0.002)


@pytest.mark.asyncio
async def test_price_source_bsc_and_failures():
    pancakeswap = MagicMock()
    pancakeswap.swap_path = MagicMock(return_value=["WBNB", BSC_TOKEN])
    pancakeswap.amounts_out = AsyncMock(side_effect=[1000, RuntimeError("execution reverted")])
    source = PriceSource(pancakeswap=pancakeswap, quote_amount=0.1)

    assert await source.quote(Chain.BSC, BSC_TOKEN) == pytest.approx(0.0001)
    assert await source.quote(Chain.BSC, BSC_TOKEN) is None
    # No Jupiter client configured
    assert await source.quote(Chain.SOLANA, USDC_MINT) is None
