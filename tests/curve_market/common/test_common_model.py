import pytest
from datetime import datetime, timedelta

from curve_market.common.enums import MarketEventType, OrderSide
from curve_market.common.math import UNIT_SCALE
from curve_market.common.model import (
    Genesis,
    MarketEvent,
    MarketParams,
    MarketState,
    Token,
    TransactionRequest,
    TransactionResult,
)


class TestToken:
    def test_token_defaults(self):
        """Test Token instantiation with default decimals."""
        token = Token(name="Test Token", symbol="TT")
        assert token.name == "Test Token"
        assert token.symbol == "TT"
        assert token.decimals == 18


class TestGenesis:
    def test_genesis_fields(self):
        genesis = Genesis(creator="alice", name="Pump", symbol="PMP", fee_collector="treasury")
        assert genesis.creator == "alice"
        assert genesis.fee_collector == "treasury"

    @pytest.mark.parametrize("missing", ["creator", "name", "symbol", "fee_collector"])
    def test_genesis_requires_every_field(self, missing):
        fields = {"creator": "alice", "name": "Pump", "symbol": "PMP", "fee_collector": "treasury"}
        fields[missing] = ""
        with pytest.raises(ValueError, match=missing):
            Genesis(**fields)


class TestMarketParams:
    def test_defaults(self):
        params = MarketParams()
        assert params.max_supply == 1_000_000 * UNIT_SCALE
        assert params.initial_unit_price == 10 ** 14
        assert params.max_unit_price == 10 ** 16
        assert params.fee_percent == 5
        assert params.max_sell_percent == 20
        assert params.sell_cooldown == timedelta(hours=1)
        assert params.creator_allocation == 200_000 * UNIT_SCALE

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_supply": 0},
            {"initial_unit_price": 0},
            {"initial_unit_price": 10, "max_unit_price": 9},
            {"fee_percent": -1},
            {"fee_percent": 100},
            {"max_sell_percent": 0},
            {"max_sell_percent": 101},
            {"sell_cooldown": timedelta(seconds=-1)},
            {"creator_allocation_percent": 101},
        ]
    )
    def test_invalid_params_raise(self, overrides):
        with pytest.raises(ValueError):
            MarketParams(**overrides)

    def test_boundary_params_accepted(self):
        params = MarketParams(
            initial_unit_price=10,
            max_unit_price=10,
            fee_percent=0,
            max_sell_percent=100,
            sell_cooldown=timedelta(0),
            creator_allocation_percent=0,
        )
        assert params.creator_allocation == 0

    def test_from_env_defaults(self, monkeypatch):
        for name in (
            "CURVE_MARKET_MAX_SUPPLY",
            "CURVE_MARKET_INITIAL_UNIT_PRICE",
            "CURVE_MARKET_MAX_UNIT_PRICE",
            "CURVE_MARKET_FEE_PERCENT",
            "CURVE_MARKET_MAX_SELL_PERCENT",
            "CURVE_MARKET_SELL_COOLDOWN_SECONDS",
            "CURVE_MARKET_CREATOR_ALLOCATION_PERCENT",
        ):
            monkeypatch.delenv(name, raising=False)
        assert MarketParams.from_env() == MarketParams()

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CURVE_MARKET_MAX_SUPPLY", "1000")
        monkeypatch.setenv("CURVE_MARKET_INITIAL_UNIT_PRICE", "10")
        monkeypatch.setenv("CURVE_MARKET_MAX_UNIT_PRICE", "10000")
        monkeypatch.setenv("CURVE_MARKET_FEE_PERCENT", "3")
        monkeypatch.setenv("CURVE_MARKET_MAX_SELL_PERCENT", "10")
        monkeypatch.setenv("CURVE_MARKET_SELL_COOLDOWN_SECONDS", "30")
        monkeypatch.setenv("CURVE_MARKET_CREATOR_ALLOCATION_PERCENT", "0")
        params = MarketParams.from_env()
        assert params.max_supply == 1000
        assert params.initial_unit_price == 10
        assert params.max_unit_price == 10000
        assert params.fee_percent == 3
        assert params.max_sell_percent == 10
        assert params.sell_cooldown == timedelta(seconds=30)
        assert params.creator_allocation_percent == 0

    def test_from_env_invalid_value(self, monkeypatch):
        monkeypatch.setenv("CURVE_MARKET_FEE_PERCENT", "100")
        with pytest.raises(ValueError):
            MarketParams.from_env()


class TestMarketState:
    def test_defaults_are_independent(self):
        a = MarketState()
        b = MarketState()
        a.total_sold["alice"] = 1
        assert a.total_fee_collected == 0
        assert b.total_sold == {}
        assert b.last_sell_time == {}


class TestTransactions:
    def test_request_defaults(self):
        request = TransactionRequest(account="alice", order_type=OrderSide.BUY)
        assert request.amount == 0

    def test_result_to_dict(self):
        ts = datetime(2024, 1, 1, 12, 0, 0)
        result = TransactionResult(
            order_type=OrderSide.SELL,
            account="alice",
            executed_amount=10,
            payment=100,
            unit_price=7,
            protocol_fee=5,
            net_amount=95,
            new_supply=990,
            timestamp=ts,
        )
        data = result.to_dict()
        assert data["order_type"] == "SELL"
        assert data["net_amount"] + data["protocol_fee"] == data["payment"]
        assert data["timestamp"] == "2024-01-01T12:00:00"

    def test_market_event_defaults(self):
        event = MarketEvent(MarketEventType.FEE_COLLECTED)
        assert event.args == {}
        assert event.timestamp is None
