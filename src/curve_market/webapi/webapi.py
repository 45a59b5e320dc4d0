from decimal import Decimal
from typing import Any, Dict, Optional

from flask import jsonify
from flask_openapi3 import Info, Tag
from flask_openapi3 import OpenAPI
from loguru import logger
from pydantic import BaseModel, Field

from curve_market.common.enums import OrderSide
from curve_market.common.exceptions import MarketError
from curve_market.common.math import to_base_units
from curve_market.registry.factory import MarketFactory
from curve_market.trading.market import Market


info = Info(title="Bonding Curve Market API", version="1.0.0")


class MarketPath(BaseModel):
    address: str = Field(description="Address of the market")


class AccountPath(BaseModel):
    address: str = Field(description="Address of the market")
    account: str = Field(description="Trader account")


class CreateMarketRequest(BaseModel):
    creator: str = Field(description="Account receiving the genesis allocation")
    name: str = Field(description="Token name")
    symbol: str = Field(description="Token symbol")
    fee_collector: str = Field(description="Account receiving all protocol fees")


class BuyRequest(BaseModel):
    account: str = Field(description="Buyer account")
    payment: Decimal = Field(description="Payment, in whole payment units")


class SellRequest(BaseModel):
    account: str = Field(description="Seller account")
    amount: Decimal = Field(description="Tokens to sell, in whole tokens")


class QuoteQuery(BaseModel):
    side: str = Field(description="BUY or SELL")
    amount: Decimal = Field(description="Payment for a buy, tokens for a sell, in whole units")


class FaucetRequest(BaseModel):
    account: str = Field(description="Account to credit")
    amount: Decimal = Field(description="Payment units to credit, in whole units")


market_tag = Tag(name="Market", description="Create markets and read their state")
trade_tag = Tag(name="Trade", description="Buy from or sell to a market")


def market_status(market: Market, creator: str) -> Dict[str, Any]:
    return {
        "address": market.address,
        "name": market.genesis.name,
        "symbol": market.genesis.symbol,
        "creator": creator,
        "fee_collector": market.fee_collector,
        "current_price": str(market.current_price()),
        "outstanding_supply": str(market.outstanding_supply),
        "max_supply": str(market.params.max_supply),
        "max_sell_amount": str(market.max_sell_amount()),
        "held_balance": str(market.held_balance()),
        "total_fee_collected": str(market.total_fee_collected),
    }


def _error(e: MarketError):
    return jsonify({"error": e.code, "message": e.message}), 400


def _not_found(address: str):
    return jsonify({"error": "NOT_FOUND", "message": f"No market at {address}"}), 404


def create_app(factory: Optional[MarketFactory] = None) -> OpenAPI:
    app = OpenAPI(__name__, info=info)
    app.config["market_factory"] = factory or MarketFactory()

    def _factory() -> MarketFactory:
        return app.config["market_factory"]

    @app.post("/markets", summary="Create Market", tags=[market_tag])
    def create_market(body: CreateMarketRequest):
        """
        Deploys a new market; the creator receives the genesis allocation.
        """
        try:
            market = _factory().create_market(body.creator, body.name, body.symbol, body.fee_collector)
        except ValueError as e:
            return jsonify({"error": "INVALID_INPUT", "message": str(e)}), 400
        return jsonify(market_status(market, body.creator)), 201

    @app.get("/markets", summary="List Markets", tags=[market_tag])
    def list_markets():
        factory = _factory()
        return jsonify([market_status(m, factory.creator_of(m.address)) for m in factory.all_markets()])

    @app.get("/markets/<address>", summary="Market Status", tags=[market_tag])
    def get_market(path: MarketPath):
        """
        Return the current price, supply, held balance and cumulative fees of a market.
        """
        factory = _factory()
        try:
            market = factory.get_market(path.address)
        except KeyError:
            return _not_found(path.address)
        return jsonify(market_status(market, factory.creator_of(path.address)))

    @app.get("/markets/<address>/accounts/<account>", summary="Account Status", tags=[market_tag])
    def get_account(path: AccountPath):
        try:
            market = _factory().get_market(path.address)
        except KeyError:
            return _not_found(path.address)
        return jsonify({
            "account": path.account,
            "token_balance": str(market.balance_of(path.account)),
            "payment_balance": str(market.payment_ledger.balance_of(path.account)),
            "total_sold": str(market.total_sold_by(path.account)),
            "cooldown_remaining_seconds": market.cooldown_remaining(path.account).total_seconds(),
        })

    @app.get("/markets/<address>/quote", summary="Quote", tags=[trade_tag])
    def quote(path: MarketPath, query: QuoteQuery):
        """
        Preview a buy (amount = payment) or sell (amount = tokens) at the current supply without executing it.
        """
        try:
            market = _factory().get_market(path.address)
        except KeyError:
            return _not_found(path.address)
        try:
            side = OrderSide.from_str(query.side)
        except NotImplementedError as e:
            return jsonify({"error": "INVALID_INPUT", "message": str(e)}), 400
        try:
            if side == OrderSide.BUY:
                result = market.quote_buy(to_base_units(query.amount))
            else:
                result = market.quote_sell(to_base_units(query.amount))
        except MarketError as e:
            return _error(e)
        return jsonify(result.to_dict())

    @app.post("/markets/<address>/buy", summary="Buy", tags=[trade_tag])
    def buy(path: MarketPath, body: BuyRequest):
        """
        Handles a buy on a market and returns the execution information
        """
        try:
            market = _factory().get_market(path.address)
        except KeyError:
            return _not_found(path.address)
        try:
            result = market.buy(body.account, to_base_units(body.payment))
        except MarketError as e:
            return _error(e)
        return jsonify(result.to_dict())

    @app.post("/markets/<address>/sell", summary="Sell", tags=[trade_tag])
    def sell(path: MarketPath, body: SellRequest):
        """
        Handles a sell on a market and returns the execution information
        """
        try:
            market = _factory().get_market(path.address)
        except KeyError:
            return _not_found(path.address)
        try:
            result = market.sell(body.account, to_base_units(body.amount))
        except MarketError as e:
            return _error(e)
        return jsonify(result.to_dict())

    @app.post("/markets/<address>/faucet", summary="Faucet", tags=[trade_tag])
    def faucet(path: MarketPath, body: FaucetRequest):
        """
        Credits payment units to an account on the market's payment ledger (simulation faucet).
        """
        try:
            market = _factory().get_market(path.address)
        except KeyError:
            return _not_found(path.address)
        try:
            market.payment_ledger.deposit(body.account, to_base_units(body.amount))
        except MarketError as e:
            return _error(e)
        logger.info(f"Deposited {body.amount} to {body.account} on {path.address}")
        return jsonify({
            "account": body.account,
            "payment_balance": str(market.payment_ledger.balance_of(body.account)),
        })

    return app


app = create_app()
