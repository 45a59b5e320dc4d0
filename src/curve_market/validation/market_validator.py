from datetime import datetime, timedelta
from typing import Any, Dict, List

from curve_market.common.math import UNIT_SCALE
from curve_market.common.model import Genesis, MarketParams
from curve_market.ledger.memory import InMemoryPaymentLedger
from curve_market.trading.market import Market


class MarketValidator:
    """
    Validator for a Market and its MarketParams.
    Performs:
      1) Param checks (price bounds, percentages, cooldown)
      2) Boundary tests (price at 0 and max_supply, monotonicity, dust payments)
      3) Scenario tests (buy / sell / cooldown on a throwaway copy of the market)

    Each step returns a dict with:
      {
        "errors": [str...],
        "warnings": [str...],
        "info": {...}
      }
    and 'run_all_validations' aggregates them into a single result.
    """

    @staticmethod
    def validate_params(params: 'MarketParams') -> Dict[str, Any]:
        """
        MarketParams already rejects invalid values on construction; this re-checks the fields
        (they are plain attributes and may have been changed since) and adds warnings for
        values that are legal but probably unintended.
        """
        errors: List[str] = []
        warnings: List[str] = []
        info: Dict[str, Any] = {}

        if params.max_supply <= 0:
            errors.append("Market: 'max_supply' must be > 0.")
        if params.initial_unit_price <= 0:
            errors.append("Market: 'initial_unit_price' must be > 0.")
        if params.max_unit_price < params.initial_unit_price:
            errors.append("Market: 'max_unit_price' must be >= 'initial_unit_price'.")
        if not 0 <= params.fee_percent < 100:
            errors.append("Market: 'fee_percent' must be in [0, 100).")
        if not 0 < params.max_sell_percent <= 100:
            errors.append("Market: 'max_sell_percent' must be in (0, 100].")
        if params.sell_cooldown < timedelta(0):
            errors.append("Market: 'sell_cooldown' cannot be negative.")

        if params.sell_cooldown == timedelta(0):
            warnings.append("Market: 'sell_cooldown' is zero, sells are not rate limited.")
        if params.fee_percent == 0:
            warnings.append("Market: 'fee_percent' is zero, no protocol fee is collected.")
        if params.creator_allocation_percent == 100:
            warnings.append("Market: creator allocation uses the whole max supply, buys will always fail.")
        if params.initial_unit_price * params.max_supply <= params.max_unit_price:
            warnings.append("Market: 'max_unit_price' is never reached, the price clamp has no effect.")

        info["param_summary"] = {
            "max_supply": str(params.max_supply),
            "initial_unit_price": str(params.initial_unit_price),
            "max_unit_price": str(params.max_unit_price),
            "fee_percent": str(params.fee_percent),
            "max_sell_percent": str(params.max_sell_percent),
            "sell_cooldown_seconds": str(int(params.sell_cooldown.total_seconds())),
            "creator_allocation": str(params.creator_allocation),
        }

        return {
            "errors": errors,
            "warnings": warnings,
            "info": info
        }

    @staticmethod
    def boundary_tests(market: 'Market', samples: int = 64) -> Dict[str, Any]:
        """
        Calls a few boundary conditions on the market's curve:
          - price at supply=0 and supply=max_supply within bounds
          - price non-increasing across 'samples' evenly spaced supplies
          - smallest payment that still buys at least one base unit
        """
        errors: List[str] = []
        warnings: List[str] = []
        info: Dict[str, Any] = {}
        params = market.params
        curve = market.curve

        price_at_zero = curve.get_spot_price(0)
        if price_at_zero > params.max_unit_price:
            errors.append(f"Price at supply=0 exceeds max_unit_price: {price_at_zero}.")

        price_at_max = curve.get_spot_price(params.max_supply)
        if price_at_max <= 0:
            errors.append("Price at max_supply is not positive.")

        step = max(params.max_supply // samples, 1)
        previous = None
        for supply in range(0, params.max_supply + 1, step):
            price = curve.get_spot_price(supply)
            if previous is not None and price > previous:
                errors.append(f"Price increases with supply at supply={supply}.")
                break
            previous = price

        current_price = market.current_price()
        min_payment = -(-current_price // UNIT_SCALE)
        if min_payment > 1:
            warnings.append(
                f"Payments below {min_payment} buy zero tokens at the current price and are not refunded."
            )

        info["boundary_tests_run"] = True
        info["price_at_zero"] = str(price_at_zero)
        info["price_at_max_supply"] = str(price_at_max)
        info["current_price"] = str(current_price)
        return {
            "errors": errors,
            "warnings": warnings,
            "info": info
        }

    @staticmethod
    def scenario_tests(params: 'MarketParams') -> Dict[str, Any]:
        """
        Runs a small scenario on a fresh market built from 'params' (the real market is not touched):
          1) buy with 1 whole payment unit
          2) creator sells half of the sell limit
          3) creator sells again immediately, which must be rejected by the cooldown
        Checks fee reconciliation and supply bounds.
        """
        errors: List[str] = []
        warnings: List[str] = []
        info: Dict[str, Any] = {}

        now = datetime(2000, 1, 1)
        payments = InMemoryPaymentLedger()
        market = Market(
            Genesis(creator="creator", name="Scenario", symbol="SCN", fee_collector="collector"),
            params=params,
            payment_ledger=payments,
            address="scenario-market",
            clock=lambda: now,
        )
        payments.deposit("buyer", UNIT_SCALE)

        # Step 1: buy
        try:
            bought = market.buy("buyer", UNIT_SCALE)
            if bought.protocol_fee != UNIT_SCALE * params.fee_percent // 100:
                errors.append("Buy fee is not exactly fee_percent of the payment.")
            if market.outstanding_supply > params.max_supply:
                errors.append("Supply exceeds max_supply after buy.")
        except Exception as e:
            errors.append(f"Exception in scenario step buy: {e}")

        # Step 2: sell
        try:
            amount = min(market.max_sell_amount() // 2, market.balance_of("creator"))
            if amount > 0:
                payments.deposit(market.address, market.quote_sell(amount).payment)
                sold = market.sell("creator", amount)
                if sold.net_amount + sold.protocol_fee != sold.payment:
                    errors.append("Sell net + fee does not equal gross proceeds.")
            else:
                warnings.append("Creator holds nothing sellable; sell scenario skipped.")
        except Exception as e:
            errors.append(f"Exception in scenario step sell: {e}")

        # Step 3: second sell inside the cooldown
        if params.sell_cooldown > timedelta(0) and market.total_sold_by("creator") > 0:
            try:
                market.sell("creator", 1)
                errors.append("Second sell inside the cooldown was accepted.")
            except Exception as e:
                info["cooldown_rejection"] = type(e).__name__

        info["final_supply_after_scenario"] = str(market.outstanding_supply)
        info["fees_after_scenario"] = str(market.total_fee_collected)

        return {
            "errors": errors,
            "warnings": warnings,
            "info": info
        }

    @staticmethod
    def run_all_validations(market: 'Market') -> Dict[str, Any]:
        """
        Aggregates:
          - param check
          - boundary tests
          - scenario tests
        Returns a dict with keys: errors, warnings, info
        """
        if not isinstance(market, Market):
            raise ValueError("Invalid market type for MarketValidator.")

        results = {
            "errors": [],
            "warnings": [],
            "info": {}
        }

        for check in (
            MarketValidator.validate_params(market.params),
            MarketValidator.boundary_tests(market),
            MarketValidator.scenario_tests(market.params),
        ):
            results["errors"].extend(check["errors"])
            results["warnings"].extend(check["warnings"])
            results["info"].update(check["info"])

        return results
