import pytest

from datetime import timedelta
from unittest.mock import patch

from curve_market.common.model import Genesis, MarketParams
from curve_market.trading.market import Market
from curve_market.validation.market_validator import MarketValidator


@pytest.fixture
def valid_params():
    return MarketParams()


@pytest.fixture
def market_fixture(valid_params):
    return Market(
        Genesis(creator="creator", name="Pump", symbol="PMP", fee_collector="collector"),
        params=valid_params,
    )


def test_validate_params_valid(valid_params):
    """
    Default params produce no errors and a summary of every field.
    """
    result = MarketValidator.validate_params(valid_params)
    assert result["errors"] == []
    assert result["warnings"] == []
    summary = result["info"]["param_summary"]
    assert summary["fee_percent"] == "5"
    assert summary["sell_cooldown_seconds"] == "3600"
    assert summary["creator_allocation"] == str(valid_params.creator_allocation)


@pytest.mark.parametrize(
    "field, value, expected_fragment",
    [
        ("max_supply", 0, "'max_supply' must be > 0"),
        ("initial_unit_price", 0, "'initial_unit_price' must be > 0"),
        ("max_unit_price", 1, "'max_unit_price' must be >= 'initial_unit_price'"),
        ("fee_percent", 150, "'fee_percent' must be in [0, 100)"),
        ("max_sell_percent", 0, "'max_sell_percent' must be in (0, 100]"),
        ("sell_cooldown", timedelta(seconds=-5), "'sell_cooldown' cannot be negative"),
    ]
)
def test_validate_params_catches_mutated_fields(valid_params, field, value, expected_fragment):
    """
    Params are validated on construction, but fields changed afterwards are caught here.
    """
    setattr(valid_params, field, value)
    result = MarketValidator.validate_params(valid_params)
    assert any(expected_fragment in e for e in result["errors"]), result["errors"]


@pytest.mark.parametrize(
    "overrides, expected_fragment",
    [
        ({"sell_cooldown": timedelta(0)}, "not rate limited"),
        ({"fee_percent": 0}, "no protocol fee"),
        ({"creator_allocation_percent": 100}, "buys will always fail"),
        ({"max_unit_price": 10 ** 40}, "never reached"),
    ]
)
def test_validate_params_warnings(overrides, expected_fragment):
    result = MarketValidator.validate_params(MarketParams(**overrides))
    assert result["errors"] == []
    assert any(expected_fragment in w for w in result["warnings"]), result["warnings"]


def test_boundary_tests_valid(market_fixture):
    result = MarketValidator.boundary_tests(market_fixture)
    assert result["errors"] == []
    assert result["info"]["boundary_tests_run"] is True
    assert result["info"]["price_at_zero"] == str(10 ** 16)
    assert result["info"]["price_at_max_supply"] == "99999999999999"


def test_boundary_tests_detect_increasing_price(market_fixture):
    with patch.object(market_fixture.curve, "get_spot_price", side_effect=lambda supply: supply + 1):
        result = MarketValidator.boundary_tests(market_fixture)
    assert any("Price increases with supply" in e for e in result["errors"])


def test_boundary_tests_warn_on_expensive_tokens():
    """
    When one token costs more than 1 whole payment unit, tiny payments buy nothing.
    """
    params = MarketParams(
        max_supply=1000,
        initial_unit_price=10 ** 19,
        max_unit_price=10 ** 25,
        creator_allocation_percent=0,
    )
    market = Market(Genesis("creator", "Pump", "PMP", "collector"), params=params)
    result = MarketValidator.boundary_tests(market)
    assert any("buy zero tokens" in w for w in result["warnings"])


def test_scenario_tests_valid(valid_params):
    result = MarketValidator.scenario_tests(valid_params)
    assert result["errors"] == []
    assert result["info"]["cooldown_rejection"] == "CooldownActive"
    assert int(result["info"]["fees_after_scenario"]) > 0


def test_scenario_tests_fully_allocated_market():
    result = MarketValidator.scenario_tests(MarketParams(creator_allocation_percent=100))
    assert any("buy" in e for e in result["errors"])


def test_scenario_tests_do_not_touch_market(market_fixture):
    supply = market_fixture.outstanding_supply
    MarketValidator.run_all_validations(market_fixture)
    assert market_fixture.outstanding_supply == supply
    assert market_fixture.events == []


def test_run_all_validations(market_fixture):
    result = MarketValidator.run_all_validations(market_fixture)
    assert result["errors"] == []
    assert "param_summary" in result["info"]
    assert "boundary_tests_run" in result["info"]
    assert "final_supply_after_scenario" in result["info"]


def test_run_all_validations_invalid_type():
    with pytest.raises(ValueError):
        MarketValidator.run_all_validations(object())
