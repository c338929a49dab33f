from datetime import datetime, timezone

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from cto_engine.errors import RuleSetNotFoundError
from cto_engine.rules.types import Component, PricingRule, RuleSetSnapshot
from cto_engine.services.pricing import PricingCalculator
from cto_engine.services.rule_set_store import RuleSetStore


def snapshot(*rules):
    return RuleSetSnapshot(
        id="00000000-0000-0000-0000-000000000001",
        version=1,
        name="pricing",
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        rules=tuple(rules),
    )


SCENARIO_RULES = snapshot(
    PricingRule("cpu", "CPU", unit_price=500, labor_cost=25, margin_percent=18),
    PricingRule("ram", "RAM", unit_price=120, labor_cost=5, margin_percent=18),
)
SCENARIO_COMPONENTS = [Component("CPU", "XEON", 2), Component("RAM", "DDR4", 8)]


def test_subtotal_labor_margin_and_total(db_session):
    price = PricingCalculator(db_session).price(SCENARIO_RULES, SCENARIO_COMPONENTS)

    assert price.subtotal == 1960
    assert price.labor_cost == 90
    assert price.margin == 369.0
    assert price.total == 2419.0
    assert price.currency == "EUR"
    assert [line.line_total for line in price.components] == [1000, 960]


def test_repeat_pricing_is_bit_for_bit_identical(db_session):
    calculator = PricingCalculator(db_session)
    first = calculator.price(SCENARIO_RULES, SCENARIO_COMPONENTS)
    second = calculator.price(SCENARIO_RULES, SCENARIO_COMPONENTS)

    assert first.total == second.total
    assert first.components == second.components


def test_unpriced_components_use_defaults(db_session):
    price = PricingCalculator(db_session).price(snapshot(), [Component("GPU", "A100", 2)])

    assert price.subtotal == 0
    assert price.labor_cost == 20
    assert price.margin == pytest.approx(3.6)
    assert price.total == pytest.approx(23.6)


def test_reference_rule_takes_precedence_over_type_rule(db_session, default_rule_set):
    calculator = PricingCalculator(db_session)
    price = calculator.calculate_price_snapshot(
        default_rule_set.id,
        [Component("CPU", "XEON-GOLD-6230", 2), Component("RAM", "DDR4-16GB-2933", 8)],
    )

    assert price.components[0].unit_price == 650
    assert price.subtotal == 2260
    assert price.labor_cost == 70
    # (20 * 2 + 18 * 8) / 10 = 18.4
    assert price.margin == pytest.approx(2330 * 18.4 / 100)
    assert price.total == pytest.approx(2330 * 1.184)


def test_unknown_rule_set_raises(db_session):
    with pytest.raises(RuleSetNotFoundError):
        PricingCalculator(db_session).calculate_price_snapshot(
            "00000000-0000-0000-0000-000000000000", SCENARIO_COMPONENTS
        )


def test_stored_rule_set_prices_like_snapshot(db_session):
    store = RuleSetStore(db_session)
    rule_set = store.create_rule_set(
        "scenario",
        [
            {"rule_type": "PRICING", "payload": {"component_type": "CPU", "unit_price": 500, "labor_cost": 25, "margin_percent": 18}},
            {"rule_type": "PRICING", "payload": {"component_type": "RAM", "unit_price": 120, "labor_cost": 5, "margin_percent": 18}},
        ],
    )
    price = PricingCalculator(db_session).calculate_price_snapshot(rule_set.id, SCENARIO_COMPONENTS)
    assert price.total == 2419.0


@settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(
    cpus=st.integers(min_value=1, max_value=4),
    ram=st.integers(min_value=1, max_value=24),
    unit_price=st.floats(min_value=0, max_value=5000, allow_nan=False, allow_infinity=False),
)
def test_pricing_is_deterministic(db_session, cpus, ram, unit_price):
    rules = snapshot(
        PricingRule("cpu", "CPU", unit_price=unit_price, labor_cost=15, margin_percent=20),
        PricingRule("ram", "RAM", unit_price=120, labor_cost=5, margin_percent=18),
    )
    components = [Component("CPU", "XEON", cpus), Component("RAM", "DDR4", ram)]
    calculator = PricingCalculator(db_session)

    first = calculator.price(rules, components).to_dict()
    second = calculator.price(rules, components).to_dict()
    first.pop("frozen_at")
    second.pop("frozen_at")
    assert first == second
    assert first["total"] >= first["subtotal"]
