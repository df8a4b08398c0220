from typing import Any

import pytest

from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.scenarios.config import ScenarioConfig


def make_params(**overrides: Any) -> ParameterSet:
  """
  Build a complete ParameterSet from the flat-cash-flow baseline.

  Overrides use '__' for the dot, e.g. financial__discount_rate=0.12.
  """
  flat = {
      'market.addressable_volume': 100.0,
      'market.penetration_rate': 1.0,
      'market.volume_growth': 0.0,
      'market.launch_period': 0.0,
      'pricing.price_per_unit': 10.0,
      'pricing.price_decline': 0.0,
      'operations.unit_cost': 0.0,
      'operations.cost_decline': 0.0,
      'operations.fixed_cost': 0.0,
      'operations.tax_rate': 0.0,
      'financial.discount_rate': 0.10,
      'financial.terminal_growth': 0.0,
      'financial.dilution_factor': 1.0,
  }
  for name, value in overrides.items():
    flat[name.replace('__', '.')] = value
  return ParameterSet.from_flat(flat)


@pytest.fixture
def flat_params() -> ParameterSet:
  """
  Cash flow of exactly 1000 every period, r=10%, g=0.

  For a 3-period horizon:
    PV  = 1000/1.1 + 1000/1.21 + 1000/1.331 = 2486.85
    TV  = 1000 * 1.0 / 0.10 = 10000
    dTV = 10000 / 1.331 = 7513.15
    Total = 10000
  """
  return make_params()


@pytest.fixture
def costed_params() -> ParameterSet:
  """
  Unit cost 4, tax 25%, g=2%: cash flow 450 every period.

  Revenue 1000, cost 400, tax 150, CF 450. For 3 periods:
    PV  = 450 * 2.48685 = 1119.08
    TV  = 450 * 1.02 / 0.08 = 5737.5
    dTV = 5737.5 / 1.331 = 4310.67
    Total = 5429.75
  """
  return make_params(operations__unit_cost=4.0,
                     operations__tax_rate=0.25,
                     financial__terminal_growth=0.02)


@pytest.fixture
def nested_params_dict() -> dict:
  return {
      'market': {
          'addressable_volume': 1000.0,
          'penetration_rate': 0.2,
          'volume_growth': 0.05,
          'launch_period': 1.0,
      },
      'pricing': {
          'price_per_unit': 50.0,
          'price_decline': 0.02,
      },
      'operations': {
          'unit_cost': 20.0,
          'cost_decline': 0.03,
          'fixed_cost': 500.0,
          'tax_rate': 0.21,
      },
      'financial': {
          'discount_rate': 0.10,
          'terminal_growth': 0.03,
          'dilution_factor': 1.0,
      },
  }


@pytest.fixture
def three_periods() -> ScenarioConfig:
  return ScenarioConfig(name='three_periods', n_periods=3)
