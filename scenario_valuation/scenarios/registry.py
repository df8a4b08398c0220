"""
Policy registry for mapping string names to policy factories.

This enables scenarios to be configured with string names (JSON friendly)
while still instantiating the correct policy classes.

To add a new policy:
1. Implement the policy class in the appropriate module
   (e.g., policies/fade.py)
2. Register a factory for it in the appropriate registry dictionary

Example:
  # In policies/fade.py
  class MyFade(FadePolicy):
    def compute(self, g0, g_terminal, n_periods) -> PolicyOutput[List[float]]:
      ...

  # In scenarios/registry.py
  FADE_POLICIES['my_fade'] = MyFade

Factories accept keyword arguments taken from
ScenarioConfig.policy_params[<category>].
"""

from collections.abc import Callable
from typing import Any, cast

from scenario_valuation.policies.cash_flow import CashFlowPolicy
from scenario_valuation.policies.cash_flow import UnitEconomicsCashFlow
from scenario_valuation.policies.discount import DiscountPolicy
from scenario_valuation.policies.discount import EndOfPeriod
from scenario_valuation.policies.discount import MidPeriod
from scenario_valuation.policies.fade import ConstantGrowth
from scenario_valuation.policies.fade import FadePolicy
from scenario_valuation.policies.fade import MaturityFade
from scenario_valuation.scenarios.config import ScenarioConfig

CASH_FLOW_POLICIES: dict[str, Callable[..., CashFlowPolicy]] = {
    'unit_economics': UnitEconomicsCashFlow,
}

FADE_POLICIES: dict[str, Callable[..., FadePolicy]] = {
    'constant': ConstantGrowth,
    'maturity': MaturityFade,
    'maturity_5p': lambda **kw: MaturityFade(**{'maturity_period': 5, **kw}),
}

DISCOUNT_POLICIES: dict[str, Callable[..., DiscountPolicy]] = {
    'end_of_period': EndOfPeriod,
    'mid_period': MidPeriod,
}

POLICY_REGISTRY = {
    'cash_flow': CASH_FLOW_POLICIES,
    'fade': FADE_POLICIES,
    'discount': DISCOUNT_POLICIES,
}


def _create(category: str, name: str, config: ScenarioConfig) -> Any:
  registry = cast(dict[str, Callable[..., Any]], POLICY_REGISTRY[category])
  try:
    factory = registry[name]
  except KeyError as e:
    raise KeyError(f"Unknown {category} policy: '{name}'. "
                   f'Available: {list(registry.keys())}') from e
  return factory(**config.policy_params.get(category, {}))


def create_policies(config: ScenarioConfig) -> dict[str, Any]:
  """
  Create policy instances from scenario configuration.

  Args:
    config: ScenarioConfig with policy names

  Returns:
    Dictionary with instantiated policy objects:
    - cash_flow: CashFlowPolicy
    - fade: FadePolicy
    - discount: DiscountPolicy

  Raises:
    KeyError: If a policy name is not found in the registry
  """
  return {
      'cash_flow': _create('cash_flow', config.cash_flow, config),
      'fade': _create('fade', config.fade, config),
      'discount': _create('discount', config.discount, config),
  }


def list_policies() -> dict[str, list[str]]:
  """
  List all available policies by category.

  Returns:
    Dictionary mapping category names to list of policy names
  """
  result: dict[str, list[str]] = {}
  for category, policies_dict in POLICY_REGISTRY.items():
    policy_dict = cast(dict[str, object], policies_dict)
    result[category] = list(policy_dict.keys())
  return result
