"""
Valuation policies for building projection inputs.

Each policy computes one component of the valuation model (growth path,
cash flows, discount factors) and returns both a value and diagnostic
information.

To add a new policy:
1. Create a new class inheriting from the appropriate base (e.g., FadePolicy)
2. Implement the compute() method returning PolicyOutput
3. Register in scenarios/registry.py

Example:
  class FlatFade(FadePolicy):
    def compute(self, g0, g_terminal, n_periods) -> PolicyOutput[List[float]]:
      return PolicyOutput(value=[g_terminal] * n_periods,
                          diag={'fade_method': 'flat'})
"""

from scenario_valuation.policies.cash_flow import CashFlowPolicy
from scenario_valuation.policies.cash_flow import UnitEconomicsCashFlow
from scenario_valuation.policies.discount import DiscountPolicy
from scenario_valuation.policies.discount import EndOfPeriod
from scenario_valuation.policies.discount import MidPeriod
from scenario_valuation.policies.fade import ConstantGrowth
from scenario_valuation.policies.fade import FadePolicy
from scenario_valuation.policies.fade import MaturityFade

__all__ = [
  'CashFlowPolicy', 'UnitEconomicsCashFlow',
  'DiscountPolicy', 'EndOfPeriod', 'MidPeriod',
  'FadePolicy', 'ConstantGrowth', 'MaturityFade',
]
