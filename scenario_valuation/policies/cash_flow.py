'''
Per-period cash-flow policies.

A cash-flow policy turns a ParameterSet, a CoefficientSet and a growth path
into the undiscounted cash flow of every explicit period.

UnitEconomicsCashFlow is the pinned functional form. For t = 1..N:

  volume_t    = volume_{t-1} * (1 + g_t) ** volume_elasticity
  units_t     = volume_t * penetration ** penetration_elasticity
                (0 before market.launch_period)
  price_t     = price_per_unit * (1 - price_decline) ** t
  revenue_t   = revenue_scale * units_t * price_t
  cost_t      = cost_scale * units_t * unit_cost * (1 - cost_decline) ** t
                + fixed_cost
  tax_t       = tax_rate * max(revenue_t - cost_t, 0)
  cash_flow_t = (revenue_t - cost_t - tax_t) * dilution_factor

with volume_0 = market.addressable_volume.
'''

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence, Tuple

from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.domain.types import PolicyOutput


class CashFlowPolicy(ABC):
  '''
  Base class for cash-flow policies.

  Subclasses declare the parameter keys they read in REQUIRED_KEYS and
  implement compute().
  '''

  REQUIRED_KEYS: Tuple[str, ...] = ()

  @abstractmethod
  def compute(
      self,
      params: ParameterSet,
      coefficients: CoefficientSet,
      growth_path: Sequence[float],
  ) -> PolicyOutput[List[Dict[str, Any]]]:
    '''
    Compute undiscounted per-period cash flows.

    Args:
      params: Complete scenario parameters
      coefficients: Model coefficients
      growth_path: Volume growth rate for each period [g_1, ..., g_N]

    Returns:
      PolicyOutput with one row per period, each holding period, growth,
      units, price, revenue, cost, tax and cash_flow
    '''


class UnitEconomicsCashFlow(CashFlowPolicy):
  '''
  Demand x penetration x price, less unit and fixed costs, tax and dilution.
  '''

  REQUIRED_KEYS = (
      'market.addressable_volume',
      'market.penetration_rate',
      'market.launch_period',
      'pricing.price_per_unit',
      'pricing.price_decline',
      'operations.unit_cost',
      'operations.cost_decline',
      'operations.fixed_cost',
      'operations.tax_rate',
      'financial.dilution_factor',
  )

  def compute(
      self,
      params: ParameterSet,
      coefficients: CoefficientSet,
      growth_path: Sequence[float],
  ) -> PolicyOutput[List[Dict[str, Any]]]:
    '''Project unit economics period by period.'''
    params.require(self.REQUIRED_KEYS)

    volume = params.get('market', 'addressable_volume')
    penetration = params.get('market', 'penetration_rate')
    launch_period = params.get('market', 'launch_period')
    price0 = params.get('pricing', 'price_per_unit')
    price_decline = params.get('pricing', 'price_decline')
    unit_cost0 = params.get('operations', 'unit_cost')
    cost_decline = params.get('operations', 'cost_decline')
    fixed_cost = params.get('operations', 'fixed_cost')
    tax_rate = params.get('operations', 'tax_rate')
    dilution = params.get('financial', 'dilution_factor')

    revenue_scale = coefficients.get('revenue_scale')
    cost_scale = coefficients.get('cost_scale')
    volume_elasticity = coefficients.get('volume_elasticity')
    captured_share = penetration**coefficients.get('penetration_elasticity')

    rows: List[Dict[str, Any]] = []
    for t, g in enumerate(growth_path, start=1):
      volume *= (1.0 + g)**volume_elasticity
      units = volume * captured_share if t >= launch_period else 0.0
      price = price0 * (1.0 - price_decline)**t
      unit_cost = unit_cost0 * (1.0 - cost_decline)**t

      revenue = revenue_scale * units * price
      cost = cost_scale * units * unit_cost + fixed_cost
      operating_profit = revenue - cost
      tax = tax_rate * max(operating_profit, 0.0)
      cash_flow = (operating_profit - tax) * dilution

      rows.append({
          'period': t,
          'growth': g,
          'units': units,
          'price': price,
          'revenue': revenue,
          'cost': cost,
          'tax': tax,
          'cash_flow': cash_flow,
      })

    return PolicyOutput(value=rows,
                        diag={
                            'cash_flow_method': 'unit_economics',
                            'captured_share': captured_share,
                            'launch_period': launch_period,
                        })
