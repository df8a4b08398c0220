'''
Scenario valuation entry point.

compute() is a pure function of (ParameterSet, CoefficientSet,
ScenarioConfig) -> ValuationResult. It:
1. Checks that every required parameter is present
2. Rejects a diverging perpetuity (discount rate <= terminal growth)
3. Applies the configured policies (growth path, cash flows, discounting)
4. Runs the DCF math and returns the result with full diagnostics

Usage:
  from scenario_valuation.engine.valuation import compute

  result = compute(params, CoefficientSet.default(), ScenarioConfig.default())
  print(f'Total: {result.total_valuation:,.0f}')
'''

from math import isfinite
from typing import Any, Dict, Optional

from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.domain.types import PeriodCashFlow
from scenario_valuation.domain.types import ValuationResult
from scenario_valuation.engine.dcf import compute_enterprise_value
from scenario_valuation.scenarios.config import ScenarioConfig
from scenario_valuation.scenarios.registry import create_policies

TOTAL_VALUATION_KEY = 'result.total_valuation'


def compute(
    params: ParameterSet,
    coefficients: Optional[CoefficientSet] = None,
    config: Optional[ScenarioConfig] = None,
) -> ValuationResult:
  '''
  Value one scenario.

  Args:
    params: Scenario parameters; every key of params.schema must be present
    coefficients: Model coefficients (default: CoefficientSet.default())
    config: Horizon and policy selection (default: ScenarioConfig.default())

  Returns:
    ValuationResult with per-period build-up, PV, terminal value and total

  Raises:
    MissingParameter: First absent key in schema declaration order
    InvalidParameter: discount_rate <= terminal_growth, or the projection
      overflows to a non-finite value
  '''
  if coefficients is None:
    coefficients = CoefficientSet.default()
  if config is None:
    config = ScenarioConfig.default()

  params.require_complete()

  discount_rate = params.get('financial', 'discount_rate')
  g_terminal = params.get('financial', 'terminal_growth')
  if discount_rate <= g_terminal:
    raise InvalidParameter(
        'financial.terminal_growth',
        g_terminal,
        bound=discount_rate,
        reason='terminal growth must be below the discount rate')

  policies = create_policies(config)
  all_diag: Dict[str, Any] = {
      'scenario': config.name,
      'n_periods': config.n_periods,
  }

  fade_result = policies['fade'].compute(
      g0=params.get('market', 'volume_growth'),
      g_terminal=g_terminal,
      n_periods=config.n_periods,
  )
  all_diag.update({f'fade_{k}': v for k, v in fade_result.diag.items()})

  cash_flow_result = policies['cash_flow'].compute(params, coefficients,
                                                   fade_result.value)
  all_diag.update(
      {f'cash_flow_{k}': v for k, v in cash_flow_result.diag.items()})

  discount_result = policies['discount'].compute(discount_rate,
                                                 config.n_periods)
  all_diag.update({f'discount_{k}': v for k, v in discount_result.diag.items()})

  rows = cash_flow_result.value
  factors = discount_result.value
  cash_flows = [row['cash_flow'] for row in rows]

  total, pv_explicit, tv, discounted_tv = compute_enterprise_value(
      cash_flows=cash_flows,
      discount_factors=factors,
      g_terminal=g_terminal,
      discount_rate=discount_rate,
  )

  if not isfinite(total):
    raise InvalidParameter(
        TOTAL_VALUATION_KEY,
        total,
        reason='projection overflowed; check growth, elasticity and horizon')

  periods = tuple(
      PeriodCashFlow(
          discount_factor=factor,
          present_value=row['cash_flow'] * factor,
          **row,
      ) for row, factor in zip(rows, factors))

  return ValuationResult(
      periods=periods,
      present_value=pv_explicit,
      terminal_value=tv,
      discounted_terminal_value=discounted_tv,
      total_valuation=total,
      params=params,
      coefficients=coefficients,
      config=config,
      diag=all_diag,
  )
