"""
Pure DCF math engine.

This module contains pure functions for discounting. No pandas, no I/O,
just numeric computations. All inputs must be prepared before calling these.

Key functions:
  compute_enterprise_value: Explicit-period PV plus discounted terminal value
  compute_pv_explicit: PV of explicit forecast period
  compute_terminal_value: Gordon growth (perpetuity) terminal value
"""

from collections.abc import Sequence

from scenario_valuation.domain.errors import InvalidParameter


def discount_factor(discount_rate: float, t: float) -> float:
  """Present-value multiplier (1 + r)^-t."""
  return 1.0 / ((1.0 + discount_rate)**t)


def compute_pv_explicit(
    cash_flows: Sequence[float],
    discount_factors: Sequence[float],
) -> float:
  """
  Compute present value of explicit forecast period.

  Args:
    cash_flows: Cash flow for each period [cf1, cf2, ..., cfN]
    discount_factors: Discount factor for each period, same length

  Returns:
    Sum of discounted cash flows
  """
  if len(cash_flows) != len(discount_factors):
    raise ValueError(f'Got {len(cash_flows)} cash flows but '
                     f'{len(discount_factors)} discount factors')

  pv = 0.0
  for cf, factor in zip(cash_flows, discount_factors):
    pv += cf * factor
  return pv


def compute_terminal_value(
    final_cash_flow: float,
    g_terminal: float,
    discount_rate: float,
) -> float:
  """
  Compute undiscounted terminal value using the Gordon Growth Model.

  TV = CF_N * (1 + g) / (r - g)

  Args:
    final_cash_flow: Cash flow in the final explicit period
    g_terminal: Terminal (perpetual) growth rate
    discount_rate: Required return (r)

  Returns:
    Terminal value at the horizon

  Raises:
    InvalidParameter: If discount_rate <= g_terminal (perpetuity diverges)
  """
  if discount_rate <= g_terminal:
    raise InvalidParameter(
        'financial.terminal_growth',
        g_terminal,
        bound=discount_rate,
        reason='terminal growth must be below the discount rate')

  return (final_cash_flow * (1.0 + g_terminal)) / (discount_rate - g_terminal)


def compute_enterprise_value(
    cash_flows: Sequence[float],
    discount_factors: Sequence[float],
    g_terminal: float,
    discount_rate: float,
) -> tuple[float, float, float, float]:
  """
  Compute total value using a two-stage DCF model.

  Stage 1: Explicit forecast period, each cash flow discounted by its factor
  Stage 2: Terminal value on the final cash flow, discounted (1 + r)^-N

  Args:
    cash_flows: Cash flow for each period [cf1, cf2, ..., cfN]
    discount_factors: Discount factor for each period
    g_terminal: Perpetual terminal growth rate
    discount_rate: Required return (r)

  Returns:
    Tuple of (total, pv_explicit, terminal_value, discounted_terminal_value)
  """
  n_periods = len(cash_flows)
  if n_periods < 1:
    raise ValueError('At least one explicit period is required')

  tv = compute_terminal_value(cash_flows[-1], g_terminal, discount_rate)
  pv_explicit = compute_pv_explicit(cash_flows, discount_factors)
  discounted_tv = tv * discount_factor(discount_rate, n_periods)

  return pv_explicit + discounted_tv, pv_explicit, tv, discounted_tv
