"""
Discounting convention policies.

These policies turn the scenario's discount rate into one present-value
factor per explicit period.
"""

from abc import ABC
from abc import abstractmethod
from typing import List

from scenario_valuation.domain.types import PolicyOutput
from scenario_valuation.engine.dcf import discount_factor


class DiscountPolicy(ABC):
  """
  Base class for discounting conventions.

  Subclasses implement compute() to return per-period discount factors.
  """

  @abstractmethod
  def compute(
      self,
      discount_rate: float,
      n_periods: int,
  ) -> PolicyOutput[List[float]]:
    """
    Compute discount factors.

    Args:
      discount_rate: Required return (r)
      n_periods: Number of explicit periods

    Returns:
      PolicyOutput with factors [d_1, ..., d_N] and diagnostics
    """


class EndOfPeriod(DiscountPolicy):
  """
  Cash flows arrive at the end of each period: d_t = (1 + r)^-t.
  """

  def compute(
      self,
      discount_rate: float,
      n_periods: int,
  ) -> PolicyOutput[List[float]]:
    """Return end-of-period discount factors."""
    return PolicyOutput(
      value=[discount_factor(discount_rate, t)
             for t in range(1, n_periods + 1)],
      diag={
        'discount_method': 'end_of_period',
        'discount_rate': discount_rate,
      }
    )


class MidPeriod(DiscountPolicy):
  """
  Cash flows arrive evenly through each period: d_t = (1 + r)^-(t - 0.5).

  The terminal value is still discounted from the end of the horizon.
  """

  def compute(
      self,
      discount_rate: float,
      n_periods: int,
  ) -> PolicyOutput[List[float]]:
    """Return mid-period discount factors."""
    return PolicyOutput(
      value=[discount_factor(discount_rate, t - 0.5)
             for t in range(1, n_periods + 1)],
      diag={
        'discount_method': 'mid_period',
        'discount_rate': discount_rate,
      }
    )
