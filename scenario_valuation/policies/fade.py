'''
Addressable-volume growth paths.

A fade policy turns the scenario's current volume growth (g0, taken from
market.volume_growth) into one growth rate per explicit period. The cash
flow policy compounds addressable volume along this path, so the path is
where a scenario says how long the market keeps expanding.

Two shapes are available:
  constant: the market keeps growing at g0 for the whole horizon
  maturity: growth slows linearly until the market matures, then holds
    at the maturity rate (terminal growth unless overridden)
'''

from abc import ABC, abstractmethod
from typing import List, Optional

from scenario_valuation.domain.types import PolicyOutput


class FadePolicy(ABC):
  '''Base class for volume growth paths.'''

  @abstractmethod
  def compute(
      self,
      g0: float,
      g_terminal: float,
      n_periods: int,
  ) -> PolicyOutput[List[float]]:
    '''
    Build the growth path for the explicit horizon.

    Args:
      g0: Current (period 0) volume growth
      g_terminal: Perpetual growth used by the terminal value
      n_periods: Number of explicit periods

    Returns:
      PolicyOutput with [g_1, ..., g_N]
    '''


class ConstantGrowth(FadePolicy):
  '''Volume compounds at g0 in every period.'''

  def compute(
      self,
      g0: float,
      g_terminal: float,
      n_periods: int,
  ) -> PolicyOutput[List[float]]:
    return PolicyOutput(value=[g0] * max(n_periods, 0),
                        diag={'fade_method': 'constant'})


class MaturityFade(FadePolicy):
  '''
  Volume growth slows linearly until the market matures.

  With M = maturity_period and g_m the maturity rate:

    g_t = g0 + (g_m - g0) * t / M    for t < M
    g_t = g_m                        for t >= M

  So the first projected period already moves one step away from today's
  growth, and period M grows at exactly g_m. By default g_m is the terminal
  growth, which makes the last explicit periods grow at the same rate the
  perpetuity assumes. M defaults to the projection horizon.
  '''

  def __init__(self,
               maturity_period: Optional[int] = None,
               maturity_growth: Optional[float] = None):
    '''
    Args:
      maturity_period: Period at which volume growth reaches the maturity
        rate (default: last explicit period)
      maturity_growth: Growth of the mature market (default: terminal
        growth)
    '''
    if maturity_period is not None and (isinstance(maturity_period, bool) or
                                        not isinstance(maturity_period, int)):
      raise ValueError(
          f'maturity_period must be an integer: {maturity_period!r}')
    if maturity_period is not None and maturity_period < 1:
      raise ValueError(f'maturity_period must be >= 1: {maturity_period}')
    if maturity_growth is not None and maturity_growth <= -1.0:
      raise ValueError(
          f'maturity_growth must be above -100%: {maturity_growth}')
    self.maturity_period = maturity_period
    self.maturity_growth = maturity_growth

  def compute(
      self,
      g0: float,
      g_terminal: float,
      n_periods: int,
  ) -> PolicyOutput[List[float]]:
    g_mature = (g_terminal
                if self.maturity_growth is None else self.maturity_growth)
    period = self.maturity_period or max(n_periods, 1)

    growth_rates = [
        g0 + (g_mature - g0) * min(t, period) / period
        for t in range(1, n_periods + 1)
    ]

    return PolicyOutput(value=growth_rates,
                        diag={
                            'fade_method': 'maturity',
                            'maturity_growth': g_mature,
                            'maturity_period': period,
                            'matures_in_horizon': period <= n_periods,
                        })
