'''
Domain types for the valuation framework.

These dataclasses provide typed interfaces between the policies, the pure
math engine and the analysis tools.
'''

from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from typing import (TYPE_CHECKING, Any, Dict, Generic, Optional, Tuple,
                    TypeVar)

import pandas as pd

from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.parameters import ParameterSet

if TYPE_CHECKING:
  from scenario_valuation.scenarios.config import ScenarioConfig

T = TypeVar('T')


@dataclass
class PolicyOutput(Generic[T]):
  '''
  Standard output from any policy.

  Every policy returns both a computed value and diagnostic information
  explaining how the value was computed.

  Attributes:
    value: The computed value (type depends on policy)
    diag: Dictionary of diagnostic information
  '''
  value: T
  diag: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PeriodCashFlow:
  '''
  Cash-flow build-up for one projection period.

  Attributes:
    period: Period index (1-based)
    growth: Volume growth applied in this period
    units: Units sold
    price: Price per unit
    revenue: Revenue after revenue_scale
    cost: Variable plus fixed cost
    tax: Tax on positive operating profit
    cash_flow: Cash flow attributable to current holders
    discount_factor: Multiplier converting cash_flow to present value
    present_value: cash_flow * discount_factor
  '''
  period: int
  growth: float
  units: float
  price: float
  revenue: float
  cost: float
  tax: float
  cash_flow: float
  discount_factor: float
  present_value: float


@dataclass(frozen=True)
class ValuationResult:
  '''
  Complete valuation result.

  Produced only by scenario_valuation.engine.valuation.compute(); carries
  the inputs that produced it so attribution can trace and recompute.

  Attributes:
    periods: Per-period cash-flow build-up
    present_value: Sum of discounted explicit-period cash flows
    terminal_value: Undiscounted perpetuity value at the horizon
    discounted_terminal_value: terminal_value discounted to today
    total_valuation: present_value + discounted_terminal_value
    params: ParameterSet used for the calculation
    coefficients: CoefficientSet used for the calculation
    config: ScenarioConfig used for the calculation
    diag: Merged diagnostics from all policies
  '''
  periods: Tuple[PeriodCashFlow, ...]
  present_value: float
  terminal_value: float
  discounted_terminal_value: float
  total_valuation: float
  params: ParameterSet
  coefficients: CoefficientSet
  config: Optional['ScenarioConfig'] = None
  diag: Dict[str, Any] = field(default_factory=dict)

  @property
  def cash_flows(self) -> Tuple[float, ...]:
    return tuple(p.cash_flow for p in self.periods)

  @property
  def n_periods(self) -> int:
    return len(self.periods)

  def to_flat(self) -> Dict[str, float]:
    '''
    Convert outputs to a flat {key: number} dictionary.

    Cash flows are keyed 'cash_flows.<period>'.
    '''
    result = {
        'result.total_valuation': self.total_valuation,
        'result.present_value': self.present_value,
        'result.terminal_value': self.terminal_value,
        'result.discounted_terminal_value': self.discounted_terminal_value,
    }
    for p in self.periods:
      result[f'cash_flows.{p.period}'] = p.cash_flow
    return result

  def to_dict(self) -> Dict[str, Any]:
    '''Convert outputs and inputs to a flat dictionary for DataFrame rows.'''
    result: Dict[str, Any] = dict(self.to_flat())
    result.update(self.params.to_flat())
    result.update({
        f'coefficients.{name}': value
        for name, value in self.coefficients.to_dict().items()
    })
    return result

  def to_frame(self) -> pd.DataFrame:
    '''Per-period build-up as a DataFrame indexed by period.'''
    df = pd.DataFrame([asdict(p) for p in self.periods])
    return df.set_index('period')
