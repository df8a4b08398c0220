"""
Scenario configuration for valuation runs.

ScenarioConfig is a serializable (JSON-friendly) configuration class that
fixes the projection horizon and names the policy used for each component
of the valuation. It carries no parameter values: those live in
ParameterSet and CoefficientSet.
"""

from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
import json
from typing import Any


@dataclass(frozen=True)
class ScenarioConfig:
  """
  Engine configuration for a valuation scenario.

  Policy fields are strings that map to factories in the registry. This
  makes the config serializable to JSON for reproducibility.

  Attributes:
    name: Human-readable scenario name
    cash_flow: Cash-flow policy name (e.g., 'unit_economics')
    fade: Volume growth fade policy name (e.g., 'constant', 'maturity')
    discount: Discounting convention (e.g., 'end_of_period', 'mid_period')
    n_periods: Number of explicit projection periods
    policy_params: Optional {category: {kwarg: value}} passed to factories
  """
  name: str = 'default'
  cash_flow: str = 'unit_economics'
  fade: str = 'constant'
  discount: str = 'end_of_period'
  n_periods: int = 10
  policy_params: dict[str, Any] = field(default_factory=dict)

  def __post_init__(self):
    if isinstance(self.n_periods, bool) or not isinstance(self.n_periods, int):
      raise ValueError(f'n_periods must be an integer: {self.n_periods!r}')
    if self.n_periods < 1:
      raise ValueError(f'n_periods must be >= 1: {self.n_periods}')

  @classmethod
  def default(cls) -> 'ScenarioConfig':
    """
    Create default scenario configuration.

    Uses:
      - Unit-economics cash flows
      - Constant volume growth
      - End-of-period discounting
      - 10-period horizon
    """
    return cls(
        name='default',
        cash_flow='unit_economics',
        fade='constant',
        discount='end_of_period',
        n_periods=10,
    )

  @classmethod
  def mid_period(cls) -> 'ScenarioConfig':
    """Scenario using mid-period discounting."""
    return cls(
        name='mid_period',
        cash_flow='unit_economics',
        fade='constant',
        discount='mid_period',
        n_periods=10,
    )

  @classmethod
  def maturity_fade(cls) -> 'ScenarioConfig':
    """Scenario whose market matures at the end of the horizon."""
    return cls(
        name='maturity_fade',
        cash_flow='unit_economics',
        fade='maturity',
        discount='end_of_period',
        n_periods=10,
    )

  def to_dict(self) -> dict[str, Any]:
    """Convert to dictionary."""
    return asdict(self)

  def to_json(self) -> str:
    """Serialize to JSON string."""
    return json.dumps(self.to_dict(), indent=2)

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> 'ScenarioConfig':
    """Create from dictionary."""
    return cls(**data)

  @classmethod
  def from_json(cls, json_str: str) -> 'ScenarioConfig':
    """Create from JSON string."""
    return cls.from_dict(json.loads(json_str))


SCENARIO_PRESETS = {
    'default': ScenarioConfig.default,
    'mid_period': ScenarioConfig.mid_period,
    'maturity_fade': ScenarioConfig.maturity_fade,
}
