'''
Internal model coefficients.

Coefficients are the tunable constants of the cash-flow formula, distinct
from the user-facing ParameterSet. They are searched by the calibration
engine and otherwise passed explicitly into every valuation call; there is
no process-wide coefficient table.
'''

from dataclasses import dataclass
from dataclasses import field
from typing import Any, Dict, Mapping, Optional, Tuple

from scenario_valuation.domain.errors import MissingParameter
from scenario_valuation.domain.errors import UnknownParameter
from scenario_valuation.domain.parameters import ParameterSpec


@dataclass(frozen=True)
class CoefficientSpec:
  '''
  Declaration of a tunable coefficient.

  Attributes:
    name: Coefficient name
    default: Uncalibrated value
    lower: Inclusive lower search bound
    upper: Inclusive upper search bound
    description: Human-readable meaning
  '''
  name: str
  default: float
  lower: float
  upper: float
  description: str = ''

  @property
  def key(self) -> str:
    return f'coefficients.{self.name}'

  @property
  def span(self) -> float:
    return self.upper - self.lower

  def validate(self, value: Any) -> float:
    '''Check value against the search bounds.'''
    bounds = ParameterSpec('coefficients', self.name, self.lower, self.upper)
    return bounds.validate(value)

  def clip(self, value: float) -> float:
    return min(max(value, self.lower), self.upper)


COEFFICIENT_SPECS: Tuple[CoefficientSpec, ...] = (
    CoefficientSpec('revenue_scale', 1.0, 0.1, 10.0,
                    'Multiplier on computed revenue'),
    CoefficientSpec('cost_scale', 1.0, 0.1, 10.0,
                    'Multiplier on variable cost'),
    CoefficientSpec('penetration_elasticity', 1.0, 0.1, 4.0,
                    'Exponent applied to penetration rate'),
    CoefficientSpec('volume_elasticity', 1.0, 0.1, 4.0,
                    'Exponent applied to per-period volume growth'),
)

_SPECS_BY_NAME = {spec.name: spec for spec in COEFFICIENT_SPECS}


@dataclass(frozen=True)
class CoefficientSet:
  '''
  Immutable set of coefficient values.

  Items are stored in COEFFICIENT_SPECS declaration order. Every declared
  coefficient is always present: omitted names take their default.

  Attributes:
    items: Tuple of (name, value) pairs in declaration order
  '''
  items: Tuple[Tuple[str, float], ...]
  _values: Dict[str, float] = field(init=False, repr=False, compare=False)

  def __post_init__(self):
    values: Dict[str, float] = {}
    for name, value in self.items:
      spec = _SPECS_BY_NAME.get(name)
      if spec is None:
        raise UnknownParameter(f'coefficients.{name}', value)
      values[name] = spec.validate(value)

    ordered = tuple((spec.name, values.get(spec.name, spec.default))
                    for spec in COEFFICIENT_SPECS)
    object.__setattr__(self, 'items', ordered)
    object.__setattr__(self, '_values', dict(ordered))

  @classmethod
  def default(cls) -> 'CoefficientSet':
    '''Uncalibrated coefficients (every multiplier and exponent at 1).'''
    return cls(items=())

  @classmethod
  def from_dict(cls, values: Mapping[str, Any]) -> 'CoefficientSet':
    return cls(items=tuple(values.items()))

  @staticmethod
  def names() -> Tuple[str, ...]:
    return tuple(spec.name for spec in COEFFICIENT_SPECS)

  @staticmethod
  def spec(name: str) -> CoefficientSpec:
    found: Optional[CoefficientSpec] = _SPECS_BY_NAME.get(name)
    if found is None:
      raise UnknownParameter(f'coefficients.{name}', None)
    return found

  def get(self, name: str) -> float:
    if name not in self._values:
      raise MissingParameter(f'coefficients.{name}')
    return self._values[name]

  def __getitem__(self, name: str) -> float:
    return self.get(name)

  def with_value(self, name: str, value: float) -> 'CoefficientSet':
    '''Return a new set with one coefficient replaced.'''
    updated = dict(self.items)
    updated[name] = value
    return CoefficientSet(items=tuple(updated.items()))

  def to_dict(self) -> Dict[str, float]:
    return dict(self.items)
