'''
Parameter schema and immutable parameter sets.

A ParameterSet holds the user-facing inputs of one valuation scenario,
grouped into domains (market, pricing, operations, financial). Every
parameter is declared in a ParameterSchema with an inclusive numeric range;
values outside the range are rejected when the set is built.

Keys are addressed either as (domain, name) pairs or as dotted strings
('financial.discount_rate'). The dotted form is also the flat persistence
format used by external document stores.

Usage:
  params = ParameterSet.from_dict({
      'financial': {'discount_rate': 0.10, 'terminal_growth': 0.03},
  })
  params.get('financial', 'discount_rate')  # 0.10
  variant = params.with_value('financial.discount_rate', 0.12)
'''

from dataclasses import dataclass
from dataclasses import field
from math import isfinite
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.domain.errors import MissingParameter
from scenario_valuation.domain.errors import UnknownParameter


def split_key(key: str) -> Tuple[str, str]:
  '''Split a dotted key into (domain, name).'''
  domain, sep, name = key.partition('.')
  if not sep or not domain or not name:
    raise ValueError(f"Parameter key must look like 'domain.name': {key!r}")
  return domain, name


@dataclass(frozen=True)
class ParameterSpec:
  '''
  Declaration of a single parameter.

  Attributes:
    domain: Domain the parameter belongs to (e.g., 'financial')
    name: Parameter name within the domain (e.g., 'discount_rate')
    lower: Inclusive lower bound
    upper: Inclusive upper bound
    description: Human-readable meaning
  '''
  domain: str
  name: str
  lower: float
  upper: float
  description: str = ''

  @property
  def key(self) -> str:
    return f'{self.domain}.{self.name}'

  def validate(self, value: Any) -> float:
    '''Coerce value to float and check it against the declared range.'''
    if isinstance(value, bool):
      raise InvalidParameter(self.key, value, reason='not a number')
    try:
      number = float(value)
    except (TypeError, ValueError) as e:
      raise InvalidParameter(self.key, value, reason='not a number') from e

    if not isfinite(number):
      raise InvalidParameter(self.key, value, reason='not finite')
    if number < self.lower:
      raise InvalidParameter(self.key,
                             value,
                             bound=self.lower,
                             reason='below lower bound')
    if number > self.upper:
      raise InvalidParameter(self.key,
                             value,
                             bound=self.upper,
                             reason='above upper bound')
    return number


@dataclass(frozen=True)
class ParameterSchema:
  '''
  Ordered collection of parameter declarations.

  Declaration order is significant: it fixes the order of keys in
  serialised sets and in attribution reports.
  '''
  specs: Tuple[ParameterSpec, ...]
  _by_key: Dict[str, ParameterSpec] = field(init=False,
                                            repr=False,
                                            compare=False)

  def __post_init__(self):
    by_key: Dict[str, ParameterSpec] = {}
    for spec in self.specs:
      if spec.key in by_key:
        raise ValueError(f'Duplicate parameter declaration: {spec.key}')
      by_key[spec.key] = spec
    object.__setattr__(self, '_by_key', by_key)

  def keys(self) -> Tuple[str, ...]:
    return tuple(spec.key for spec in self.specs)

  def domains(self) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(spec.domain for spec in self.specs))

  def find(self, key: str) -> Optional[ParameterSpec]:
    return self._by_key.get(key)

  def spec(self, key: str) -> ParameterSpec:
    found = self._by_key.get(key)
    if found is None:
      raise UnknownParameter(key, None)
    return found


DEFAULT_SCHEMA = ParameterSchema(specs=(
    ParameterSpec('market', 'addressable_volume', 0.0, 1e12,
                  'Addressable units in the base period'),
    ParameterSpec('market', 'penetration_rate', 0.0, 1.0,
                  'Captured share of addressable volume'),
    ParameterSpec('market', 'volume_growth', -0.9, 2.0,
                  'Period-over-period growth of addressable volume'),
    ParameterSpec('market', 'launch_period', 0.0, 100.0,
                  'First period with unit sales'),
    ParameterSpec('pricing', 'price_per_unit', 0.0, 1e9,
                  'Base-period price per unit'),
    ParameterSpec('pricing', 'price_decline', -0.5, 0.99,
                  'Period-over-period price decline'),
    ParameterSpec('operations', 'unit_cost', 0.0, 1e9,
                  'Base-period variable cost per unit'),
    ParameterSpec('operations', 'cost_decline', -0.5, 0.99,
                  'Period-over-period unit cost decline'),
    ParameterSpec('operations', 'fixed_cost', 0.0, 1e15,
                  'Fixed cost per period'),
    ParameterSpec('operations', 'tax_rate', 0.0, 1.0,
                  'Tax rate on positive operating profit'),
    ParameterSpec('financial', 'discount_rate', 0.0, 1.0,
                  'Required return used for discounting'),
    ParameterSpec('financial', 'terminal_growth', -0.5, 0.5,
                  'Perpetual growth rate after the horizon'),
    ParameterSpec('financial', 'dilution_factor', 0.0, 1.0,
                  'Share of cash flow retained by current holders'),
))


@dataclass(frozen=True)
class ParameterSet:
  '''
  Immutable, validated set of scenario parameters.

  Items are stored as (dotted key, value) pairs in schema declaration order.
  A set may be partial; the valuation engine checks completeness. Build
  with from_dict() or from_flat() rather than the raw constructor.

  Attributes:
    items: Tuple of (key, value) pairs in declaration order
    schema: Schema the values were validated against
  '''
  items: Tuple[Tuple[str, float], ...]
  schema: ParameterSchema = field(default=DEFAULT_SCHEMA,
                                  repr=False,
                                  compare=False)
  _values: Dict[str, float] = field(init=False, repr=False, compare=False)

  def __post_init__(self):
    values: Dict[str, float] = {}
    for key, value in self.items:
      spec = self.schema.find(key)
      if spec is None:
        raise UnknownParameter(key, value)
      if key in values:
        raise InvalidParameter(key, value, reason='duplicate key')
      values[key] = spec.validate(value)

    ordered = tuple((key, values[key]) for key in self.schema.keys()
                    if key in values)
    object.__setattr__(self, 'items', ordered)
    object.__setattr__(self, '_values', dict(ordered))

  @classmethod
  def from_dict(
      cls,
      values: Mapping[str, Mapping[str, Any]],
      schema: ParameterSchema = DEFAULT_SCHEMA,
  ) -> 'ParameterSet':
    '''Build from a nested {domain: {name: value}} mapping.'''
    items = []
    for domain, params in values.items():
      if not isinstance(params, Mapping):
        raise InvalidParameter(domain,
                               params,
                               reason='domain must map names to numbers')
      for name, value in params.items():
        items.append((f'{domain}.{name}', value))
    return cls(items=tuple(items), schema=schema)

  @classmethod
  def from_flat(
      cls,
      values: Mapping[str, Any],
      schema: ParameterSchema = DEFAULT_SCHEMA,
  ) -> 'ParameterSet':
    '''Build from a flat {'domain.name': value} mapping.'''
    return cls(items=tuple(values.items()), schema=schema)

  def get(self, domain: str, name: str) -> float:
    '''
    Return a parameter value.

    Raises:
      MissingParameter: Naming the domain when the whole domain is absent,
        otherwise naming the dotted parameter key
    '''
    key = f'{domain}.{name}'
    if key in self._values:
      return self._values[key]
    if domain not in self.domains():
      raise MissingParameter(domain)
    raise MissingParameter(key)

  def __getitem__(self, key: str) -> float:
    return self.get(*split_key(key))

  def __contains__(self, key: object) -> bool:
    return key in self._values

  def __len__(self) -> int:
    return len(self.items)

  def keys(self) -> Tuple[str, ...]:
    return tuple(key for key, _ in self.items)

  def domains(self) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(split_key(key)[0] for key, _ in self.items))

  def require(self, keys: Iterable[str]) -> None:
    '''Raise MissingParameter for the first absent key, in the given order.'''
    for key in keys:
      if key not in self._values:
        self.get(*split_key(key))

  def require_complete(self) -> None:
    '''Raise MissingParameter unless every schema key is present.'''
    self.require(self.schema.keys())

  def with_value(self, key: str, value: Any) -> 'ParameterSet':
    '''Return a new set with one parameter replaced (or added).'''
    updated = dict(self.items)
    updated[key] = value
    return ParameterSet(items=tuple(updated.items()), schema=self.schema)

  def to_dict(self) -> Dict[str, Dict[str, float]]:
    '''Convert to nested {domain: {name: value}} dictionary.'''
    result: Dict[str, Dict[str, float]] = {}
    for key, value in self.items:
      domain, name = split_key(key)
      result.setdefault(domain, {})[name] = value
    return result

  def to_flat(self) -> Dict[str, float]:
    '''Convert to flat {'domain.name': value} dictionary.'''
    return dict(self.items)
