'''
Calibration reference cases.

A CalibrationCase pairs a full ParameterSet with the outputs a trusted
reference (typically a spreadsheet model) produces for it. Cases are loaded
from either JSON records or a flat table with one row per case.

JSON format (list, or {"cases": [...]}):
  [
    {
      "name": "base",
      "parameters": {"financial": {"discount_rate": 0.12, ...}, ...},
      "expected": {"total_valuation": 124.48, "present_value": 40.1},
      "rel_tolerance": 0.01
    },
    {"name": "bear", "parameters": {...}, "expected": 61.2}
  ]

Table format (CSV / DataFrame):
  name, <domain.parameter>..., expected.total_valuation,
  [expected.present_value], [expected.terminal_value], [rel_tolerance]

Blank parameter cells are treated as absent, never as zero.
'''

from dataclasses import dataclass
from math import isfinite
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.domain.errors import MissingParameter
from scenario_valuation.domain.errors import UnknownParameter
from scenario_valuation.domain.parameters import DEFAULT_SCHEMA
from scenario_valuation.domain.parameters import ParameterSchema
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.domain.types import ValuationResult
from scenario_valuation.run import _read_json
from scenario_valuation.run import parameters_from_json

EXPECTED_PREFIX = 'expected.'
_SCALAR_OUTPUTS = ('total_valuation', 'present_value', 'terminal_value')
_META_COLUMNS = ('name', 'rel_tolerance')


def relative_error(computed: float, expected: float) -> float:
  '''Signed relative error; absolute error when the expected value is 0.'''
  if expected == 0:
    return computed
  return (computed - expected) / abs(expected)


def _finite(key: str, value: Any) -> float:
  if isinstance(value, bool):
    raise InvalidParameter(key, value, reason='not a number')
  try:
    number = float(value)
  except (TypeError, ValueError) as e:
    raise InvalidParameter(key, value, reason='not a number') from e
  if not isfinite(number):
    raise InvalidParameter(key, value, reason='not finite')
  return number


@dataclass(frozen=True)
class ExpectedOutputs:
  '''
  Reference outputs for one case.

  Only total_valuation is required. terminal_value is compared against the
  undiscounted terminal value.

  Attributes:
    total_valuation: Expected total valuation
    present_value: Expected PV of the explicit periods (optional)
    terminal_value: Expected undiscounted terminal value (optional)
    cash_flows: Expected per-period cash flows (optional)
  '''
  total_valuation: float
  present_value: Optional[float] = None
  terminal_value: Optional[float] = None
  cash_flows: Optional[Tuple[float, ...]] = None

  @classmethod
  def from_value(cls, data: Any) -> 'ExpectedOutputs':
    '''Build from a bare number or a mapping of output name to value.'''
    if not isinstance(data, Mapping):
      return cls(total_valuation=_finite('expected.total_valuation', data))

    if data.get('total_valuation') is None:
      raise MissingParameter('expected.total_valuation')
    unknown = set(data) - set(_SCALAR_OUTPUTS) - {'cash_flows'}
    if unknown:
      key = sorted(unknown)[0]
      raise UnknownParameter(f'{EXPECTED_PREFIX}{key}', data[key])

    optional: Dict[str, Optional[float]] = {}
    for name in ('present_value', 'terminal_value'):
      value = data.get(name)
      optional[name] = (None if value is None else _finite(
          f'{EXPECTED_PREFIX}{name}', value))

    cash_flows = data.get('cash_flows')
    if cash_flows is not None and (isinstance(cash_flows, (str, bytes)) or
                                   not isinstance(cash_flows, Sequence)):
      raise InvalidParameter('expected.cash_flows',
                             cash_flows,
                             reason='not a list of numbers')
    return cls(
        total_valuation=_finite('expected.total_valuation',
                                data['total_valuation']),
        cash_flows=(None if cash_flows is None else tuple(
            _finite('expected.cash_flows', cf) for cf in cash_flows)),
        **optional,
    )

  def relative_errors(self, result: ValuationResult) -> List[float]:
    '''Relative error of every expected output against a result.'''
    pairs = [(result.total_valuation, self.total_valuation)]
    if self.present_value is not None:
      pairs.append((result.present_value, self.present_value))
    if self.terminal_value is not None:
      pairs.append((result.terminal_value, self.terminal_value))
    if self.cash_flows is not None:
      if len(self.cash_flows) != result.n_periods:
        raise InvalidParameter(
            'expected.cash_flows',
            len(self.cash_flows),
            bound=result.n_periods,
            reason='number of expected cash flows differs from the horizon')
      pairs.extend(zip(result.cash_flows, self.cash_flows))
    return [relative_error(computed, expected) for computed, expected in pairs]


@dataclass(frozen=True)
class CalibrationCase:
  '''
  One row of the reference table.

  Attributes:
    name: Case identifier used in logs and reports
    params: Full scenario parameters
    expected: Reference outputs
    rel_tolerance: Optional per-case bound on max |relative error|
  '''
  name: str
  params: ParameterSet
  expected: ExpectedOutputs
  rel_tolerance: Optional[float] = None

  def __post_init__(self):
    if self.rel_tolerance is None:
      return
    key = f'{self.name}.rel_tolerance'
    tolerance = _finite(key, self.rel_tolerance)
    if not tolerance > 0:
      raise InvalidParameter(key,
                             self.rel_tolerance,
                             bound=0.0,
                             reason='tolerance must be positive')
    object.__setattr__(self, 'rel_tolerance', tolerance)


def case_from_record(record: Mapping[str, Any], index: int) -> CalibrationCase:
  '''Build a case from one JSON record.'''
  name = str(record.get('name', f'case_{index}'))
  if 'parameters' not in record:
    raise MissingParameter(f'{name}.parameters')
  if 'expected' not in record:
    raise MissingParameter(f'{name}.expected')

  return CalibrationCase(
      name=name,
      params=parameters_from_json(record['parameters']),
      expected=ExpectedOutputs.from_value(record['expected']),
      rel_tolerance=record.get('rel_tolerance'),
  )


def cases_from_records(
    records: Sequence[Mapping[str, Any]]) -> List[CalibrationCase]:
  return [case_from_record(r, i) for i, r in enumerate(records)]


def load_cases_json(path: Path) -> List[CalibrationCase]:
  '''Load cases from a JSON list (or an object with a "cases" list).'''
  data = _read_json(path)
  if isinstance(data, Mapping):
    data = data.get('cases', [])
  return cases_from_records(data)


def cases_from_frame(
    df: pd.DataFrame,
    schema: ParameterSchema = DEFAULT_SCHEMA,
) -> List[CalibrationCase]:
  '''
  Build cases from a flat table, one row per case.

  Raises:
    MissingParameter: If the expected.total_valuation column is absent
    UnknownParameter: If a column is neither a schema key, an expected
      output nor a metadata column
  '''
  expected_total = f'{EXPECTED_PREFIX}total_valuation'
  if expected_total not in df.columns:
    raise MissingParameter(expected_total)

  param_columns = []
  for column in df.columns:
    if schema.find(column) is not None:
      param_columns.append(column)
    elif column in _META_COLUMNS:
      continue
    elif (column.startswith(EXPECTED_PREFIX) and
          column[len(EXPECTED_PREFIX):] in _SCALAR_OUTPUTS):
      continue
    else:
      raise UnknownParameter(column, None)

  cases = []
  for i, row in enumerate(df.to_dict('records')):
    name = row.get('name')
    name = f'case_{i}' if name is None or pd.isna(name) else str(name)

    flat = {c: row[c] for c in param_columns if not pd.isna(row[c])}
    expected = {
        output: row[f'{EXPECTED_PREFIX}{output}']
        for output in _SCALAR_OUTPUTS
        if f'{EXPECTED_PREFIX}{output}' in row and
        not pd.isna(row[f'{EXPECTED_PREFIX}{output}'])
    }
    tolerance = row.get('rel_tolerance')

    cases.append(
        CalibrationCase(
            name=name,
            params=ParameterSet.from_flat(flat, schema=schema),
            expected=ExpectedOutputs.from_value(expected),
            rel_tolerance=(None if tolerance is None or pd.isna(tolerance)
                           else tolerance),
        ))
  return cases


def load_cases_csv(path: Path) -> List[CalibrationCase]:
  '''Load cases from a CSV reference table.'''
  if not path.exists():
    raise FileNotFoundError(f'Reference table not found: {path}')
  return cases_from_frame(pd.read_csv(path))
