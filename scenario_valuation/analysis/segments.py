"""
Segment aggregation.

A company is often valued as a sum of parts: operating segments that are
valued with the same DCF engine and scaled by a multiplier, plus option
segments (an early-stage business that may or may not pay off). Each
segment is an ordinary ParameterSet valued with shared coefficients and
config.

  enterprise_value = sum(multiplier * total)          operating segments
  option_value     = sum(multiplier * max(total, 0))  option segments
  total_valuation  = enterprise_value + option_value

An option can be abandoned, so a negative option segment contributes 0.

JSON format (list, or {"segments": [...]}):
  [
    {"name": "core", "parameters": {...}, "multiplier": 18},
    {"name": "expansion", "parameters": {...}, "option": true}
  ]

CLI Usage:
  python -m scenario_valuation.analysis.segments \\
      --segments segments.json \\
      --scenario mid_period
"""

import argparse
import logging
from dataclasses import dataclass
from math import isfinite
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.domain.errors import MissingParameter
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.engine.valuation import compute
from scenario_valuation.run import _read_json
from scenario_valuation.run import load_coefficients
from scenario_valuation.run import load_scenario_config
from scenario_valuation.run import parameters_from_json
from scenario_valuation.scenarios.config import ScenarioConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Segment:
  """
  One part of the business.

  Attributes:
    name: Segment identifier
    params: Full scenario parameters for this segment
    multiplier: Scale applied to the segment's total valuation
    option: Value as an option (floored at zero) instead of an operation
  """
  name: str
  params: ParameterSet
  multiplier: float = 1.0
  option: bool = False


@dataclass(frozen=True)
class SegmentValue:
  name: str
  total_valuation: float
  multiplier: float
  contribution: float
  option: bool


@dataclass(frozen=True)
class SegmentedValuation:
  """
  Sum-of-parts result.

  Attributes:
    segments: Per-segment values in input order
    enterprise_value: Sum of operating segment contributions
    option_value: Sum of option segment contributions
    total_valuation: enterprise_value + option_value
  """
  segments: Tuple[SegmentValue, ...]
  enterprise_value: float
  option_value: float
  total_valuation: float

  def to_frame(self) -> pd.DataFrame:
    """One row per segment with its share of the total."""
    df = pd.DataFrame([{
        'segment': s.name,
        'kind': 'option' if s.option else 'operating',
        'total_valuation': s.total_valuation,
        'multiplier': s.multiplier,
        'contribution': s.contribution,
    } for s in self.segments])
    total = self.total_valuation
    df['share'] = df['contribution'] / total if total != 0 else float('nan')
    return df


def _check_segments(segments: Sequence[Segment]) -> None:
  if not segments:
    raise ValueError('At least one segment is required')
  seen = set()
  for segment in segments:
    if segment.name in seen:
      raise ValueError(f'Duplicate segment name: {segment.name}')
    seen.add(segment.name)
    multiplier = segment.multiplier
    if (isinstance(multiplier, bool) or
        not isinstance(multiplier, (int, float)) or not isfinite(multiplier)
        or multiplier < 0):
      raise InvalidParameter(f'segments.{segment.name}.multiplier',
                             multiplier,
                             bound=0.0,
                             reason='multiplier must be a finite number >= 0')


def value_segments(
    segments: Sequence[Segment],
    coefficients: Optional[CoefficientSet] = None,
    config: Optional[ScenarioConfig] = None,
) -> SegmentedValuation:
  """
  Value every segment and aggregate.

  Args:
    segments: Segments in reporting order (names must be unique)
    coefficients: Shared model coefficients (default: uncalibrated)
    config: Shared engine configuration (default: ScenarioConfig.default())

  Returns:
    SegmentedValuation

  Raises:
    ValueError: No segments, or duplicate names
    InvalidParameter: Negative or non-finite multiplier, or any segment
      the engine rejects
    MissingParameter: A segment with incomplete parameters
  """
  _check_segments(segments)

  values: List[SegmentValue] = []
  enterprise_value = 0.0
  option_value = 0.0
  for segment in segments:
    result = compute(segment.params, coefficients, config)
    total = result.total_valuation
    if segment.option:
      contribution = segment.multiplier * max(total, 0.0)
      option_value += contribution
    else:
      contribution = segment.multiplier * total
      enterprise_value += contribution
    logger.debug('%s: total %.6g x %g -> %.6g%s', segment.name, total,
                 segment.multiplier, contribution,
                 ' (option)' if segment.option else '')
    values.append(
        SegmentValue(
            name=segment.name,
            total_valuation=total,
            multiplier=segment.multiplier,
            contribution=contribution,
            option=segment.option,
        ))

  return SegmentedValuation(
      segments=tuple(values),
      enterprise_value=enterprise_value,
      option_value=option_value,
      total_valuation=enterprise_value + option_value,
  )


def segment_from_record(record: Mapping[str, Any], index: int) -> Segment:
  """Build a segment from one JSON record."""
  name = str(record.get('name', f'segment_{index}'))
  if 'parameters' not in record:
    raise MissingParameter(f'segments.{name}.parameters')
  return Segment(
      name=name,
      params=parameters_from_json(record['parameters']),
      multiplier=record.get('multiplier', 1.0),
      option=bool(record.get('option', False)),
  )


def load_segments(path: Path) -> List[Segment]:
  """Load segments from a JSON list (or an object with a "segments" list)."""
  data = _read_json(path)
  if isinstance(data, Mapping):
    data = data.get('segments', [])
  return [segment_from_record(r, i) for i, r in enumerate(data)]


def main() -> None:
  """CLI entrypoint for sum-of-parts valuation."""
  parser = argparse.ArgumentParser(
      description='Value a business as the sum of its segments')
  parser.add_argument('--segments',
                      type=Path,
                      required=True,
                      help='Segments JSON')
  parser.add_argument('--coefficients',
                      type=Path,
                      help='Coefficients JSON (default: uncalibrated)')
  parser.add_argument('--scenario',
                      type=str,
                      default='default',
                      help='Scenario preset name or path to a config JSON')
  parser.add_argument('--output', type=Path, help='Output CSV path (optional)')
  args = parser.parse_args()

  logging.basicConfig(level=logging.INFO, format='%(message)s')

  valuation = value_segments(
      load_segments(args.segments),
      coefficients=load_coefficients(args.coefficients),
      config=load_scenario_config(args.scenario),
  )

  separator = '=' * 70
  logger.info(separator)
  logger.info('Sum-of-Parts Valuation - %s', args.segments)
  logger.info(separator)
  logger.info('\n%s', valuation.to_frame().to_string(index=False))
  logger.info('\nEnterprise value: %s', f'{valuation.enterprise_value:,.2f}')
  logger.info('Option value:     %s', f'{valuation.option_value:,.2f}')
  logger.info('Total valuation:  %s', f'{valuation.total_valuation:,.2f}')
  logger.info(separator)

  if args.output:
    valuation.to_frame().to_csv(args.output, index=False)
    logger.info('Saved to: %s', args.output)


if __name__ == '__main__':
  main()
