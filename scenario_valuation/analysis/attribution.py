"""
Scenario attribution.

Explains the valuation delta between a baseline and a variant scenario
parameter by parameter. Each differing parameter is substituted into the
baseline on its own (one-at-a-time) and revalued; its contribution is the
resulting change in total valuation. Whatever the isolated contributions do
not explain (interaction between parameters) is reported as the residual.

CLI Usage:
  python -m scenario_valuation.analysis.attribution \\
      --baseline scenarios/base.json \\
      --variant scenarios/bull.json \\
      --output attribution.csv
"""

import argparse
import logging
from dataclasses import dataclass
from math import isclose
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.domain.errors import ParameterSetMismatch
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.domain.types import ValuationResult
from scenario_valuation.engine.valuation import compute
from scenario_valuation.run import load_coefficients
from scenario_valuation.run import load_parameters
from scenario_valuation.run import load_scenario_config
from scenario_valuation.scenarios.config import ScenarioConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttributionEntry:
  """
  Isolated contribution of one parameter.

  Attributes:
    key: Dotted parameter key
    baseline_value: Value in the baseline scenario
    variant_value: Value in the variant scenario
    contribution: Total valuation of (baseline with this one value swapped)
      minus baseline total valuation
    isolated: False when the swapped-in value alone makes the baseline
      unvaluable (e.g. discount rate at or below terminal growth). The
      contribution is then 0.0 and the effect lands in the residual.
  """
  key: str
  baseline_value: float
  variant_value: float
  contribution: float
  isolated: bool = True


@dataclass(frozen=True)
class AttributionReport:
  """
  Decomposition of a valuation delta.

  Entries are in schema declaration order. By construction
  sum(contributions) + residual == variant_total - baseline_total.

  Attributes:
    entries: One entry per differing parameter
    baseline_total: Baseline total valuation
    variant_total: Variant total valuation
    residual: Interaction effects not captured by isolated contributions
  """
  entries: Tuple[AttributionEntry, ...]
  baseline_total: float
  variant_total: float
  residual: float

  @property
  def total_delta(self) -> float:
    return self.variant_total - self.baseline_total

  @property
  def explained(self) -> float:
    return sum(e.contribution for e in self.entries)

  def is_additive(self, rel_tol: float = 1e-6) -> bool:
    """Check contributions + residual against the total delta."""
    scale = max(abs(self.baseline_total), abs(self.variant_total))
    return isclose(self.explained + self.residual,
                   self.total_delta,
                   rel_tol=rel_tol,
                   abs_tol=rel_tol * scale)

  def to_frame(self) -> pd.DataFrame:
    """
    Report as a DataFrame with one row per parameter plus a residual row.

    'share' is each row's fraction of the total delta (NaN when the delta
    is zero).
    """
    rows: List[Dict[str, Any]] = [{
        'key': e.key,
        'baseline_value': e.baseline_value,
        'variant_value': e.variant_value,
        'contribution': e.contribution,
        'isolated': e.isolated,
    } for e in self.entries]
    rows.append({
        'key': 'residual',
        'baseline_value': float('nan'),
        'variant_value': float('nan'),
        'contribution': self.residual,
        'isolated': False,
    })
    df = pd.DataFrame(rows)
    delta = self.total_delta
    df['share'] = df['contribution'] / delta if delta != 0 else float('nan')
    return df


def _check_comparable(
    baseline_params: ParameterSet,
    baseline_result: ValuationResult,
    variant_params: ParameterSet,
    variant_result: ValuationResult,
) -> None:
  baseline_keys = baseline_params.keys()
  variant_keys = variant_params.keys()
  if set(baseline_keys) != set(variant_keys):
    raise ParameterSetMismatch(
        'Baseline and variant must declare the same parameters',
        missing=[k for k in baseline_keys if k not in variant_params],
        unexpected=[k for k in variant_keys if k not in baseline_params],
    )

  if baseline_result.params != baseline_params:
    raise ParameterSetMismatch(
        'Baseline result was not computed from the baseline parameters')
  if variant_result.params != variant_params:
    raise ParameterSetMismatch(
        'Variant result was not computed from the variant parameters')
  if baseline_result.coefficients != variant_result.coefficients:
    raise ParameterSetMismatch(
        'Baseline and variant were computed with different coefficients')
  if baseline_result.config != variant_result.config:
    raise ParameterSetMismatch(
        'Baseline and variant were computed with different scenario configs')


def attribute(
    baseline_params: ParameterSet,
    baseline_result: ValuationResult,
    variant_params: ParameterSet,
    variant_result: ValuationResult,
) -> AttributionReport:
  """
  Attribute the valuation delta between two scenarios to parameters.

  Each swapped parameter set is revalued with the baseline result's
  coefficients and config. A swapped value that cannot be valued on its own
  (e.g. it puts the discount rate at or below terminal growth) yields an
  entry with isolated=False and a zero contribution; its effect is reported
  in the residual.

  Args:
    baseline_params: Baseline scenario parameters
    baseline_result: compute() output for baseline_params
    variant_params: Variant scenario parameters (same keys as baseline)
    variant_result: compute() output for variant_params

  Returns:
    AttributionReport with per-parameter contributions and residual

  Raises:
    ParameterSetMismatch: Different key sets, results that do not belong
      to the given parameters, or different coefficients/config
  """
  _check_comparable(baseline_params, baseline_result, variant_params,
                    variant_result)

  baseline_total = baseline_result.total_valuation
  entries: List[AttributionEntry] = []

  for key in baseline_params.keys():
    baseline_value = baseline_params[key]
    variant_value = variant_params[key]
    if baseline_value == variant_value:
      continue

    swapped = baseline_params.with_value(key, variant_value)
    try:
      swapped_result = compute(swapped, baseline_result.coefficients,
                               baseline_result.config)
    except InvalidParameter as e:
      logger.debug('%s: %g -> %g not isolatable: %s', key, baseline_value,
                   variant_value, e)
      entries.append(
          AttributionEntry(
              key=key,
              baseline_value=baseline_value,
              variant_value=variant_value,
              contribution=0.0,
              isolated=False,
          ))
      continue

    contribution = swapped_result.total_valuation - baseline_total
    logger.debug('%s: %g -> %g contributes %.6g', key, baseline_value,
                 variant_value, contribution)
    entries.append(
        AttributionEntry(
            key=key,
            baseline_value=baseline_value,
            variant_value=variant_value,
            contribution=contribution,
        ))

  variant_total = variant_result.total_valuation
  explained = sum(e.contribution for e in entries)
  residual = (variant_total - baseline_total) - explained

  return AttributionReport(
      entries=tuple(entries),
      baseline_total=baseline_total,
      variant_total=variant_total,
      residual=residual,
  )


def compare_scenarios(
    baseline_params: ParameterSet,
    variant_params: ParameterSet,
    coefficients: Optional[CoefficientSet] = None,
    config: Optional[ScenarioConfig] = None,
) -> AttributionReport:
  """Value both scenarios with the same settings and attribute the delta."""
  baseline_result = compute(baseline_params, coefficients, config)
  variant_result = compute(variant_params, baseline_result.coefficients,
                           baseline_result.config)
  return attribute(baseline_params, baseline_result, variant_params,
                   variant_result)


def main() -> None:
  """CLI entrypoint for scenario attribution."""
  parser = argparse.ArgumentParser(
      description='Attribute the valuation delta between two scenarios')
  parser.add_argument('--baseline',
                      type=Path,
                      required=True,
                      help='Baseline parameters JSON (nested or flat)')
  parser.add_argument('--variant',
                      type=Path,
                      required=True,
                      help='Variant parameters JSON (nested or flat)')
  parser.add_argument('--coefficients',
                      type=Path,
                      help='Coefficients JSON (default: uncalibrated)')
  parser.add_argument('--scenario',
                      type=str,
                      default='default',
                      help='Scenario preset name or path to a config JSON')
  parser.add_argument('--output', type=Path, help='Output CSV path (optional)')
  parser.add_argument('--chart',
                      type=Path,
                      help='Waterfall chart PNG path (optional)')
  parser.add_argument('--verbose',
                      '-v',
                      action='store_true',
                      help='Verbose output')
  args = parser.parse_args()

  logging.basicConfig(
      level=logging.DEBUG if args.verbose else logging.INFO,
      format='%(asctime)s [%(levelname)s] %(message)s',
      datefmt='%Y-%m-%d %H:%M:%S',
  )

  report = compare_scenarios(
      baseline_params=load_parameters(args.baseline),
      variant_params=load_parameters(args.variant),
      coefficients=load_coefficients(args.coefficients),
      config=load_scenario_config(args.scenario),
  )

  separator = '=' * 70
  logger.info(separator)
  logger.info('Scenario Attribution')
  logger.info(separator)
  logger.info('Baseline total: %s', f'{report.baseline_total:,.2f}')
  logger.info('Variant total:  %s', f'{report.variant_total:,.2f}')
  logger.info('Delta:          %s', f'{report.total_delta:,.2f}')
  logger.info('\n%s', report.to_frame().to_string(index=False))
  logger.info(separator)

  if args.output:
    report.to_frame().to_csv(args.output, index=False)
    logger.info('Saved to: %s', args.output)

  if args.chart:
    from scenario_valuation.analysis.plot_attribution import \
        plot_attribution_waterfall
    plot_attribution_waterfall(report, args.chart)


if __name__ == '__main__':
  main()
