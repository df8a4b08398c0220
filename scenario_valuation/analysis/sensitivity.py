"""
Sensitivity analysis for scenario valuation.

This module provides tools to generate 2D sensitivity tables that show
how total valuation varies across two parameters while every other
parameter stays at its scenario value.

CLI Usage:
  python -m scenario_valuation.analysis.sensitivity \\
      --params scenarios/base.json \\
      --rows financial.discount_rate --row-values 0.08,0.10,0.12 \\
      --cols financial.terminal_growth --col-values 0.01,0.02,0.03
"""

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.engine.valuation import compute
from scenario_valuation.run import load_coefficients
from scenario_valuation.run import load_parameters
from scenario_valuation.run import load_scenario_config
from scenario_valuation.scenarios.config import ScenarioConfig

logger = logging.getLogger(__name__)


class SensitivityTableBuilder:
  """
  Build 2D sensitivity tables for total valuation.

  Varies two parameters while keeping the rest of the scenario, the
  coefficients and the engine configuration fixed.
  """

  def __init__(
      self,
      params: ParameterSet,
      coefficients: Optional[CoefficientSet] = None,
      config: Optional[ScenarioConfig] = None,
  ):
    """
    Initialize sensitivity table builder.

    Args:
        params: Base scenario parameters
        coefficients: Model coefficients (default: uncalibrated)
        config: Engine configuration (default: ScenarioConfig.default())
    """
    self.params = params
    self.coefficients = coefficients or CoefficientSet.default()
    self.config = config or ScenarioConfig.default()

    base = compute(self.params, self.coefficients, self.config)
    self.base_total = base.total_valuation

    logger.info('Initialized SensitivityTableBuilder')
    logger.info('  Scenario: %s (%d periods)', self.config.name,
                self.config.n_periods)
    logger.info('  Base total valuation: %s', f'{self.base_total:,.2f}')

  def build(
      self,
      row_key: str,
      row_values: Sequence[float],
      col_key: str,
      col_values: Sequence[float],
  ) -> pd.DataFrame:
    """
    Build 2D sensitivity table.

    Cells where the combination is invalid (e.g., discount rate at or below
    terminal growth) hold NaN.

    Args:
        row_key: Dotted parameter key varied along rows
        row_values: Values for row_key
        col_key: Dotted parameter key varied along columns
        col_values: Values for col_key

    Returns:
        DataFrame with row_values as index, col_values as columns and
        total valuations as cell values
    """
    if not row_values:
      raise ValueError('row_values cannot be empty')
    if not col_values:
      raise ValueError('col_values cannot be empty')
    if row_key == col_key:
      raise ValueError(f'row and column parameters must differ: {row_key}')

    logger.info('Building sensitivity table: %d x %d', len(row_values),
                len(col_values))

    data_rows = []
    for row_value in row_values:
      row_params = self.params.with_value(row_key, row_value)
      row_data = []
      for col_value in col_values:
        cell_params = row_params.with_value(col_key, col_value)
        try:
          result = compute(cell_params, self.coefficients, self.config)
          row_data.append(result.total_valuation)
        except InvalidParameter as e:
          logger.debug('%s=%g, %s=%g undefined: %s', row_key, row_value,
                       col_key, col_value, e)
          row_data.append(float('nan'))
      data_rows.append(row_data)

    df = pd.DataFrame(data_rows,
                      index=pd.Index(list(row_values), name=row_key),
                      columns=pd.Index(list(col_values), name=col_key))

    logger.info('Sensitivity table built successfully')
    return df


def _parse_float_list(s: str) -> list[float]:
  """Parse comma-separated float list."""
  return [float(x.strip()) for x in s.split(',')]


def main() -> None:
  """CLI entrypoint for sensitivity analysis."""
  parser = argparse.ArgumentParser(
      description='Scenario Sensitivity Analysis',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog=__doc__)

  parser.add_argument('--params',
                      type=Path,
                      required=True,
                      help='Parameters JSON (nested or flat)')
  parser.add_argument('--coefficients',
                      type=Path,
                      help='Coefficients JSON (default: uncalibrated)')
  parser.add_argument('--scenario',
                      type=str,
                      default='default',
                      help='Scenario preset name or config JSON path')
  parser.add_argument('--rows',
                      type=str,
                      default='financial.discount_rate',
                      help='Parameter varied along rows')
  parser.add_argument('--row-values',
                      type=str,
                      default='0.08,0.10,0.12',
                      help='Comma-separated row values')
  parser.add_argument('--cols',
                      type=str,
                      default='financial.terminal_growth',
                      help='Parameter varied along columns')
  parser.add_argument('--col-values',
                      type=str,
                      default='0.01,0.02,0.03',
                      help='Comma-separated column values')
  parser.add_argument('--output', type=Path, help='Output CSV path (optional)')
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

  builder = SensitivityTableBuilder(
      params=load_parameters(args.params),
      coefficients=load_coefficients(args.coefficients),
      config=load_scenario_config(args.scenario),
  )

  table = builder.build(
      row_key=args.rows,
      row_values=_parse_float_list(args.row_values),
      col_key=args.cols,
      col_values=_parse_float_list(args.col_values),
  )

  print('\n' + '=' * 80)
  print(f'Sensitivity Analysis: {args.params}')
  print('=' * 80)
  print(f'Scenario: {builder.config.name}')
  print(f'Base Total Valuation: {builder.base_total:,.2f}')
  print('=' * 80)
  print(table.to_string(float_format=lambda x: f'{x:,.2f}'))
  print('=' * 80 + '\n')

  if args.output:
    table.to_csv(args.output)
    logger.info('Saved to: %s', args.output)


if __name__ == '__main__':
  main()
