'''
Single-scenario valuation entrypoint.

This module provides the command-line entry point for valuing one scenario.
It:
1. Loads parameters, coefficients and scenario config from JSON
2. Runs the valuation engine
3. Logs the per-period build-up and totals

Usage:
  python -m scenario_valuation.run \\
      --params scenarios/base.json \\
      --coefficients calibrated.json \\
      --scenario mid_period \\
      --output base_periods.csv
'''

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.engine.valuation import compute
from scenario_valuation.scenarios.config import SCENARIO_PRESETS
from scenario_valuation.scenarios.config import ScenarioConfig

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> Any:
  if not path.exists():
    raise FileNotFoundError(f'File not found: {path}')
  with path.open(encoding='utf-8') as f:
    return json.load(f)


def parameters_from_json(data: Dict[str, Any]) -> ParameterSet:
  '''
  Build a ParameterSet from either a nested or a flat JSON object.

  Nested: {"financial": {"discount_rate": 0.1}}
  Flat:   {"financial.discount_rate": 0.1}
  '''
  if data and all(isinstance(v, dict) for v in data.values()):
    return ParameterSet.from_dict(data)
  return ParameterSet.from_flat(data)


def load_parameters(path: Path) -> ParameterSet:
  '''Load a ParameterSet from a JSON file.'''
  return parameters_from_json(_read_json(path))


def load_coefficients(path: Optional[Path]) -> CoefficientSet:
  '''Load coefficients from JSON, or the defaults when path is None.'''
  if path is None:
    return CoefficientSet.default()
  return CoefficientSet.from_dict(_read_json(path))


def load_scenario_config(name_or_path: str) -> ScenarioConfig:
  '''Resolve a preset name or a path to a ScenarioConfig JSON file.'''
  if name_or_path in SCENARIO_PRESETS:
    return SCENARIO_PRESETS[name_or_path]()
  path = Path(name_or_path)
  if not path.exists():
    raise ValueError(f'Unknown scenario: {name_or_path}. '
                     f'Available presets: {list(SCENARIO_PRESETS.keys())}')
  return ScenarioConfig.from_dict(_read_json(path))


def main() -> None:
  '''CLI entrypoint.'''
  parser = argparse.ArgumentParser(description='Run scenario valuation')
  parser.add_argument('--params',
                      type=Path,
                      required=True,
                      help='Parameters JSON (nested or flat)')
  parser.add_argument('--coefficients',
                      type=Path,
                      help='Coefficients JSON (default: uncalibrated)')
  parser.add_argument(
      '--scenario',
      type=str,
      default='default',
      help=f'Preset ({", ".join(SCENARIO_PRESETS)}) or config JSON path',
  )
  parser.add_argument('--n-periods',
                      type=int,
                      help='Override the projection horizon')
  parser.add_argument('--output',
                      type=Path,
                      help='Per-period CSV output path (optional)')
  args = parser.parse_args()

  logging.basicConfig(
      level=logging.INFO,
      format='%(message)s',
  )

  config = load_scenario_config(args.scenario)
  if args.n_periods is not None:
    config = ScenarioConfig.from_dict({
        **config.to_dict(), 'n_periods': args.n_periods
    })

  params = load_parameters(args.params)
  coefficients = load_coefficients(args.coefficients)
  result = compute(params, coefficients, config)

  separator = '=' * 70
  logger.info('\n%s', separator)
  logger.info('Scenario Valuation - %s', args.params)
  logger.info('Scenario: %s (%d periods, %s discounting)', config.name,
              config.n_periods, config.discount)
  logger.info(separator)

  logger.info('\nParameters:')
  for key, value in params.to_flat().items():
    logger.info('  %s: %g', key, value)

  logger.info('\nCoefficients:')
  for name, value in coefficients.to_dict().items():
    logger.info('  %s: %g', name, value)

  logger.info('\nPeriods:\n%s', result.to_frame().to_string())

  logger.info('\nValuation Result:')
  logger.info('  PV Explicit: %s', f'{result.present_value:,.2f}')
  logger.info('  Terminal Value: %s', f'{result.terminal_value:,.2f}')
  logger.info('  TV Component: %s', f'{result.discounted_terminal_value:,.2f}')
  logger.info('  Total Valuation: %s', f'{result.total_valuation:,.2f}')
  logger.info('%s\n', separator)

  if args.output:
    result.to_frame().to_csv(args.output)
    logger.info('Saved to: %s', args.output)


if __name__ == '__main__':
  main()
