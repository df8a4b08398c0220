"""
Monte Carlo valuation.

Draws uncertain parameters from per-parameter distributions around a base
scenario, values every draw with the deterministic engine and summarises
the resulting distribution of total valuation. Draws are seeded, so a run
is reproducible from (params, distributions, runs, seed).

Each drawn value is clipped to the distribution's own bounds and to the
parameter's declared range. A draw the engine rejects (for example a
discount rate that falls to or below terminal growth) is recorded as NaN
and counted, not raised.

Summary scenarios follow the usual quartile convention:
  bear       = 25th percentile
  base       = mean
  optimistic = 75th percentile

Distributions JSON:
  {
    "financial.discount_rate": {"distribution": "normal", "stdDev": 0.01,
                                "min": 0.08, "max": 0.16},
    "market.penetration_rate": {"distribution": "uniform",
                                "min": 0.1, "max": 0.3}
  }

CLI Usage:
  python -m scenario_valuation.analysis.monte_carlo \\
      --params scenarios/base.json \\
      --distributions scenarios/uncertainty.json \\
      --runs 5000 --seed 42 \\
      --output runs.csv
"""

import argparse
import logging
from dataclasses import dataclass
from math import inf
from math import isfinite
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.engine.valuation import compute
from scenario_valuation.run import _read_json
from scenario_valuation.run import load_coefficients
from scenario_valuation.run import load_parameters
from scenario_valuation.run import load_scenario_config
from scenario_valuation.scenarios.config import ScenarioConfig

logger = logging.getLogger(__name__)

DISTRIBUTION_KINDS = ('normal', 'uniform')


def _optional_number(key: str, value: Any) -> Optional[float]:
  if value is None:
    return None
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
class ParameterDistribution:
  """
  Uncertainty on one parameter.

  A normal distribution is centred on the base scenario's value; a uniform
  one spans [lower, upper] regardless of the base value.

  Attributes:
    key: Dotted parameter key
    kind: 'normal' or 'uniform'
    std_dev: Standard deviation (normal only)
    lower: Lower clip (normal) or lower end (uniform)
    upper: Upper clip (normal) or upper end (uniform)
  """
  key: str
  kind: str = 'normal'
  std_dev: Optional[float] = None
  lower: Optional[float] = None
  upper: Optional[float] = None

  def __post_init__(self):
    if self.kind not in DISTRIBUTION_KINDS:
      raise ValueError(f"Unknown distribution for {self.key}: '{self.kind}'. "
                       f'Available: {list(DISTRIBUTION_KINDS)}')
    for name in ('std_dev', 'lower', 'upper'):
      object.__setattr__(
          self, name,
          _optional_number(f'{self.key}.{name}', getattr(self, name)))

    if self.kind == 'normal':
      if self.std_dev is None:
        raise InvalidParameter(f'{self.key}.std_dev',
                               None,
                               reason='normal distribution needs std_dev')
      if self.std_dev < 0:
        raise InvalidParameter(f'{self.key}.std_dev',
                               self.std_dev,
                               bound=0.0,
                               reason='below lower bound')
    elif self.lower is None or self.upper is None:
      raise InvalidParameter(f'{self.key}.lower',
                             self.lower,
                             reason='uniform needs lower and upper')

    if (self.lower is not None and self.upper is not None and
        self.lower > self.upper):
      raise InvalidParameter(f'{self.key}.lower',
                             self.lower,
                             bound=self.upper,
                             reason='lower bound above upper bound')

  @classmethod
  def from_dict(cls, key: str,
                data: Mapping[str, Any]) -> 'ParameterDistribution':
    """Build from a JSON object (accepts stdDev/std_dev and min/max)."""
    return cls(
        key=key,
        kind=str(data.get('distribution', data.get('kind', 'normal'))).lower(),
        std_dev=data.get('std_dev', data.get('stdDev')),
        lower=data.get('min', data.get('lower')),
        upper=data.get('max', data.get('upper')),
    )

  def sample(self, rng: np.random.Generator, mean: float,
             size: int) -> np.ndarray:
    """Draw size values (before clipping to the declared range)."""
    if self.kind == 'uniform':
      return rng.uniform(self.lower, self.upper, size)
    return rng.normal(mean, self.std_dev, size)


def distributions_from_json(
    data: Mapping[str, Mapping[str, Any]]) -> List[ParameterDistribution]:
  """Parse a {key: distribution} mapping, keeping its order."""
  return [ParameterDistribution.from_dict(k, v) for k, v in data.items()]


@dataclass(frozen=True, eq=False)
class MonteCarloResult:
  """
  Outcome of a simulation.

  Attributes:
    keys: Simulated parameter keys, in draw order
    draws: (runs, len(keys)) array of clipped parameter values
    values: Total valuation per run, NaN where the draw was rejected
    base_total: Total valuation of the undisturbed base scenario
    n_invalid: Number of rejected draws
    seed: Seed the draws came from
  """
  keys: Tuple[str, ...]
  draws: np.ndarray
  values: np.ndarray
  base_total: float
  n_invalid: int
  seed: int

  @property
  def runs(self) -> int:
    return len(self.values)

  @property
  def valid_values(self) -> np.ndarray:
    return self.values[~np.isnan(self.values)]

  def summary(self) -> Dict[str, float]:
    """Distribution statistics and the bear/base/optimistic scenarios."""
    valid = self.valid_values
    p5, p25, p50, p75, p95 = np.percentile(valid, [5, 25, 50, 75, 95])
    mean = float(np.mean(valid))
    return {
        'runs': self.runs,
        'valid_runs': len(valid),
        'mean': mean,
        'std': float(np.std(valid)),
        'min': float(np.min(valid)),
        'max': float(np.max(valid)),
        'p5': float(p5),
        'p25': float(p25),
        'median': float(p50),
        'p75': float(p75),
        'p95': float(p95),
        'bear': float(p25),
        'base': mean,
        'optimistic': float(p75),
    }

  def histogram(self, bins: int = 100) -> pd.DataFrame:
    """Probability of each valuation bin over the valid runs."""
    counts, edges = np.histogram(self.valid_values, bins=bins)
    return pd.DataFrame({
        'bin_lower': edges[:-1],
        'bin_upper': edges[1:],
        'bin_center': (edges[:-1] + edges[1:]) / 2,
        'count': counts,
        'probability': counts / counts.sum(),
    })

  def to_frame(self) -> pd.DataFrame:
    """One row per run: drawn parameters and total valuation."""
    df = pd.DataFrame(self.draws, columns=list(self.keys))
    df['total_valuation'] = self.values
    return df


def _bounds(params: ParameterSet,
            distribution: ParameterDistribution) -> Tuple[float, float]:
  spec = params.schema.spec(distribution.key)
  lower = max(spec.lower,
              -inf if distribution.lower is None else distribution.lower)
  upper = min(spec.upper,
              inf if distribution.upper is None else distribution.upper)
  if lower > upper:
    raise InvalidParameter(distribution.key,
                           (distribution.lower, distribution.upper),
                           reason='distribution lies outside declared range')
  return lower, upper


def simulate(
    params: ParameterSet,
    distributions: Sequence[ParameterDistribution],
    runs: int = 5000,
    seed: int = 0,
    coefficients: Optional[CoefficientSet] = None,
    config: Optional[ScenarioConfig] = None,
) -> MonteCarloResult:
  """
  Run a seeded Monte Carlo simulation around a base scenario.

  Args:
    params: Base scenario (must be valuable on its own)
    distributions: One per uncertain parameter, drawn in this order
    runs: Number of draws
    seed: Seed for numpy's default generator
    coefficients: Model coefficients (default: uncalibrated)
    config: Engine configuration (default: ScenarioConfig.default())

  Returns:
    MonteCarloResult

  Raises:
    ValueError: runs < 1, a parameter listed twice, or every draw rejected
    UnknownParameter: A distribution on an undeclared parameter
    MissingParameter, InvalidParameter: The base scenario is not valuable
  """
  if isinstance(runs, bool) or not isinstance(runs, int) or runs < 1:
    raise ValueError(f'runs must be a positive integer: {runs!r}')
  keys = tuple(d.key for d in distributions)
  if len(set(keys)) != len(keys):
    raise ValueError(f'Each parameter may have one distribution: {keys}')

  base = compute(params, coefficients, config)
  coefficients, config = base.coefficients, base.config

  rng = np.random.default_rng(seed)
  columns = []
  for distribution in distributions:
    lower, upper = _bounds(params, distribution)
    drawn = distribution.sample(rng, params[distribution.key], runs)
    columns.append(np.clip(drawn, lower, upper))
  draws = (np.column_stack(columns) if columns else np.empty((runs, 0)))

  logger.info('Monte Carlo: %d runs over %d parameters (seed %d)', runs,
              len(keys), seed)

  values = np.empty(runs)
  n_invalid = 0
  for i in range(runs):
    scenario = params
    for key, value in zip(keys, draws[i]):
      scenario = scenario.with_value(key, float(value))
    try:
      values[i] = compute(scenario, coefficients, config).total_valuation
    except InvalidParameter as e:
      logger.debug('run %d rejected: %s', i, e)
      values[i] = np.nan
      n_invalid += 1

  if n_invalid == runs:
    raise ValueError(f'All {runs} draws were rejected by the engine')
  if n_invalid:
    logger.warning('%d of %d draws rejected', n_invalid, runs)

  return MonteCarloResult(
      keys=keys,
      draws=draws,
      values=values,
      base_total=base.total_valuation,
      n_invalid=n_invalid,
      seed=seed,
  )


def main() -> None:
  """CLI entrypoint for Monte Carlo valuation."""
  parser = argparse.ArgumentParser(
      description='Monte Carlo distribution of scenario valuation')
  parser.add_argument('--params',
                      type=Path,
                      required=True,
                      help='Base parameters JSON (nested or flat)')
  parser.add_argument('--distributions',
                      type=Path,
                      required=True,
                      help='Distributions JSON ({key: {distribution, ...}})')
  parser.add_argument('--runs', type=int, default=5000, help='Number of draws')
  parser.add_argument('--seed', type=int, default=0, help='Random seed')
  parser.add_argument('--coefficients',
                      type=Path,
                      help='Coefficients JSON (default: uncalibrated)')
  parser.add_argument('--scenario',
                      type=str,
                      default='default',
                      help='Scenario preset name or path to a config JSON')
  parser.add_argument('--output',
                      type=Path,
                      help='Per-run CSV output path (optional)')
  parser.add_argument('--histogram',
                      type=Path,
                      help='Histogram CSV output path (optional)')
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

  result = simulate(
      params=load_parameters(args.params),
      distributions=distributions_from_json(_read_json(args.distributions)),
      runs=args.runs,
      seed=args.seed,
      coefficients=load_coefficients(args.coefficients),
      config=load_scenario_config(args.scenario),
  )
  summary = result.summary()

  separator = '=' * 70
  logger.info(separator)
  logger.info('Monte Carlo Valuation - %s', args.params)
  logger.info(separator)
  logger.info('Base scenario: %s', f'{result.base_total:,.2f}')
  logger.info('Valid runs:    %d / %d', summary['valid_runs'], summary['runs'])
  for name in ('bear', 'base', 'optimistic', 'p5', 'median', 'p95', 'std'):
    logger.info('  %-10s %s', name, f'{summary[name]:,.2f}')
  logger.info(separator)

  if args.output:
    result.to_frame().to_csv(args.output, index=False)
    logger.info('Saved runs to: %s', args.output)
  if args.histogram:
    result.histogram().to_csv(args.histogram, index=False)
    logger.info('Saved histogram to: %s', args.histogram)


if __name__ == '__main__':
  main()
