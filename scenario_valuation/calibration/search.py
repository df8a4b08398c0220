"""
Coefficient calibration against a reference table.

Tunes the internal CoefficientSet until computed valuations match a trusted
reference (one CalibrationCase per row) within tolerance. The search is a
deterministic compass search: coefficients are visited in declaration order,
each is nudged up then down by its current step, a move is kept only when it
strictly lowers the aggregate error, and all steps are halved after a sweep
that moves nothing.

Aggregate error is the root-mean-square of the relative errors of every
expected output of every case (absolute error where the expected value is 0).

CLI Usage:
  python -m scenario_valuation.calibration.search \\
      --cases reference/cases.csv \\
      --tolerance 0.001 \\
      --output calibrated.json
"""

import argparse
from concurrent.futures import Executor
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import json
import logging
from pathlib import Path
import sys
import time
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from scenario_valuation.calibration.cases import CalibrationCase
from scenario_valuation.calibration.cases import load_cases_csv
from scenario_valuation.calibration.cases import load_cases_json
from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.errors import CalibrationDivergence
from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.engine.valuation import compute
from scenario_valuation.engine.valuation import TOTAL_VALUATION_KEY
from scenario_valuation.run import load_coefficients
from scenario_valuation.run import load_scenario_config
from scenario_valuation.scenarios.config import ScenarioConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationStep:
  """One accepted move of the search (iteration 0 is the starting point)."""
  iteration: int
  error: float
  coefficients: CoefficientSet


@dataclass(frozen=True)
class CaseErrors:
  name: str
  errors: Tuple[float, ...]

  @property
  def max_abs_error(self) -> float:
    return max(abs(e) for e in self.errors)


@dataclass(frozen=True)
class Evaluation:
  """
  Errors of one coefficient set over all cases.

  Attributes:
    coefficients: Evaluated coefficients
    error: Aggregate RMS error
    cases: Per-case errors, in case order
  """
  coefficients: CoefficientSet
  error: float
  cases: Tuple[CaseErrors, ...]


@dataclass(frozen=True)
class CalibrationOutcome:
  """
  Successful calibration.

  Attributes:
    coefficients: Calibrated coefficients
    error: Aggregate error at convergence
    iterations: Number of sweeps performed
    history: Accepted steps, in order
  """
  coefficients: CoefficientSet
  error: float
  iterations: int
  history: Tuple[CalibrationStep, ...]


class CalibrationEngine:
  """
  Compass search over the CoefficientSet.

  Every case is valued with the same ScenarioConfig. Missing or invalid
  case parameters raise on the first evaluation.
  """

  def __init__(
      self,
      cases: Sequence[CalibrationCase],
      config: Optional[ScenarioConfig] = None,
      max_workers: Optional[int] = None,
  ):
    if not cases:
      raise ValueError('At least one calibration case is required')
    self.cases = tuple(cases)
    self.config = config or ScenarioConfig.default()
    self.max_workers = max_workers

  def _case_errors(self, case: CalibrationCase,
                   coefficients: CoefficientSet) -> CaseErrors:
    result = compute(case.params, coefficients, self.config)
    return CaseErrors(case.name, tuple(case.expected.relative_errors(result)))

  def evaluate(
      self,
      coefficients: CoefficientSet,
      executor: Optional[Executor] = None,
  ) -> Evaluation:
    """
    Evaluate coefficients over every case.

    With an executor the cases run concurrently; results are still gathered
    in case order and the first failing case re-raises its error.
    """
    if executor is None:
      per_case = [self._case_errors(c, coefficients) for c in self.cases]
    else:
      futures = [
          executor.submit(self._case_errors, c, coefficients)
          for c in self.cases
      ]
      per_case = [future.result() for future in futures]

    all_errors = np.array([e for case in per_case for e in case.errors])
    error = float(np.sqrt(np.mean(np.square(all_errors))))
    return Evaluation(coefficients, error, tuple(per_case))

  def _converged(self, evaluation: Evaluation, tolerance: float) -> bool:
    if evaluation.error > tolerance:
      return False
    for case, errors in zip(self.cases, evaluation.cases):
      if (case.rel_tolerance is not None and
          errors.max_abs_error > case.rel_tolerance):
        return False
    return True

  def run(
      self,
      initial: Optional[CoefficientSet] = None,
      tolerance: float = 1e-3,
      max_iterations: int = 200,
      step_fraction: float = 0.05,
      min_step: float = 1e-9,
      deadline: Optional[float] = None,
  ) -> CalibrationOutcome:
    """
    Search for coefficients meeting tolerance.

    Args:
        initial: Starting coefficients (default: uncalibrated)
        tolerance: Bound on the aggregate RMS error
        max_iterations: Maximum number of sweeps
        step_fraction: Initial step as a fraction of each coefficient's span
        min_step: Search stalls once every step is below this
        deadline: Optional wall-clock budget in seconds

    Returns:
        CalibrationOutcome

    Raises:
        CalibrationDivergence: If tolerance is not reached
        MissingParameter, InvalidParameter: If any case is malformed

    A candidate move whose valuation overflows counts as rejected; an
    overflow at the starting point still raises.
    """
    if tolerance <= 0:
      raise ValueError(f'tolerance must be positive, got {tolerance}')
    if max_iterations < 0:
      raise ValueError(f'max_iterations must be >= 0, got {max_iterations}')

    initial = initial or CoefficientSet.default()
    names = CoefficientSet.names()
    steps: Dict[str, float] = {
        name: step_fraction * CoefficientSet.spec(name).span for name in names
    }
    started = time.monotonic()

    executor = None
    if self.max_workers is not None and self.max_workers > 1:
      executor = ThreadPoolExecutor(max_workers=self.max_workers)

    try:
      best = self.evaluate(initial, executor)
      history: List[CalibrationStep] = [CalibrationStep(0, best.error, initial)]
      logger.info('Calibrating %d coefficients on %d cases, start error %.6g',
                  len(names), len(self.cases), best.error)

      iteration = 0
      while not self._converged(best, tolerance):
        reason = None
        if iteration >= max_iterations:
          reason = 'max_iterations'
        elif all(step < min_step for step in steps.values()):
          reason = 'stalled'
        elif deadline is not None and time.monotonic() - started >= deadline:
          reason = 'deadline'
        if reason is not None:
          logger.info('Calibration diverged (%s) after %d iterations, '
                      'best error %.6g', reason, iteration, best.error)
          raise CalibrationDivergence(best.coefficients, best.error, iteration,
                                      reason, history)

        iteration += 1
        moved = False
        for name in names:
          spec = CoefficientSet.spec(name)
          current = best.coefficients.get(name)
          for direction in (1.0, -1.0):
            value = spec.clip(current + direction * steps[name])
            if value == current:
              continue
            try:
              candidate = self.evaluate(
                  best.coefficients.with_value(name, value), executor)
            except InvalidParameter as e:
              if e.key != TOTAL_VALUATION_KEY:
                raise
              logger.debug('iter %d: %s=%.6g overflows, rejected', iteration,
                           name, value)
              continue
            if candidate.error < best.error:
              best = candidate
              moved = True
              history.append(
                  CalibrationStep(iteration, best.error, best.coefficients))
              logger.debug('iter %d: %s=%.6g error=%.6g', iteration, name,
                           value, best.error)
              break

        if not moved:
          steps = {name: step / 2 for name, step in steps.items()}
    finally:
      if executor is not None:
        executor.shutdown()

    logger.info('Calibration converged after %d iterations, error %.6g',
                iteration, best.error)
    return CalibrationOutcome(best.coefficients, best.error, iteration,
                              tuple(history))


def calibrate(
    cases: Sequence[CalibrationCase],
    initial_coefficients: Optional[CoefficientSet] = None,
    tolerance: float = 1e-3,
    max_iterations: int = 200,
    config: Optional[ScenarioConfig] = None,
    max_workers: Optional[int] = None,
    **search_options,
) -> CoefficientSet:
  """
  Calibrate coefficients to a reference table.

  Args:
      cases: Reference cases
      initial_coefficients: Starting point (default: uncalibrated)
      tolerance: Bound on the aggregate RMS relative error
      max_iterations: Maximum number of search sweeps
      config: Engine configuration used for every case
      max_workers: Evaluate cases on a thread pool of this size
      **search_options: step_fraction, min_step, deadline

  Returns:
      Calibrated CoefficientSet

  Raises:
      CalibrationDivergence: With the best coefficients found
  """
  engine = CalibrationEngine(cases, config=config, max_workers=max_workers)
  outcome = engine.run(initial_coefficients,
                       tolerance=tolerance,
                       max_iterations=max_iterations,
                       **search_options)
  return outcome.coefficients


def load_cases(path: Path) -> List[CalibrationCase]:
  """Load cases from a .csv table or a JSON file."""
  if path.suffix.lower() == '.csv':
    return load_cases_csv(path)
  return load_cases_json(path)


def main() -> None:
  """CLI entrypoint for calibration."""
  parser = argparse.ArgumentParser(
      description='Calibrate model coefficients to a reference table',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog=__doc__)
  parser.add_argument('--cases',
                      type=Path,
                      required=True,
                      help='Reference cases (.csv table or JSON records)')
  parser.add_argument('--initial',
                      type=Path,
                      help='Starting coefficients JSON (default: uncalibrated)')
  parser.add_argument('--scenario',
                      type=str,
                      default='default',
                      help='Scenario preset name or config JSON path')
  parser.add_argument('--tolerance', type=float, default=1e-3)
  parser.add_argument('--max-iterations', type=int, default=200)
  parser.add_argument('--deadline',
                      type=float,
                      help='Wall-clock budget in seconds')
  parser.add_argument('--workers',
                      type=int,
                      help='Evaluate cases on this many threads')
  parser.add_argument('--output',
                      type=Path,
                      help='Calibrated coefficients JSON output path')
  parser.add_argument('--verbose',
                      '-v',
                      action='store_true',
                      help='Log every accepted step')
  args = parser.parse_args()

  logging.basicConfig(
      level=logging.DEBUG if args.verbose else logging.INFO,
      format='%(asctime)s [%(levelname)s] %(message)s',
      datefmt='%Y-%m-%d %H:%M:%S',
  )

  cases = load_cases(args.cases)
  engine = CalibrationEngine(cases,
                             config=load_scenario_config(args.scenario),
                             max_workers=args.workers)

  try:
    outcome = engine.run(load_coefficients(args.initial),
                         tolerance=args.tolerance,
                         max_iterations=args.max_iterations,
                         deadline=args.deadline)
  except CalibrationDivergence as e:
    logger.error('%s', e)
    for name, value in e.best_coefficients.to_dict().items():
      logger.error('  %s: %g', name, value)
    sys.exit(1)

  final = engine.evaluate(outcome.coefficients)
  logger.info('Calibrated coefficients:')
  for name, value in outcome.coefficients.to_dict().items():
    logger.info('  %s: %g', name, value)
  logger.info('Per-case max |relative error|:')
  for case in final.cases:
    logger.info('  %s: %.6g', case.name, case.max_abs_error)

  if args.output:
    args.output.parent.mkdir(parents=True, exist_ok=True)
    with args.output.open('w', encoding='utf-8') as f:
      json.dump(outcome.coefficients.to_dict(), f, indent=2)
    logger.info('Saved to: %s', args.output)


if __name__ == '__main__':
  main()
