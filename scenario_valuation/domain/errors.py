'''
Typed errors raised by the valuation, attribution and calibration engines.

Engine errors are never recovered internally: they propagate unchanged to the
caller. A missing or out-of-range input is always an error, never a zero.
'''

from typing import Any, Optional, Sequence


class ValuationError(Exception):
  '''Base class for all scenario valuation errors.'''


class MissingParameter(ValuationError, LookupError):
  '''
  A required domain or parameter is absent.

  Attributes:
    key: The missing key, either a domain ('financial') or a dotted
      parameter key ('financial.discount_rate')
  '''

  def __init__(self, key: str):
    self.key = key
    super().__init__(f'Missing required parameter: {key}')


class InvalidParameter(ValuationError, ValueError):
  '''
  A parameter value violates its declared range or a cross-parameter
  constraint.

  Attributes:
    key: Dotted parameter key
    value: The rejected value
    bound: The violated bound (None when there is no numeric bound)
  '''

  def __init__(
      self,
      key: str,
      value: Any,
      bound: Optional[float] = None,
      reason: str = '',
  ):
    self.key = key
    self.value = value
    self.bound = bound
    self.reason = reason
    message = f'Invalid parameter {key}={value!r}'
    if reason:
      message += f': {reason}'
    if bound is not None:
      message += f' (bound: {bound!r})'
    super().__init__(message)


class UnknownParameter(InvalidParameter):
  '''A parameter that is not declared in the schema.'''

  def __init__(self, key: str, value: Any):
    super().__init__(key, value, reason='not declared in schema')


class ParameterSetMismatch(ValuationError):
  '''
  Baseline and variant scenarios cannot be compared.

  Attributes:
    missing: Keys present in the baseline but not in the variant
    unexpected: Keys present in the variant but not in the baseline
  '''

  def __init__(
      self,
      message: str,
      missing: Sequence[str] = (),
      unexpected: Sequence[str] = (),
  ):
    self.missing = tuple(missing)
    self.unexpected = tuple(unexpected)
    details = []
    if self.missing:
      details.append(f'missing in variant: {list(self.missing)}')
    if self.unexpected:
      details.append(f'unexpected in variant: {list(self.unexpected)}')
    if details:
      message = f'{message} ({"; ".join(details)})'
    super().__init__(message)


class CalibrationDivergence(ValuationError):
  '''
  Calibration did not reach tolerance.

  This is a reportable outcome, not a malformed-input failure: the best
  coefficients found so far travel with the error.

  Attributes:
    best_coefficients: Best CoefficientSet found
    best_error: Aggregate error of best_coefficients
    iterations: Number of search sweeps performed
    reason: 'max_iterations', 'stalled' or 'deadline'
    history: Accepted search steps, in order
  '''

  def __init__(
      self,
      best_coefficients: Any,
      best_error: float,
      iterations: int,
      reason: str,
      history: Sequence[Any] = (),
  ):
    self.best_coefficients = best_coefficients
    self.best_error = best_error
    self.iterations = iterations
    self.reason = reason
    self.history = tuple(history)
    super().__init__(
        f'Calibration did not converge ({reason}) after {iterations} '
        f'iterations; best error {best_error:.6g}')
