"""Domain types, parameters, coefficients and errors."""

from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.coefficients import CoefficientSpec
from scenario_valuation.domain.errors import CalibrationDivergence
from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.domain.errors import MissingParameter
from scenario_valuation.domain.errors import ParameterSetMismatch
from scenario_valuation.domain.errors import UnknownParameter
from scenario_valuation.domain.errors import ValuationError
from scenario_valuation.domain.parameters import DEFAULT_SCHEMA
from scenario_valuation.domain.parameters import ParameterSchema
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.domain.parameters import ParameterSpec
from scenario_valuation.domain.types import PeriodCashFlow
from scenario_valuation.domain.types import PolicyOutput
from scenario_valuation.domain.types import ValuationResult

__all__ = [
    'CalibrationDivergence',
    'CoefficientSet',
    'CoefficientSpec',
    'DEFAULT_SCHEMA',
    'InvalidParameter',
    'MissingParameter',
    'ParameterSchema',
    'ParameterSet',
    'ParameterSetMismatch',
    'ParameterSpec',
    'PeriodCashFlow',
    'PolicyOutput',
    'UnknownParameter',
    'ValuationError',
    'ValuationResult',
]
