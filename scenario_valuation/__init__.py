'''
Scenario valuation framework with policy-based architecture.

This package values a scenario from a domain-grouped ParameterSet, explains
the difference between two scenarios parameter by parameter, and calibrates
the model's internal coefficients against a reference table.

Usage:
  from scenario_valuation.domain.coefficients import CoefficientSet
  from scenario_valuation.domain.parameters import ParameterSet
  from scenario_valuation.engine.valuation import compute
  from scenario_valuation.analysis.attribution import attribute
  from scenario_valuation.calibration.search import calibrate

  params = ParameterSet.from_dict({...})
  result = compute(params, CoefficientSet.default())
'''
