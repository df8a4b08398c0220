'''
Scenario analysis utilities.

Note: To avoid RuntimeWarning when using -m flag, import directly:
  from scenario_valuation.analysis.attribution import attribute
  from scenario_valuation.analysis.sensitivity import SensitivityTableBuilder
  from scenario_valuation.analysis.segments import value_segments
  from scenario_valuation.analysis.monte_carlo import simulate
'''
