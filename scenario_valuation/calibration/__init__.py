'''
Coefficient calibration against reference cases.

Note: To avoid RuntimeWarning when using -m flag, import directly:
  from scenario_valuation.calibration.search import calibrate
  from scenario_valuation.calibration.cases import load_cases_csv
'''
