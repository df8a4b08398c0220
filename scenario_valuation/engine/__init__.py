'''DCF calculation engine with pure math functions.

Import the scenario entry point directly:
  from scenario_valuation.engine.valuation import compute
'''

from scenario_valuation.engine.dcf import compute_enterprise_value
from scenario_valuation.engine.dcf import compute_pv_explicit
from scenario_valuation.engine.dcf import compute_terminal_value
from scenario_valuation.engine.dcf import discount_factor

__all__ = [
    'compute_enterprise_value',
    'compute_pv_explicit',
    'compute_terminal_value',
    'discount_factor',
]
