"""Scenario configuration and policy registry."""

from scenario_valuation.scenarios.config import SCENARIO_PRESETS
from scenario_valuation.scenarios.config import ScenarioConfig
from scenario_valuation.scenarios.registry import create_policies
from scenario_valuation.scenarios.registry import list_policies
from scenario_valuation.scenarios.registry import POLICY_REGISTRY

__all__ = [
  'ScenarioConfig',
  'SCENARIO_PRESETS',
  'POLICY_REGISTRY',
  'create_policies',
  'list_policies',
]
