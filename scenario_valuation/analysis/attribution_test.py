import math
import subprocess
import sys

import pytest

from scenario_valuation.analysis.attribution import attribute
from scenario_valuation.analysis.attribution import compare_scenarios
from scenario_valuation.conftest import make_params
from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.errors import ParameterSetMismatch
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.engine.valuation import compute
from scenario_valuation.scenarios.config import ScenarioConfig


class TestAttribute:
  """Tests for one-at-a-time attribution."""

  def test_dilution_only(self):
    """Dilution 1.0 -> 0.85 scales value linearly.

    The whole delta lands on financial.dilution_factor with no residual.
    """
    baseline = make_params(financial__terminal_growth=0.03)
    variant = baseline.with_value('financial.dilution_factor', 0.85)

    report = compare_scenarios(baseline, variant)

    assert len(report.entries) == 1
    entry = report.entries[0]
    assert entry.key == 'financial.dilution_factor'
    assert entry.baseline_value == 1.0
    assert entry.variant_value == 0.85
    assert entry.contribution == pytest.approx(-0.15 * report.baseline_total)
    assert report.residual == pytest.approx(0.0, abs=1e-6)
    assert report.is_additive()

  def test_identical_scenarios(self, flat_params):
    report = compare_scenarios(flat_params, flat_params)

    assert report.entries == ()
    assert report.residual == 0.0
    assert report.total_delta == 0.0

  def test_additivity_with_interaction(self, nested_params_dict):
    """Several interacting changes still sum exactly to the delta."""
    baseline = ParameterSet.from_dict(nested_params_dict)
    variant = (baseline.with_value('market.penetration_rate', 0.3)
               .with_value('pricing.price_per_unit', 60.0)
               .with_value('financial.discount_rate', 0.12))

    report = compare_scenarios(baseline, variant)

    assert [e.key for e in report.entries] == [
        'market.penetration_rate',
        'pricing.price_per_unit',
        'financial.discount_rate',
    ]
    assert report.is_additive()
    assert report.explained + report.residual == pytest.approx(
        report.total_delta)
    assert report.residual != 0.0

  def test_entries_in_schema_order(self, flat_params):
    variant = (flat_params.with_value('financial.dilution_factor', 0.9)
               .with_value('market.addressable_volume', 120.0))

    report = compare_scenarios(flat_params, variant)

    assert [e.key for e in report.entries] == [
        'market.addressable_volume', 'financial.dilution_factor'
    ]

  def test_uses_baseline_coefficients_and_config(self, flat_params):
    coefficients = CoefficientSet.from_dict({'revenue_scale': 2.0})
    config = ScenarioConfig(n_periods=3)
    variant = flat_params.with_value('pricing.price_per_unit', 12.0)

    report = compare_scenarios(flat_params, variant, coefficients, config)
    direct = compute(variant, coefficients, config)

    assert report.variant_total == pytest.approx(direct.total_valuation)

  def test_mismatched_keys(self, flat_params):
    partial = ParameterSet.from_flat({
        k: v for k, v in flat_params.to_flat().items()
        if k != 'operations.fixed_cost'
    })
    baseline_result = compute(flat_params)

    with pytest.raises(ParameterSetMismatch) as exc_info:
      attribute(flat_params, baseline_result, partial, baseline_result)

    assert exc_info.value.missing == ('operations.fixed_cost',)
    assert exc_info.value.unexpected == ()

  def test_result_from_other_params(self, flat_params):
    variant = flat_params.with_value('financial.dilution_factor', 0.5)
    baseline_result = compute(flat_params)

    with pytest.raises(ParameterSetMismatch):
      attribute(flat_params, baseline_result, variant, baseline_result)

  def test_different_coefficients(self, flat_params):
    variant = flat_params.with_value('financial.dilution_factor', 0.5)
    baseline_result = compute(flat_params)
    variant_result = compute(variant,
                             CoefficientSet.from_dict({'cost_scale': 2.0}))

    with pytest.raises(ParameterSetMismatch, match='coefficients'):
      attribute(flat_params, baseline_result, variant, variant_result)

  def test_rate_crossing_lands_in_residual(self):
    """Discount rate 0.08 -> 0.035 alone falls below growth 0.04.

    That entry cannot be isolated, so it contributes 0 and its effect
    shows up in the residual; the report stays additive.
    """
    baseline = make_params(financial__discount_rate=0.08,
                           financial__terminal_growth=0.04)
    variant = make_params(financial__discount_rate=0.035,
                          financial__terminal_growth=0.02)

    report = compare_scenarios(baseline, variant)
    entries = {e.key: e for e in report.entries}

    rate = entries['financial.discount_rate']
    assert rate.isolated is False
    assert rate.contribution == 0.0
    assert entries['financial.terminal_growth'].isolated is True
    assert report.variant_total > report.baseline_total
    assert report.residual != 0.0
    assert report.is_additive()


class TestAttributionReport:
  """Tests for AttributionReport rendering."""

  def test_to_frame(self, flat_params):
    variant = (flat_params.with_value('market.addressable_volume', 110.0)
               .with_value('pricing.price_per_unit', 11.0))
    report = compare_scenarios(flat_params, variant)
    df = report.to_frame()

    assert list(df['key']) == [
        'market.addressable_volume', 'pricing.price_per_unit', 'residual'
    ]
    assert df['contribution'].sum() == pytest.approx(report.total_delta)
    assert df['share'].sum() == pytest.approx(1.0)
    assert list(df['isolated']) == [True, True, False]

  def test_to_frame_zero_delta(self, flat_params):
    df = compare_scenarios(flat_params, flat_params).to_frame()

    assert list(df['key']) == ['residual']
    assert math.isnan(df['share'].iloc[0])


class TestImport:
  """Tests for the attribution module's import footprint."""

  def test_import_does_not_load_matplotlib(self):
    """Charting is only pulled in when the CLI is asked for a chart."""
    code = ('import sys\n'
            'import scenario_valuation.analysis.attribution\n'
            'print("matplotlib" in sys.modules)')
    completed = subprocess.run([sys.executable, '-c', code],
                               capture_output=True,
                               text=True,
                               check=True)

    assert completed.stdout.strip() == 'False'
