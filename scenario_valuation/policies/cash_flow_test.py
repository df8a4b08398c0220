import pytest

from scenario_valuation.conftest import make_params
from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.errors import MissingParameter
from scenario_valuation.domain.parameters import ParameterSet
from scenario_valuation.policies.cash_flow import UnitEconomicsCashFlow


class TestUnitEconomicsCashFlow:
  """Tests for UnitEconomicsCashFlow policy."""

  def test_flat_case(self, flat_params):
    """100 units at 10 with no costs: cash flow 1000 every period."""
    result = UnitEconomicsCashFlow().compute(flat_params,
                                             CoefficientSet.default(),
                                             [0.0, 0.0, 0.0])

    assert [row['period'] for row in result.value] == [1, 2, 3]
    assert [row['cash_flow'] for row in result.value] == [1000.0] * 3
    assert result.diag['cash_flow_method'] == 'unit_economics'
    assert result.diag['captured_share'] == 1.0

  def test_costs_and_tax(self, costed_params):
    """Revenue 1000, cost 400, tax 25% of 600 = 150, cash flow 450."""
    result = UnitEconomicsCashFlow().compute(costed_params,
                                             CoefficientSet.default(), [0.0])
    row = result.value[0]

    assert row['revenue'] == pytest.approx(1000.0)
    assert row['cost'] == pytest.approx(400.0)
    assert row['tax'] == pytest.approx(150.0)
    assert row['cash_flow'] == pytest.approx(450.0)

  def test_no_tax_on_losses(self):
    """Fixed cost above revenue: negative cash flow, zero tax."""
    params = make_params(operations__fixed_cost=1500.0,
                         operations__tax_rate=0.30)
    row = UnitEconomicsCashFlow().compute(params, CoefficientSet.default(),
                                          [0.0]).value[0]

    assert row['tax'] == 0.0
    assert row['cash_flow'] == pytest.approx(-500.0)

  def test_launch_period(self):
    """No units before launch; fixed costs still accrue."""
    params = make_params(market__launch_period=2.0,
                         operations__fixed_cost=100.0)
    rows = UnitEconomicsCashFlow().compute(params, CoefficientSet.default(),
                                           [0.0, 0.0]).value

    assert rows[0]['units'] == 0.0
    assert rows[0]['cash_flow'] == pytest.approx(-100.0)
    assert rows[1]['units'] == pytest.approx(100.0)
    assert rows[1]['cash_flow'] == pytest.approx(900.0)

  def test_growth_and_price_decline(self):
    """Volume compounds and price declines each period.

    Period 1: volume 110, price 9.0, revenue 990
    Period 2: volume 121, price 8.1, revenue 980.1
    """
    params = make_params(pricing__price_decline=0.10)
    rows = UnitEconomicsCashFlow().compute(params, CoefficientSet.default(),
                                           [0.10, 0.10]).value

    assert rows[0]['units'] == pytest.approx(110.0)
    assert rows[0]['price'] == pytest.approx(9.0)
    assert rows[0]['revenue'] == pytest.approx(990.0)
    assert rows[1]['units'] == pytest.approx(121.0)
    assert rows[1]['revenue'] == pytest.approx(980.1)

  def test_coefficients(self):
    """Coefficients scale revenue and act as exponents.

    captured share = 0.5 ** 2 = 0.25
    volume_1 = 100 * 1.1 ** 2 = 121, units = 30.25
    revenue = 1.5 * 30.25 * 10 = 453.75
    """
    params = make_params(market__penetration_rate=0.5)
    coefficients = CoefficientSet.from_dict({
        'revenue_scale': 1.5,
        'penetration_elasticity': 2.0,
        'volume_elasticity': 2.0,
    })
    result = UnitEconomicsCashFlow().compute(params, coefficients, [0.10])
    row = result.value[0]

    assert result.diag['captured_share'] == pytest.approx(0.25)
    assert row['units'] == pytest.approx(30.25)
    assert row['revenue'] == pytest.approx(453.75)

  def test_cost_scale(self, costed_params):
    """cost_scale multiplies variable cost only."""
    params = costed_params.with_value('operations.fixed_cost', 50.0)
    coefficients = CoefficientSet.from_dict({'cost_scale': 2.0})
    row = UnitEconomicsCashFlow().compute(params, coefficients,
                                          [0.0]).value[0]

    assert row['cost'] == pytest.approx(850.0)

  def test_dilution(self, flat_params):
    """Current holders keep 85% of the cash flow."""
    params = flat_params.with_value('financial.dilution_factor', 0.85)
    row = UnitEconomicsCashFlow().compute(params, CoefficientSet.default(),
                                          [0.0]).value[0]

    assert row['cash_flow'] == pytest.approx(850.0)

  def test_missing_parameter(self):
    """Absent inputs raise rather than default to zero."""
    params = ParameterSet.from_dict({'market': {'addressable_volume': 100.0}})

    with pytest.raises(MissingParameter) as exc_info:
      UnitEconomicsCashFlow().compute(params, CoefficientSet.default(), [0.0])

    assert exc_info.value.key == 'market.penetration_rate'
