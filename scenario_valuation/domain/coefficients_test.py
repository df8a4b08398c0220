import pytest

from scenario_valuation.domain.coefficients import COEFFICIENT_SPECS
from scenario_valuation.domain.coefficients import CoefficientSet
from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.domain.errors import UnknownParameter


class TestCoefficientSet:
  """Tests for CoefficientSet."""

  def test_default(self):
    coefficients = CoefficientSet.default()

    assert coefficients.names() == ('revenue_scale', 'cost_scale',
                                    'penetration_elasticity',
                                    'volume_elasticity')
    assert all(v == 1.0 for v in coefficients.to_dict().values())

  def test_partial_dict_fills_defaults(self):
    coefficients = CoefficientSet.from_dict({'cost_scale': 1.2})

    assert coefficients['cost_scale'] == 1.2
    assert coefficients['revenue_scale'] == 1.0
    assert len(coefficients.items) == len(COEFFICIENT_SPECS)

  def test_declaration_order(self):
    coefficients = CoefficientSet.from_dict({
        'volume_elasticity': 2.0,
        'revenue_scale': 3.0,
    })

    assert list(coefficients.to_dict()) == list(CoefficientSet.names())

  def test_equality_ignores_input_order(self):
    a = CoefficientSet.from_dict({'revenue_scale': 2.0, 'cost_scale': 3.0})
    b = CoefficientSet.from_dict({'cost_scale': 3.0, 'revenue_scale': 2.0})

    assert a == b

  def test_unknown_coefficient(self):
    with pytest.raises(UnknownParameter) as exc_info:
      CoefficientSet.from_dict({'magic': 1.0})

    assert exc_info.value.key == 'coefficients.magic'

  def test_out_of_bounds(self):
    with pytest.raises(InvalidParameter) as exc_info:
      CoefficientSet.from_dict({'revenue_scale': 50.0})

    assert exc_info.value.bound == 10.0

  def test_with_value(self):
    base = CoefficientSet.default()
    updated = base.with_value('revenue_scale', 1.25)

    assert updated['revenue_scale'] == 1.25
    assert base['revenue_scale'] == 1.0

  def test_spec_clip(self):
    spec = CoefficientSet.spec('penetration_elasticity')

    assert spec.clip(10.0) == 4.0
    assert spec.clip(0.0) == 0.1
    assert spec.span == pytest.approx(3.9)

  def test_unknown_spec(self):
    with pytest.raises(UnknownParameter) as exc_info:
      CoefficientSet.spec('magic')

    assert exc_info.value.key == 'coefficients.magic'
