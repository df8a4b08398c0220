import pytest

from scenario_valuation.domain.errors import InvalidParameter
from scenario_valuation.engine.dcf import compute_enterprise_value
from scenario_valuation.engine.dcf import compute_pv_explicit
from scenario_valuation.engine.dcf import compute_terminal_value
from scenario_valuation.engine.dcf import discount_factor


class TestDiscountFactor:
  """Tests for discount_factor function."""

  def test_end_of_first_period(self):
    assert discount_factor(0.10, 1) == pytest.approx(1 / 1.1, rel=1e-12)

  def test_period_zero_is_one(self):
    assert discount_factor(0.10, 0) == 1.0

  def test_fractional_period(self):
    """Half a period at 21% is 1/1.1."""
    assert discount_factor(0.21, 0.5) == pytest.approx(1 / 1.1, rel=1e-12)


class TestComputePVExplicit:
  """Tests for compute_pv_explicit function."""

  def test_flat_cash_flows(self):
    """Three periods of 1000 at 10%.

    Manual calculation:
    Period 1: 1000 / 1.1   = 909.09
    Period 2: 1000 / 1.21  = 826.45
    Period 3: 1000 / 1.331 = 751.31
    Total PV: 2486.85
    """
    factors = [discount_factor(0.10, t) for t in (1, 2, 3)]
    pv = compute_pv_explicit([1000.0, 1000.0, 1000.0], factors)

    assert pv == pytest.approx(2486.85, abs=0.01)

  def test_negative_cash_flows(self):
    """Loss-making periods reduce PV."""
    factors = [discount_factor(0.10, t) for t in (1, 2)]
    pv = compute_pv_explicit([-100.0, 100.0], factors)

    assert pv == pytest.approx(-100 / 1.1 + 100 / 1.21, rel=1e-9)

  def test_length_mismatch(self):
    """Cash flows and factors must line up."""
    with pytest.raises(ValueError, match='2 cash flows but 3'):
      compute_pv_explicit([1.0, 2.0], [1.0, 1.0, 1.0])


class TestComputeTerminalValue:
  """Tests for compute_terminal_value function."""

  def test_normal_case(self):
    """Standard Gordon growth calculation.

    Manual calculation:
    TV = (10.0 * 1.03) / (0.10 - 0.03) = 10.3 / 0.07 = 147.1429
    """
    tv = compute_terminal_value(10.0, g_terminal=0.03, discount_rate=0.10)

    assert tv == pytest.approx(147.1429, abs=0.0001)

  def test_zero_terminal_growth(self):
    """TV = 10.0 / 0.10 = 100.0"""
    tv = compute_terminal_value(10.0, g_terminal=0.0, discount_rate=0.10)

    assert tv == pytest.approx(100.0, rel=1e-12)

  def test_boundary_condition(self):
    """Terminal growth close to but less than discount rate."""
    tv = compute_terminal_value(10.0, g_terminal=0.099, discount_rate=0.10)

    assert tv > 10000

  def test_invalid_g_equals_r(self):
    """Terminal growth equals discount rate - perpetuity diverges."""
    with pytest.raises(InvalidParameter) as exc_info:
      compute_terminal_value(10.0, g_terminal=0.10, discount_rate=0.10)

    assert exc_info.value.key == 'financial.terminal_growth'
    assert exc_info.value.bound == 0.10

  def test_invalid_g_greater_than_r(self):
    """Terminal growth exceeds discount rate."""
    with pytest.raises(InvalidParameter):
      compute_terminal_value(10.0, g_terminal=0.12, discount_rate=0.10)


class TestComputeEnterpriseValue:
  """Tests for compute_enterprise_value function."""

  def test_flat_perpetuity(self):
    """Flat 1000 with g=0 is worth exactly 1000 / r.

    PV_explicit: 2486.85
    TV = 10000, discounted 10000 / 1.331 = 7513.15
    Total: 10000.00
    """
    factors = [discount_factor(0.10, t) for t in (1, 2, 3)]
    total, pv, tv, dtv = compute_enterprise_value([1000.0] * 3,
                                                  factors,
                                                  g_terminal=0.0,
                                                  discount_rate=0.10)

    assert pv == pytest.approx(2486.85, abs=0.01)
    assert tv == pytest.approx(10000.0, rel=1e-12)
    assert dtv == pytest.approx(7513.15, abs=0.01)
    assert total == pytest.approx(10000.0, rel=1e-9)

  def test_growing_terminal(self):
    """450 per period, r=10%, g=2%.

    TV = 450 * 1.02 / 0.08 = 5737.5
    dTV = 5737.5 / 1.331 = 4310.67
    Total = 1119.08 + 4310.67 = 5429.75
    """
    factors = [discount_factor(0.10, t) for t in (1, 2, 3)]
    total, pv, tv, dtv = compute_enterprise_value([450.0] * 3,
                                                  factors,
                                                  g_terminal=0.02,
                                                  discount_rate=0.10)

    assert pv == pytest.approx(1119.08, abs=0.01)
    assert tv == pytest.approx(5737.5, rel=1e-12)
    assert dtv == pytest.approx(4310.67, abs=0.01)
    assert total == pytest.approx(5429.75, abs=0.01)

  def test_terminal_discounted_from_horizon(self):
    """The terminal value is discounted N periods regardless of factors."""
    mid_factors = [discount_factor(0.10, t - 0.5) for t in (1, 2)]
    _, _, tv, dtv = compute_enterprise_value([100.0, 100.0],
                                             mid_factors,
                                             g_terminal=0.0,
                                             discount_rate=0.10)

    assert dtv == pytest.approx(tv / 1.21, rel=1e-12)

  def test_empty_cash_flows(self):
    """At least one period is required."""
    with pytest.raises(ValueError, match='At least one'):
      compute_enterprise_value([], [], g_terminal=0.0, discount_rate=0.10)
