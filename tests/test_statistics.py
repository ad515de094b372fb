import math

import pytest

from app.services import statistics as stats


@pytest.mark.parametrize("values", [
    [1.0, 2.0, 3.0],
    [120.0, 130.0, 125.0, 128.0, 122.0, 131.0],
    [0.5, 10.0, 3.3, 7.7, 0.1],
    [-5.0, 5.0],
])
def test_confidence_interval_contains_mean(values):
    low, high = stats.confidence_interval(values)
    m = stats.mean(values)
    assert low <= m <= high


def test_identical_values_have_zero_spread():
    values = [0.1] * 7
    assert stats.standard_deviation(values) == 0.0
    assert stats.confidence_interval(values) == (0.1, 0.1)
    result = stats.statistical_result(values)
    assert result.value == 0.1
    assert result.standard_error == 0.0
    assert result.sample_size == 7


def test_degenerate_samples():
    assert stats.mean([]) == 0.0
    assert stats.standard_deviation([4.0]) == 0.0
    assert stats.standard_error([4.0]) == 0.0
    assert stats.confidence_interval([]) == (0.0, 0.0)
    assert stats.confidence_interval([4.0]) == (4.0, 4.0)

    empty = stats.statistical_result([])
    assert empty.value == 0.0
    assert empty.sample_size == 0
    assert empty.confidence_interval == (0.0, 0.0)


def test_standard_deviation_uses_sample_denominator():
    # сумма квадратов отклонений 32, n-1 = 7
    values = [2, 4, 4, 4, 5, 5, 7, 9]
    assert stats.standard_deviation(values) == pytest.approx(math.sqrt(32 / 7))
    assert stats.standard_error(values) == pytest.approx(math.sqrt(32 / 7) / math.sqrt(8))


def test_z_value_for_95_percent():
    assert stats.z_value(0.95) == pytest.approx(1.96, abs=0.001)


@pytest.mark.parametrize("n", [0, 1, 2, 3, 4])
def test_regression_short_series_is_insufficient(n):
    x = [float(i) for i in range(n)]
    y = [float(i * 3) for i in range(n)]
    trend = stats.linear_regression(x, y)
    assert trend.significance == "insufficient_data"
    assert trend.slope == 0.0


def test_regression_degenerate_inputs():
    assert stats.linear_regression([1, 2, 3, 4, 5], [1, 2, 3]).significance == "insufficient_data"
    # нулевой разброс x
    assert stats.linear_regression([2, 2, 2, 2, 2], [1, 2, 3, 4, 5]).significance == "insufficient_data"


def test_regression_perfect_line():
    x = [0, 1, 2, 3, 4, 5]
    y = [2 * v + 1 for v in x]
    trend = stats.linear_regression(x, y)
    assert trend.slope == pytest.approx(2.0)
    assert trend.r_squared == pytest.approx(1.0)
    assert trend.p_value == 0.01
    assert trend.significance == "significant"
    low, high = trend.confidence_interval
    assert low <= trend.slope <= high


def test_regression_flat_noise_is_not_significant():
    x = [0, 1, 2, 3, 4, 5]
    y = [10, 12, 9, 11, 10, 12]
    trend = stats.linear_regression(x, y)
    assert trend.significance == "not_significant"
    assert 0.0 <= trend.r_squared <= 1.0


def test_t_critical_table():
    assert stats.t_critical(3) == 3.18
    assert stats.t_critical(12) == 2.23
    assert stats.t_critical(30) == 1.96
    assert stats.t_critical(100) == 1.96


@pytest.mark.parametrize("t,expected", [
    (3.5, 0.01), (-2.7, 0.02), (2.2, 0.05), (1.7, 0.15), (1.2, 0.30), (0.4, 0.50),
])
def test_t_test_p_value_bands(t, expected):
    assert stats.t_test_p_value(t, 10) == expected


def test_percentile():
    reference = [1.0, 2.0, 3.0, 4.0, 5.0]
    assert stats.percentile(3.0, reference) == 50
    assert stats.percentile(10.0, reference) == 100
    assert stats.percentile(0.0, reference) == 0
    assert stats.percentile(3.0, []) == 50


def test_coefficient_of_variation():
    assert stats.coefficient_of_variation([]) == 0.0
    assert stats.coefficient_of_variation([0.0, 0.0]) == 0.0
    assert stats.coefficient_of_variation([10.0, 10.0]) == 0.0
    assert stats.coefficient_of_variation([5.0, 15.0]) == pytest.approx(0.5)


def test_z_score_sign_and_zero_std():
    assert stats.z_score(12.0, 10.0, 2.0) == pytest.approx(1.0)
    assert stats.z_score(8.0, 10.0, 2.0) == pytest.approx(-1.0)
    assert stats.z_score(50.0, 10.0, 0.0) == 0.0


def test_variance_ratio_test():
    f_statistic, p_value = stats.variance_ratio_test([[1, 2, 3], [10, 11, 12]])
    assert f_statistic == pytest.approx(121.5)
    assert p_value == 0.01

    assert stats.variance_ratio_test([[1, 2, 3]]) == (0.0, 1.0)
    assert stats.variance_ratio_test([[1], [2], [3]]) == (0.0, 1.0)
    # все значения равны
    assert stats.variance_ratio_test([[5, 5], [5, 5]]) == (0.0, 1.0)


def test_variance_ratio_constant_groups_that_differ_are_significant():
    f_statistic, p_value = stats.variance_ratio_test([[100, 100], [200, 200]])
    assert f_statistic == stats.DEGENERATE_F_STATISTIC
    assert math.isfinite(f_statistic)
    assert p_value == 0.01


def test_variance_ratio_similar_groups_not_significant():
    f_statistic, p_value = stats.variance_ratio_test([[10, 12, 11], [11, 10, 12]])
    assert f_statistic < 2.0
    assert p_value == 0.20


def test_assess_data_quality():
    quality = stats.assess_data_quality(list(range(10)), list(range(8)), [1])
    assert quality.total_segments == 10
    assert quality.valid_segments == 8
    assert quality.outliers == 1
    assert quality.quality_score == pytest.approx(0.8 * 0.9)
    assert quality.reliability == "low"

    high = stats.assess_data_quality(list(range(60)), list(range(60)), [])
    assert high.quality_score == 1.0
    assert high.reliability == "high"

    medium = stats.assess_data_quality(list(range(30)), list(range(25)), [])
    assert medium.reliability == "medium"

    empty = stats.assess_data_quality([], [], [])
    assert empty.quality_score == 0.0
