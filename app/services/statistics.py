"""
Статистические утилиты для биомаркеров речи.

Все функции чистые и тотальные: пустые выборки, нулевая дисперсия и
деление на ноль дают 0 или вырожденный интервал, а не NaN.
"""
import math
from statistics import NormalDist
from typing import Dict, Sequence, Tuple

from app.models.statistics import (
    DataQualityMetrics,
    INSUFFICIENT_TREND,
    Reliability,
    StatisticalResult,
    TrendAnalysis,
)

MIN_REGRESSION_POINTS = 5

# Конечная замена бесконечного F (JSON-ответ не допускает inf)
DEGENERATE_F_STATISTIC = 1e6

# Упрощенная таблица t (95%, двусторонняя) для малых выборок
T_TABLE_95: Dict[int, float] = {
    1: 12.71, 2: 4.30, 3: 3.18, 4: 2.78, 5: 2.57,
    6: 2.45, 7: 2.36, 8: 2.31, 9: 2.26, 10: 2.23,
    15: 2.13, 20: 2.09, 25: 2.06, 30: 2.04,
}


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    first = values[0]
    if all(v == first for v in values):
        # без накопления ошибки округления для константной выборки
        return float(first)
    return math.fsum(values) / len(values)


def standard_deviation(values: Sequence[float]) -> float:
    """Выборочное СКО (знаменатель n-1), 0 при n <= 1"""
    n = len(values)
    if n <= 1:
        return 0.0
    m = mean(values)
    variance = sum((v - m) ** 2 for v in values) / (n - 1)
    return math.sqrt(variance)


def standard_error(values: Sequence[float]) -> float:
    n = len(values)
    if n <= 1:
        return 0.0
    return standard_deviation(values) / math.sqrt(n)


def z_value(confidence_level: float = 0.95) -> float:
    """Квантиль нормального распределения для двустороннего интервала"""
    return NormalDist().inv_cdf(0.5 + confidence_level / 2)


def confidence_interval(
    values: Sequence[float],
    confidence_level: float = 0.95,
) -> Tuple[float, float]:
    """
    Доверительный интервал среднего (нормальное приближение).

    Returns:
        (low, high); [m, m] при n <= 1, (0, 0) для пустой выборки
    """
    if not values:
        return (0.0, 0.0)
    m = mean(values)
    if len(values) <= 1:
        return (m, m)
    margin = z_value(confidence_level) * standard_error(values)
    return (m - margin, m + margin)


def statistical_result(
    values: Sequence[float],
    confidence_level: float = 0.95,
) -> StatisticalResult:
    """Среднее, доверительный интервал, стандартная ошибка и размер выборки"""
    if not values:
        return StatisticalResult(
            value=0.0,
            confidence_interval=(0.0, 0.0),
            standard_error=0.0,
            sample_size=0,
        )
    return StatisticalResult(
        value=mean(values),
        confidence_interval=confidence_interval(values, confidence_level),
        standard_error=standard_error(values),
        sample_size=len(values),
    )


def t_critical(df: float) -> float:
    """t-квантиль 95% по ближайшей строке таблицы; при df >= 30 используется 1.96"""
    if df >= 30:
        return 1.96
    if df < 1:
        return T_TABLE_95[1]
    closest = min(T_TABLE_95, key=lambda k: abs(k - df))
    return T_TABLE_95[closest]


def t_test_p_value(t_statistic: float, df: float) -> float:
    """Грубое приближение двустороннего p-value по |t|"""
    if df < 1:
        return 1.0
    abs_t = abs(t_statistic)
    if abs_t > 3:
        return 0.01
    if abs_t > 2.5:
        return 0.02
    if abs_t > 2:
        return 0.05
    if abs_t > 1.5:
        return 0.15
    if abs_t > 1:
        return 0.30
    return 0.50


def linear_regression(x: Sequence[float], y: Sequence[float]) -> TrendAnalysis:
    """
    МНК-регрессия y по x с приближенной значимостью наклона.

    Вызывающий код обязан сам обрабатывать n < 5, но функция тоже
    возвращает "insufficient_data" для коротких или вырожденных рядов
    (несовпадающие длины, нулевой разброс x).
    """
    n = len(x)
    if n != len(y) or n < MIN_REGRESSION_POINTS:
        return INSUFFICIENT_TREND

    x_mean = mean(x)
    y_mean = mean(y)
    sxx = sum((xi - x_mean) ** 2 for xi in x)
    if sxx <= 0:
        return INSUFFICIENT_TREND

    sxy = sum((xi - x_mean) * (yi - y_mean) for xi, yi in zip(x, y))
    slope = sxy / sxx
    intercept = y_mean - slope * x_mean

    total_ss = sum((yi - y_mean) ** 2 for yi in y)
    residual_ss = sum((yi - (slope * xi + intercept)) ** 2 for xi, yi in zip(x, y))
    r_squared = 1 - residual_ss / total_ss if total_ss > 0 else 0.0

    df = n - 2
    slope_se = math.sqrt((residual_ss / df) / sxx)

    if slope_se > 0:
        p_value = t_test_p_value(slope / slope_se, df)
    else:
        # Идеальная подгонка: наклон значим, если он ненулевой
        p_value = 0.01 if slope != 0 else 1.0

    margin = t_critical(df) * slope_se
    return TrendAnalysis(
        slope=slope,
        r_squared=max(0.0, r_squared),
        p_value=p_value,
        significance="significant" if p_value < 0.05 else "not_significant",
        confidence_interval=(slope - margin, slope + margin),
    )


def percentile(value: float, reference: Sequence[float]) -> int:
    """Эмпирический процентиль значения в эталонной выборке (равные значения дают средний ранг)"""
    if len(reference) == 0:
        return 50
    below = sum(1 for r in reference if r < value)
    equal = sum(1 for r in reference if r == value)
    return round((below + equal / 2) / len(reference) * 100)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Популяционное СКО / |среднее|; 0, если среднее равно 0"""
    if not values:
        return 0.0
    m = mean(values)
    if m == 0:
        return 0.0
    variance = sum((v - m) ** 2 for v in values) / len(values)
    return math.sqrt(variance) / abs(m)


def z_score(value: float, baseline_mean: float, baseline_std: float) -> float:
    if baseline_std <= 0:
        return 0.0
    return (value - baseline_mean) / baseline_std


def variance_ratio_test(groups: Sequence[Sequence[float]]) -> Tuple[float, float]:
    """
    Упрощенный однофакторный ANOVA: отношение межгрупповой и
    внутригрупповой дисперсий, p-value по грубым полосам
    (F > 2.5 -> 0.01, F > 2.0 -> 0.05, иначе 0.20).

    Returns:
        (F, p); (0, 1) если групп меньше двух или все значения равны.
        При нулевой внутригрупповой и ненулевой межгрупповой дисперсии
        F заменяется конечным DEGENERATE_F_STATISTIC с p = 0.01
    """
    groups = [g for g in groups if len(g) > 0]
    between_df = len(groups) - 1
    within_df = sum(len(g) - 1 for g in groups)
    if between_df < 1 or within_df < 1:
        return 0.0, 1.0

    overall = mean([v for g in groups for v in g])
    between_ss = 0.0
    within_ss = 0.0
    for group in groups:
        group_mean = mean(group)
        between_ss += len(group) * (group_mean - overall) ** 2
        within_ss += sum((v - group_mean) ** 2 for v in group)

    if within_ss <= 0:
        # группы постоянны: различие между ними максимально, если оно есть
        if between_ss > 0:
            return DEGENERATE_F_STATISTIC, 0.01
        return 0.0, 1.0
    f_statistic = (between_ss / between_df) / (within_ss / within_df)

    if f_statistic > 2.5:
        p_value = 0.01
    elif f_statistic > 2.0:
        p_value = 0.05
    else:
        p_value = 0.20
    return f_statistic, p_value


def assess_data_quality(
    all_values: Sequence[float],
    valid_values: Sequence[float],
    outliers: Sequence[float],
) -> DataQualityMetrics:
    """Полнота данных с поправкой на долю выбросов"""
    total = len(all_values)
    valid = len(valid_values)
    outlier_count = len(outliers)

    completeness = valid / total if total > 0 else 0.0
    outlier_rate = outlier_count / total if total > 0 else 0.0
    quality_score = completeness * (1 - outlier_rate)

    reliability: Reliability
    if valid >= 50 and quality_score >= 0.8:
        reliability = "high"
    elif valid >= 20 and quality_score >= 0.6:
        reliability = "medium"
    else:
        reliability = "low"

    return DataQualityMetrics(
        total_segments=total,
        valid_segments=valid,
        outliers=outlier_count,
        quality_score=quality_score,
        reliability=reliability,
    )
