"""
Unit tests for the chart recommendation rules.
"""
import pytest

from reportsonic.core.schemas import ChartType, ColumnType, DataProfile, DataQuality
from reportsonic.services.profiler import profile_dataset
from reportsonic.services.recommender import CHART_RULES, numeric_column_count, recommend_charts


def make_profile(**overrides):
    """Build a profile directly so every flag combination is reachable."""
    values = dict(
        columns=["A", "B", "C"],
        data_types={"A": ColumnType.STRING, "B": ColumnType.NUMBER, "C": ColumnType.NUMBER},
        column_types=[ColumnType.STRING, ColumnType.NUMBER, ColumnType.NUMBER],
        sample_size=10,
        data_quality=DataQuality(completeness=1.0, consistency=1.0, accuracy=1.0),
    )
    values.update(overrides)
    return DataProfile(**values)


@pytest.mark.unit
def test_time_series_recommendations(time_series):
    headers, rows = time_series
    recommendations = recommend_charts(profile_dataset(headers, rows))

    assert [(r.chart_type, r.title, r.confidence) for r in recommendations] == [
        (ChartType.LINE, "Time Series Trend", 0.95),
        (ChartType.AREA, "Area Chart", 0.85),
    ]


@pytest.mark.unit
def test_fallback_when_nothing_matches():
    recommendations = recommend_charts(profile_dataset(["A", "B", "C"], []))

    assert len(recommendations) == 1
    assert recommendations[0].chart_type == ChartType.BAR
    assert recommendations[0].title == "Data Overview"
    assert recommendations[0].confidence == 0.5


@pytest.mark.unit
def test_every_rule_fires_in_confidence_order():
    """Ties keep table order."""
    profile = make_profile(
        has_time_series=True,
        has_categories=True,
        has_geographic=True,
        has_numeric=True,
        has_text=True,
        sample_size=200,
    )
    recommendations = recommend_charts(profile)

    assert len(recommendations) == len(CHART_RULES)
    assert [r.title for r in recommendations] == [
        "Time Series Trend",
        "Bar Chart",
        "Scatter Plot",
        "Area Chart",
        "Geographic Distribution",
        "Pie Chart",
        "Radar Chart",
        "Bubble Chart",
        "Data Distribution",
        "Heatmap",
        "Doughnut Chart",
        "Statistical Analysis",
        "Polar Area Chart",
        "Funnel Chart",
        "Waterfall Chart",
    ]
    confidences = [r.confidence for r in recommendations]
    assert confidences == sorted(confidences, reverse=True)


@pytest.mark.unit
def test_categories_with_values(sales_by_region):
    headers, rows = sales_by_region
    titles = [r.title for r in recommend_charts(profile_dataset(headers, rows))]

    assert titles[0] == "Bar Chart"
    assert "Pie Chart" in titles
    assert "Scatter Plot" in titles  # Sales and Units
    assert "Geographic Distribution" in titles
    assert "Heatmap" not in titles  # only 12 rows
    assert "Time Series Trend" not in titles


@pytest.mark.unit
def test_numeric_count_uses_column_positions():
    """A repeated header keeps only its last type in data_types; counts go by position."""
    rows = [[1, "a", 10], [2, "b", 20], [3, "c", 30]]
    profile = profile_dataset(["Val", "Val", "Score"], rows)

    assert profile.data_types == {"Val": ColumnType.STRING, "Score": ColumnType.NUMBER}
    assert numeric_column_count(profile) == 2
    assert "Scatter Plot" in [r.title for r in recommend_charts(profile)]


@pytest.mark.unit
def test_large_numeric_dataset():
    profile = make_profile(has_numeric=True, sample_size=51)
    titles = [r.title for r in recommend_charts(profile)]

    assert "Data Distribution" in titles
    assert "Statistical Analysis" in titles

    small = make_profile(has_numeric=True, sample_size=50)
    assert "Data Distribution" not in [r.title for r in recommend_charts(small)]


@pytest.mark.unit
def test_recommendations_carry_metadata():
    profile = make_profile(has_geographic=True)
    recommendation = recommend_charts(profile)[0]

    assert recommendation.title == "Geographic Distribution"
    assert recommendation.description
    assert recommendation.reasoning
    assert recommendation.best_for
    assert recommendation.data_requirements
    assert recommendation.example
