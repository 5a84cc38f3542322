"""
Chart recommendation engine.

Maps a DataProfile to ranked chart suggestions using a fixed table of
deterministic rules. Each rule appends at most one recommendation; the
result is sorted by confidence with ties kept in table order.
"""
import logging
from typing import Callable, Dict, List, NamedTuple

from reportsonic.core.performance import track_performance
from reportsonic.core.schemas import ChartRecommendation, ChartType, ColumnType, DataProfile

logger = logging.getLogger(__name__)

# Row counts above which the large-dataset rules fire
DISTRIBUTION_MIN_ROWS = 50
HEATMAP_MIN_ROWS = 100


class ChartRule(NamedTuple):
    applies: Callable[[DataProfile], bool]
    template: Dict


def numeric_column_count(profile: DataProfile) -> int:
    return sum(1 for column_type in profile.column_types if column_type == ColumnType.NUMBER)


def _time_and_value(p: DataProfile) -> bool:
    return p.has_time_series and p.has_numeric


def _category_and_value(p: DataProfile) -> bool:
    return p.has_categories and p.has_numeric


def _multi_metric(p: DataProfile) -> bool:
    return p.has_categories and len(p.columns) >= 3


def _two_numeric(p: DataProfile) -> bool:
    return p.has_numeric and numeric_column_count(p) >= 2


def _large_numeric(p: DataProfile) -> bool:
    return p.has_numeric and p.sample_size > DISTRIBUTION_MIN_ROWS


def _dense_categories(p: DataProfile) -> bool:
    return p.sample_size > HEATMAP_MIN_ROWS and p.has_categories and p.has_numeric


CHART_RULES: List[ChartRule] = [
    # Time series
    ChartRule(_time_and_value, dict(
        chart_type=ChartType.LINE,
        title="Time Series Trend",
        description="Shows how values change over time",
        confidence=0.95,
        reasoning="Perfect for showing trends and patterns over time",
        data_requirements=["Date column", "Numeric values"],
        best_for=["Sales trends", "Performance metrics", "Growth analysis"],
        example="Monthly sales revenue over 12 months",
    )),
    ChartRule(_time_and_value, dict(
        chart_type=ChartType.AREA,
        title="Area Chart",
        description="Shows cumulative values over time with filled areas",
        confidence=0.85,
        reasoning="Great for showing volume and trends simultaneously",
        data_requirements=["Date column", "Numeric values"],
        best_for=["Cumulative data", "Volume analysis", "Market share"],
        example="Website traffic growth over time",
    )),
    # Categorical
    ChartRule(_category_and_value, dict(
        chart_type=ChartType.BAR,
        title="Bar Chart",
        description="Compares values across different categories",
        confidence=0.9,
        reasoning="Excellent for comparing discrete categories",
        data_requirements=["Category column", "Numeric values"],
        best_for=["Sales by region", "Product performance", "Survey results"],
        example="Sales by product category",
    )),
    ChartRule(_category_and_value, dict(
        chart_type=ChartType.PIE,
        title="Pie Chart",
        description="Shows parts of a whole as percentages",
        confidence=0.8,
        reasoning="Best for showing proportional relationships",
        data_requirements=["Category column", "Numeric values"],
        best_for=["Market share", "Budget allocation", "Demographics"],
        example="Market share by region",
    )),
    ChartRule(_category_and_value, dict(
        chart_type=ChartType.DOUGHNUT,
        title="Doughnut Chart",
        description="Pie chart with a hollow center for additional information",
        confidence=0.75,
        reasoning="Good alternative to pie charts with space for center labels",
        data_requirements=["Category column", "Numeric values"],
        best_for=["Market share", "Budget breakdown", "Survey responses"],
        example="Customer segment distribution",
    )),
    ChartRule(_category_and_value, dict(
        chart_type=ChartType.POLAR_AREA,
        title="Polar Area Chart",
        description="Combines pie and bar chart characteristics",
        confidence=0.7,
        reasoning="Unique visualization for categorical data with magnitude",
        data_requirements=["Category column", "Numeric values"],
        best_for=["Performance metrics", "Survey ratings", "Multi-dimensional data"],
        example="Employee satisfaction by department",
    )),
    # Multi-dimensional
    ChartRule(_multi_metric, dict(
        chart_type=ChartType.RADAR,
        title="Radar Chart",
        description="Shows multiple variables on axes radiating from center",
        confidence=0.8,
        reasoning="Perfect for comparing multiple metrics across categories",
        data_requirements=["Category column", "Multiple numeric columns"],
        best_for=["Performance comparison", "Product analysis", "Skills assessment"],
        example="Product features comparison",
    )),
    # Correlation
    ChartRule(_two_numeric, dict(
        chart_type=ChartType.SCATTER,
        title="Scatter Plot",
        description="Shows relationship between two numeric variables",
        confidence=0.9,
        reasoning="Best for identifying correlations and patterns",
        data_requirements=["Two numeric columns"],
        best_for=["Correlation analysis", "Outlier detection", "Trend identification"],
        example="Sales vs Marketing spend correlation",
    )),
    ChartRule(_two_numeric, dict(
        chart_type=ChartType.BUBBLE,
        title="Bubble Chart",
        description="Scatter plot with size representing third dimension",
        confidence=0.8,
        reasoning="Great for showing three dimensions of data",
        data_requirements=["Two numeric columns", "Size dimension"],
        best_for=["Market analysis", "Performance comparison", "Risk assessment"],
        example="Revenue vs Profit with Market Size",
    )),
    # Geography is drawn as bars; no map renderer is assumed
    ChartRule(lambda p: p.has_geographic, dict(
        chart_type=ChartType.BAR,
        title="Geographic Distribution",
        description="Shows data distribution across geographic regions",
        confidence=0.85,
        reasoning="Bar chart is perfect for comparing geographic regions",
        data_requirements=["Geographic column", "Numeric values"],
        best_for=["Regional sales", "Market penetration", "Demographic analysis"],
        example="Sales by country/region",
    )),
    # Large datasets
    ChartRule(_large_numeric, dict(
        chart_type=ChartType.BAR,
        title="Data Distribution",
        description="Shows distribution of numeric data",
        confidence=0.8,
        reasoning="Bar chart is perfect for understanding data distribution patterns",
        data_requirements=["Numeric column"],
        best_for=["Data distribution", "Statistical analysis", "Quality control"],
        example="Customer age distribution",
    )),
    ChartRule(_large_numeric, dict(
        chart_type=ChartType.SCATTER,
        title="Statistical Analysis",
        description="Shows statistical distribution and relationships",
        confidence=0.75,
        reasoning="Scatter plot is excellent for statistical analysis and outlier detection",
        data_requirements=["Numeric column", "Optional category column"],
        best_for=["Statistical analysis", "Outlier detection", "Data comparison"],
        example="Sales performance by region",
    )),
    # Specialized
    ChartRule(_category_and_value, dict(
        chart_type=ChartType.FUNNEL,
        title="Funnel Chart",
        description="Shows stages in a process with decreasing values",
        confidence=0.7,
        reasoning="Perfect for conversion funnels and process analysis",
        data_requirements=["Process stages", "Conversion values"],
        best_for=["Sales funnel", "User journey", "Process optimization"],
        example="Lead to customer conversion funnel",
    )),
    ChartRule(_category_and_value, dict(
        chart_type=ChartType.WATERFALL,
        title="Waterfall Chart",
        description="Shows cumulative effect of sequential values",
        confidence=0.7,
        reasoning="Great for showing how values build up or break down",
        data_requirements=["Sequential categories", "Numeric values"],
        best_for=["Financial analysis", "Budget breakdown", "Profit analysis"],
        example="Monthly profit/loss breakdown",
    )),
    ChartRule(_dense_categories, dict(
        chart_type=ChartType.HEATMAP,
        title="Heatmap",
        description="Shows data density using color intensity",
        confidence=0.8,
        reasoning="Excellent for large datasets with patterns",
        data_requirements=["Two categorical columns", "Numeric values"],
        best_for=["Pattern identification", "Large dataset analysis", "Correlation matrix"],
        example="Sales performance by region and product",
    )),
]

FALLBACK_RECOMMENDATION = dict(
    chart_type=ChartType.BAR,
    title="Data Overview",
    description="Shows the values in the dataset side by side",
    confidence=0.5,
    reasoning="No stronger pattern was detected, a simple bar chart is a safe starting point",
    data_requirements=["Any column"],
    best_for=["First look at the data", "Small datasets"],
    example="Values per row",
)


@track_performance("recommend_charts")
def recommend_charts(profile: DataProfile) -> List[ChartRecommendation]:
    """
    Recommend chart types for a dataset profile.

    Args:
        profile: Output of profile_dataset

    Returns:
        Recommendations sorted by confidence (highest first), never empty
    """
    recommendations = [
        ChartRecommendation(**rule.template)
        for rule in CHART_RULES
        if rule.applies(profile)
    ]

    if not recommendations:
        logger.info("No chart rule matched, falling back to a data overview bar chart")
        return [ChartRecommendation(**FALLBACK_RECOMMENDATION)]

    # sorted() is stable, so equal confidences keep table order
    ranked = sorted(recommendations, key=lambda r: r.confidence, reverse=True)
    logger.debug(f"Generated {len(ranked)} chart recommendations, top: {ranked[0].title}")
    return ranked
