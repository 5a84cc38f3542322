"""
Dataset context detection and prompt construction.

Guesses the business domain and audience of a dataset from keywords in its
headers and first rows, picks a prompt strategy for that audience, and builds
the analysis prompt sent to LLM providers.
"""
import re
import json
import logging
from typing import Any, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from reportsonic.core.sanitization import sanitize_for_prompt
from reportsonic.core.schemas import DomainContext
from reportsonic.services.profiler import has_date_values, is_empty, parse_number

logger = logging.getLogger(__name__)

# Rows scanned for domain keywords
CONTEXT_SAMPLE_ROWS = 5

# Ordered: first matching entry wins
DOMAIN_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("Sales", ("sales", "revenue", "customer")),
    ("Finance", ("profit", "cost", "budget", "financial")),
    ("Marketing", ("marketing", "campaign", "advertisement", "lead")),
    ("HR", ("employee", "hr", "salary", "staff")),
    ("Operations", ("operation", "production", "manufacturing", "supply")),
    ("Healthcare", ("patient", "medical", "health", "treatment")),
    ("Education", ("student", "education", "course", "learning")),
    ("E-commerce", ("product", "inventory", "ecommerce", "order")),
    ("Technology", ("technology", "software", "development", "code")),
]

INDUSTRY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("Retail", ("retail", "store", "shop")),
    ("Financial Services", ("bank", "financial", "investment")),
    ("Technology", ("tech", "software", "saas")),
    ("Healthcare", ("health", "medical", "pharma")),
    ("Manufacturing", ("manufacturing", "production", "factory")),
]

PURPOSE_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("Trend", ("trend", "time", "month", "year")),
    ("Comparison", ("compare", "vs", "versus")),
    ("Forecast", ("forecast", "predict", "future")),
    ("Diagnostic", ("issue", "problem", "error")),
]

# Half-over-half change that counts as a trend
TREND_THRESHOLD = 0.1
OUTLIER_STD_DEVS = 2
MAX_LISTED_CATEGORIES = 10

CUSTOM_PROMPT_SYSTEM = (
    "You are an expert data analyst. Analyze the provided data and return a "
    "comprehensive JSON response."
)


class PromptStrategy(NamedTuple):
    name: str
    template: str
    focus: Tuple[str, ...]


def _mentions(text: str, keywords: Sequence[str]) -> bool:
    # Prefix match on word starts so "hr" does not fire inside "three"
    return any(re.search(r'\b' + re.escape(keyword), text) for keyword in keywords)


def _first_match(text: str, table: List[Tuple[str, Tuple[str, ...]]], default: str) -> str:
    for label, keywords in table:
        if _mentions(text, keywords):
            return label
    return default


class Prompt(NamedTuple):
    system: str
    user: str


class ColumnSummary(NamedTuple):
    """Per-position facts about one column, gathered in a single scan."""
    name: str
    row_count: int
    filled: int
    numbers: np.ndarray
    # Non-empty string cells that do not parse as numbers
    text_cells: int
    distinct_values: int
    has_dates: bool

    @property
    def is_numeric(self) -> bool:
        return len(self.numbers) > 0

    @property
    def is_text(self) -> bool:
        return self.text_cells > 0

    @property
    def completeness(self) -> float:
        if not self.row_count:
            return 0.0
        return self.filled / self.row_count * 100


class AnalysisPlan(NamedTuple):
    context: DomainContext
    strategy: PromptStrategy
    prompt: Prompt


def summarize_columns(headers: Sequence[Any], rows: List[List[Any]]) -> List[ColumnSummary]:
    """
    Summarize every column by position.

    A column counts as numeric when any non-empty cell parses as a number,
    and as text when any non-empty string cell does not. Date detection
    runs once per column over its distinct non-numeric values.
    """
    if not rows:
        return [ColumnSummary(str(h), 0, 0, np.empty(0), 0, 0, False) for h in headers]

    frame = pd.DataFrame(rows, dtype=object)
    summaries = []
    for position, header in enumerate(headers):
        column = frame.iloc[:, position]
        filled = column[~column.map(is_empty).astype(bool)]
        parsed = pd.to_numeric(filled.map(parse_number), errors='coerce')
        numeric_mask = parsed.notna()
        others = filled[~numeric_mask]
        summaries.append(ColumnSummary(
            name=str(header),
            row_count=len(column),
            filled=len(filled),
            numbers=parsed[numeric_mask].to_numpy(dtype=float),
            text_cells=sum(1 for value in others if isinstance(value, str)),
            distinct_values=filled.map(str).nunique(),
            has_dates=has_date_values(others),
        ))
    return summaries


def detect_context(
    headers: List[str],
    rows: List[List[Any]],
    summaries: Optional[List[ColumnSummary]] = None,
) -> DomainContext:
    """Keyword-based guess at the domain, industry and audience of a dataset."""
    sample_text = ' '.join(
        str(value)
        for row in rows[:CONTEXT_SAMPLE_ROWS]
        for value in row
        if not is_empty(value)
    )
    text = f"{' '.join(str(h) for h in headers)} {sample_text}".lower()

    if summaries is None:
        summaries = summarize_columns(headers, rows)
    numeric_columns = sum(1 for column in summaries if column.is_numeric)
    ratio = numeric_columns / len(headers) if headers else 0.0
    if ratio > 0.7:
        sophistication = "Advanced"
    elif ratio > 0.4:
        sophistication = "Intermediate"
    else:
        sophistication = "Basic"

    if len(rows) > 1000:
        persona = "Executive"
    elif len(rows) > 100:
        persona = "Manager"
    else:
        persona = "Analyst"

    context = DomainContext(
        domain=_first_match(text, DOMAIN_KEYWORDS, "Unknown"),
        industry=_first_match(text, INDUSTRY_KEYWORDS, "General Business"),
        sophistication=sophistication,
        persona=persona,
        purpose=_first_match(text, PURPOSE_KEYWORDS, "Performance"),
    )
    logger.debug(f"Detected context: domain={context.domain}, industry={context.industry}")
    return context


def _context_block(context: DomainContext, audience: bool = False) -> str:
    lines = [
        "DATASET CONTEXT:",
        f"- Business Domain: {context.domain}",
        f"- Industry: {context.industry}",
        f"- Analysis Level: {context.sophistication}",
    ]
    if audience:
        lines.append(f"- Target Audience: {context.persona}")
    lines.append(f"- Purpose: {context.purpose}")
    return '\n'.join(lines)


def select_prompt_strategy(context: DomainContext) -> PromptStrategy:
    """Pick the system prompt that suits the detected audience."""
    if context.persona == "Executive" or context.sophistication == "Basic":
        return PromptStrategy(
            name="ExecutiveBrief",
            template=f"""You are a senior data analyst presenting to C-level executives in the {context.industry} industry.

{_context_block(context, audience=True)}

YOUR TASK: Provide executive-level insights that drive strategic decisions.

REQUIREMENTS:
1. Lead with the most impactful business metric
2. Explain financial/operational significance in 1-2 sentences
3. Provide specific, actionable recommendations
4. Highlight opportunities and risks
5. Use executive language (avoid technical jargon)

FORMAT: "Key Finding -> Business Impact -> Strategic Action\"""",
            focus=("executive_summary", "key_metrics", "strategic_recommendations", "risk_opportunities"),
        )

    if context.sophistication in ("Advanced", "Expert"):
        return PromptStrategy(
            name="AnalyticalDeepDive",
            template=f"""You are a senior data analyst conducting a comprehensive analysis for {context.persona}s in the {context.industry} industry.

{_context_block(context)}

YOUR TASK: Provide detailed analytical insights with supporting evidence.

REQUIREMENTS:
1. Comprehensive statistical analysis
2. Detailed trend identification
3. Root cause analysis
4. Data quality assessment
5. Multiple scenario analysis
6. Technical recommendations

FORMAT: "Analysis -> Evidence -> Implications -> Recommendations\"""",
            focus=("statistical_analysis", "trend_analysis", "root_cause", "data_quality", "scenarios"),
        )

    if context.purpose in ("Trend", "Performance"):
        return PromptStrategy(
            name="VisualStorytelling",
            template=f"""You are a data storyteller creating compelling narratives for {context.persona}s in the {context.industry} industry.

{_context_block(context)}

YOUR TASK: Create a compelling data story that engages and informs.

REQUIREMENTS:
1. Narrative structure with beginning, middle, end
2. Visual metaphors and analogies
3. Emotional connection to business impact
4. Clear progression of insights
5. Memorable key takeaways

FORMAT: "Story Setup -> Data Journey -> Business Transformation -> Future Vision\"""",
            focus=("narrative", "visual_metaphors", "emotional_impact", "progression", "memorable_insights"),
        )

    return PromptStrategy(
        name="TechnicalReport",
        template=f"""You are a technical data analyst creating a comprehensive report for {context.persona}s in the {context.industry} industry.

{_context_block(context)}

YOUR TASK: Provide technical analysis with detailed methodology.

REQUIREMENTS:
1. Detailed methodology explanation
2. Statistical significance testing
3. Data validation and quality metrics
4. Technical implementation details
5. Performance benchmarks
6. Technical recommendations

FORMAT: "Methodology -> Analysis -> Validation -> Technical Recommendations\"""",
        focus=("methodology", "statistical_tests", "validation", "implementation", "benchmarks"),
    )




def detect_data_patterns(
    headers: List[str],
    rows: List[List[Any]],
    summaries: Optional[List[ColumnSummary]] = None,
) -> List[str]:
    """
    Describe notable patterns in the dataset as short sentences.

    Covers half-over-half trends, outliers beyond two standard deviations,
    categorical diversity, date columns and per-column completeness.
    """
    if not rows:
        return []
    if summaries is None:
        summaries = summarize_columns(headers, rows)

    patterns: List[str] = []
    for column in summaries:
        numbers = column.numbers
        if len(numbers) < 2:
            continue

        half = len(numbers) // 2
        first_avg = numbers[:half].mean()
        second_avg = numbers[half:].mean()
        if first_avg != 0:
            change = (second_avg - first_avg) / abs(first_avg)
            if change > TREND_THRESHOLD:
                patterns.append(f"Upward trend detected in {column.name} ({change * 100:.1f}% increase)")
            elif change < -TREND_THRESHOLD:
                patterns.append(f"Downward trend detected in {column.name} ({-change * 100:.1f}% decrease)")

        # Population standard deviation
        deviation = np.std(numbers)
        outliers = int(np.count_nonzero(np.abs(numbers - numbers.mean()) > OUTLIER_STD_DEVS * deviation))
        if outliers > 0:
            patterns.append(
                f"{outliers} outliers detected in {column.name} ({outliers / len(numbers) * 100:.1f}% of data)"
            )

    for column in summaries:
        if not column.is_text:
            continue
        if column.distinct_values <= MAX_LISTED_CATEGORIES:
            patterns.append(f"Categorical data in {column.name}: {column.distinct_values} unique categories")
        else:
            patterns.append(f"High diversity in {column.name}: {column.distinct_values} unique values")

    date_columns = sum(1 for column in summaries if column.has_dates)
    if date_columns:
        patterns.append(f"Time-series data detected: {date_columns} date column(s)")

    for column in summaries:
        if column.completeness < 50:
            patterns.append(f"Low data completeness in {column.name}: {column.completeness:.1f}%")
        elif column.completeness == 100:
            patterns.append(f"Perfect data completeness in {column.name}: 100%")

    return patterns


def _prompt_value(value: Any) -> Any:
    if is_empty(value):
        return None
    if isinstance(value, str):
        return sanitize_for_prompt(value)
    if isinstance(value, (bool, int, float)):
        return value
    return sanitize_for_prompt(str(value))


def build_analysis_prompt(
    headers: List[str],
    rows: List[List[Any]],
    context: DomainContext,
    strategy: PromptStrategy,
    sample_rows: int = 10,
    summaries: Optional[List[ColumnSummary]] = None,
) -> str:
    """
    Build the user prompt for an LLM provider.

    Embeds the first `sample_rows` rows as value lists in column order,
    alongside the full row count, column kinds, per-column completeness and
    detected patterns. Header and cell text is sanitized before it reaches
    the prompt.
    """
    safe_headers = [sanitize_for_prompt(h) for h in headers]
    if summaries is None:
        summaries = summarize_columns(headers, rows)
    summaries = [column._replace(name=safe) for column, safe in zip(summaries, safe_headers)]

    sample = [
        json.dumps([_prompt_value(value) for value in row], default=str)
        for row in rows[:sample_rows]
    ]
    sample_lines = sample or ["(no rows)"]

    numeric = [column.name for column in summaries if column.is_numeric]
    categorical = [column.name for column in summaries if column.is_text]
    dates = [column.name for column in summaries if column.has_dates]
    quality_lines = [
        f"- {column.name}: {column.completeness:.1f}% complete ({column.filled}/{len(rows)} rows)"
        for column in summaries
    ]

    patterns = detect_data_patterns(safe_headers, rows, summaries)
    pattern_lines = [f"- {p}" for p in patterns] or ["- No notable patterns detected"]

    return f"""COMPREHENSIVE DATASET ANALYSIS REQUEST

Dataset Information:
- Columns ({len(safe_headers)}): {json.dumps(safe_headers)}
- Total Rows: {len(rows)}
- Numeric Columns: {len(numeric)} ({', '.join(numeric)})
- Categorical Columns: {len(categorical)} ({', '.join(categorical)})
- Date Columns: {len(dates)} ({', '.join(dates)})
- Sample Rows (first {len(sample)}, values in column order):
{chr(10).join(sample_lines)}

DATA QUALITY ANALYSIS:
{chr(10).join(quality_lines)}

DETECTED PATTERNS:
{chr(10).join(pattern_lines)}

DETECTED CONTEXT:
- Business Domain: {context.domain}
- Industry: {context.industry}
- Analysis Sophistication: {context.sophistication}
- Target Audience: {context.persona}
- Analysis Purpose: {context.purpose}

ANALYSIS REQUIREMENTS:
Based on the detected context and strategy ({strategy.name}), provide:

1. EXECUTIVE SUMMARY (2-3 sentences focusing on business impact and key findings)
2. KEY INSIGHTS (7-10 items with specific metrics and business significance)
3. TRENDS AND PATTERNS (5-7 items with quantitative evidence)
4. DATA QUALITY ASSESSMENT (3-5 items with completeness percentages and recommendations)
5. STRATEGIC RECOMMENDATIONS (7-10 actionable items tailored to the {context.industry} industry)
6. STATISTICAL SUMMARY (one object per numeric column with min, max, average, median)
7. BUSINESS APPLICATIONS (5-7 specific use cases for the {context.domain} domain)
8. RISKS AND OPPORTUNITIES (3-5 items with impact assessment)
9. NEXT STEPS (4-6 specific actions)

FORMAT: Return a single JSON object with these exact keys: summary, insights, trends, qualityIssues, recommendations, statistics, businessApplications, riskOpportunities, nextSteps

FOCUS AREAS: {', '.join(strategy.focus)}"""


def plan_analysis(
    headers: List[str],
    rows: List[List[Any]],
    custom_prompt: Optional[str] = None,
    sample_rows: int = 10,
) -> AnalysisPlan:
    """
    Context, strategy and prompt for one analysis request.

    Scans the dataset once; CPU-bound, so async callers run it in a thread.
    """
    summaries = summarize_columns(headers, rows)
    context = detect_context(headers, rows, summaries)
    strategy = select_prompt_strategy(context)
    if custom_prompt:
        prompt = Prompt(CUSTOM_PROMPT_SYSTEM, custom_prompt)
    else:
        prompt = Prompt(
            strategy.template,
            build_analysis_prompt(headers, rows, context, strategy, sample_rows, summaries),
        )
    return AnalysisPlan(context, strategy, prompt)


def prompt_for(
    headers: List[str],
    rows: List[List[Any]],
    custom_prompt: Optional[str] = None,
    sample_rows: int = 10,
) -> Prompt:
    """(system prompt, user prompt) for one provider call."""
    if custom_prompt:
        return Prompt(CUSTOM_PROMPT_SYSTEM, custom_prompt)
    return plan_analysis(headers, rows, sample_rows=sample_rows).prompt
