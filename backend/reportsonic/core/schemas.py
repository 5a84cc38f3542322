from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ColumnType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class ChartType(str, Enum):
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    DOUGHNUT = "doughnut"
    POLAR_AREA = "polarArea"
    RADAR = "radar"
    SCATTER = "scatter"
    BUBBLE = "bubble"
    AREA = "area"
    FUNNEL = "funnel"
    WATERFALL = "waterfall"
    HEATMAP = "heatmap"


class DataQuality(CamelModel):
    model_config = ConfigDict(frozen=True)

    completeness: float = Field(ge=0.0, le=1.0)
    consistency: float = Field(ge=0.0, le=1.0)
    accuracy: float = Field(ge=0.0, le=1.0)


class DataProfile(CamelModel):
    model_config = ConfigDict(frozen=True)

    columns: List[str]
    data_types: Dict[str, ColumnType]
    # One entry per position; data_types keeps only the last of repeated names
    column_types: List[ColumnType]
    has_time_series: bool = False
    has_categories: bool = False
    has_geographic: bool = False
    has_numeric: bool = False
    has_text: bool = False
    sample_size: int = 0  # row count, not the type-sampling window
    data_quality: DataQuality


class ChartRecommendation(CamelModel):
    chart_type: ChartType
    title: str
    description: str
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    best_for: List[str] = []
    data_requirements: List[str] = []
    example: str = ""


class AnalysisPayload(CamelModel):
    """Loosely structured provider answer; every field is optional."""
    summary: Optional[str] = None
    insights: List[str] = []
    trends: List[str] = []
    quality_issues: List[str] = []
    recommendations: List[str] = []
    statistics: List[Dict[str, Any]] = []
    business_applications: List[str] = []
    risk_opportunities: List[str] = []
    next_steps: List[str] = []


class ProviderSuccess(CamelModel):
    status: Literal["success"] = "success"
    provider_name: str
    payload: AnalysisPayload

    @property
    def ok(self) -> bool:
        return True


class ProviderFailure(CamelModel):
    status: Literal["failure"] = "failure"
    provider_name: str
    error_message: str

    @property
    def ok(self) -> bool:
        return False


ProviderResult = Annotated[Union[ProviderSuccess, ProviderFailure], Field(discriminator="status")]


class CombinedAnalysis(CamelModel):
    model_config = ConfigDict(frozen=True)

    summary: str = ""
    insights: List[str] = []
    trends: List[str] = []
    quality_issues: List[str] = []
    recommendations: List[str] = []
    statistics: List[Dict[str, Any]] = []
    business_applications: List[str] = []
    risk_opportunities: List[str] = []
    next_steps: List[str] = []
    providers: List[str] = []


class DomainContext(CamelModel):
    domain: str = "Unknown"
    industry: str = "General Business"
    sophistication: str = "Basic"
    persona: str = "Analyst"
    purpose: str = "Performance"


class SuperAnalysis(CamelModel):
    primary: ProviderResult
    secondary: List[ProviderSuccess] = []
    combined: CombinedAnalysis
    context: Optional[DomainContext] = None
    strategy: Optional[str] = None


class AnalysisReport(CamelModel):
    profile: DataProfile
    recommendations: List[ChartRecommendation]
    combined_analysis: CombinedAnalysis
    primary_provider: str
    context: Optional[DomainContext] = None
    strategy: Optional[str] = None


class DatasetRequest(CamelModel):
    headers: List[str]
    rows: List[List[Any]] = []


class AnalyzeRequest(DatasetRequest):
    custom_prompt: Optional[str] = None
    skip_ai: bool = False


class RecommendationResult(CamelModel):
    profile: DataProfile
    recommendations: List[ChartRecommendation]
