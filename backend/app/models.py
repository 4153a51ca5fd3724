"""
Single source of truth for all Pydantic models (domain records, LLM responses, requests, SSE events).
Domain records are frozen: a new snapshot replaces the old one, nothing is mutated in place.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


ReviewSource = Literal["App Store", "Play Store", "G2", "Capterra", "Twitter"]
Severity = Literal["High", "Medium", "Low"]
DemandLevel = Literal["Critical", "Nice to Have"]


class AppState(str, Enum):
    """Screens the client can be on. LANDING is the initial state."""

    LANDING = "LANDING"
    DASHBOARD = "DASHBOARD"
    ANALYZER_INPUT = "ANALYZER_INPUT"
    ANALYZING = "ANALYZING"
    INSIGHTS = "INSIGHTS"
    BLUEPRINT = "BLUEPRINT"
    SETTINGS = "SETTINGS"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# -----------------------------------------------------------------------------
# Domain Models (also the declared LLM output shapes)
# -----------------------------------------------------------------------------


class Review(FrozenModel):
    id: str
    author: str
    rating: int = Field(..., ge=1, le=5)
    date: str
    content: str
    source: ReviewSource


class PainPoint(FrozenModel):
    category: str
    count: int = Field(..., ge=0)
    description: str
    severity: Severity


class FeatureGap(FrozenModel):
    feature_name: str
    demand_level: DemandLevel
    context: str


class CoreFeature(FrozenModel):
    title: str
    description: str
    solves_gap: str = Field(..., description="Pain point or feature gap this feature addresses")


class ProductBlueprint(FrozenModel):
    product_name: str
    tagline: str
    value_proposition: str
    core_features: list[CoreFeature]
    marketing_angles: list[str]


class ReviewAnalysis(FrozenModel):
    """Partial analysis returned by the model. Sparse responses default to zero/empty."""

    sentiment_summary: str = ""
    average_rating: float = Field(0.0, ge=0.0, le=5.0)
    pain_points: list[PainPoint] = []
    feature_gaps: list[FeatureGap] = []

    @field_validator("sentiment_summary", "average_rating", "pain_points", "feature_gaps", mode="before")
    @classmethod
    def null_as_missing(cls, value: Any, info: ValidationInfo) -> Any:
        """An explicit null counts as an omitted field."""
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value


class CompetitorAnalysis(FrozenModel):
    """The aggregate held by the controller once an analysis completes."""

    id: str
    competitor_name: str
    competitor_url: Optional[str] = None
    date_analyzed: str
    total_reviews_analyzed: int = Field(..., ge=0)
    average_rating: float = Field(0.0, ge=0.0, le=5.0)
    sentiment_summary: str = ""
    pain_points: list[PainPoint] = []
    feature_gaps: list[FeatureGap] = []
    reviews: list[Review] = []
    blueprint: Optional[ProductBlueprint] = None


# -----------------------------------------------------------------------------
# Request Models
# -----------------------------------------------------------------------------


class AnalysisRequest(BaseModel):
    competitor_name: str = Field(..., min_length=1, max_length=200, description="Competitor product name")
    description: str = Field(..., min_length=1, max_length=2000, description="What the competitor does")


class NavigateRequest(BaseModel):
    target: AppState


# -----------------------------------------------------------------------------
# Screen Payload (what the client renders for the current state)
# -----------------------------------------------------------------------------


class Screen(BaseModel):
    state: AppState
    content: Optional[dict[str, Any]] = None


class SessionCreatedResponse(BaseModel):
    session_id: str
    screen: Screen


# -----------------------------------------------------------------------------
# SSE Event Models
# -----------------------------------------------------------------------------


class StateChangedEvent(BaseModel):
    type: str = "state_changed"
    from_state: AppState
    to_state: AppState


class StepStartedEvent(BaseModel):
    type: str = "step_started"
    step: str
    label: str


class AnalysisReadyEvent(BaseModel):
    type: str = "analysis_ready"
    analysis: CompetitorAnalysis


class BlueprintReadyEvent(BaseModel):
    type: str = "blueprint_ready"
    blueprint: ProductBlueprint


class ErrorEvent(BaseModel):
    type: str = "error"
    message: str
    recoverable: bool
    error_code: str


class ScreenEvent(BaseModel):
    type: str = "screen"
    screen: Screen
