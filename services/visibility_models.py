"""
Visibility Models for Multi-LLM Visibility Analysis.
Defines the unified data structures that every platform adapter and the
visibility hub produce.
"""

from typing import List, Optional, Dict, Union
from pydantic import BaseModel, Field, field_validator


class VisibilityRequest(BaseModel):
    """What to probe: the target site, its competitors and the topics to ask about."""
    website: str
    company: Optional[str] = None
    competitors: List[str] = Field(default_factory=list)
    keywords: List[str]
    historical: bool = False
    days: int = Field(default=7, ge=1, le=30)

    @field_validator("keywords")
    @classmethod
    def keywords_not_empty(cls, value: List[str]) -> List[str]:
        keywords = [k.strip() for k in value if k and k.strip()]
        if not keywords:
            raise ValueError("at least one keyword is required")
        return keywords

    @field_validator("competitors")
    @classmethod
    def strip_competitors(cls, value: List[str]) -> List[str]:
        return [c.strip() for c in value if c and c.strip()]


class PromptAttempt(BaseModel):
    """A single prompt sent to a platform. Only used for logging."""
    platform: str
    keyword: str
    prompt: str
    attempt: int
    response: Optional[str] = None
    error: Optional[str] = None


class CompetitorMention(BaseModel):
    domain: str
    mentioned: bool = False


class MentionAnalysis(BaseModel):
    """Outcome of scanning one platform answer for the target brand."""
    mentioned: bool = False
    position: Optional[int] = None
    competitor_mentions: List[CompetitorMention] = Field(default_factory=list)
    response_length: int = 0
    confidence: float = 0.2


class KeywordError(BaseModel):
    """A keyword whose probe raised before any answer could be analyzed."""
    error: str
    mentioned: bool = False


class PlatformResult(BaseModel):
    """Results from one platform across every keyword of a run."""
    platform: str
    mentions: int = 0
    ranking: Optional[int] = None
    score: int = 0
    keyword_results: Dict[str, Union[MentionAnalysis, KeywordError]] = Field(default_factory=dict)
    error: Optional[str] = None


class HistoricalDayResult(BaseModel):
    """One simulated day of a historical run."""
    date: str
    day_offset: int
    keywords: str
    response: Optional[PlatformResult] = None
    error: Optional[str] = None
    success: bool = True


class TimelineMention(BaseModel):
    date: str
    keyword: str
    position: Optional[int] = None
    day_offset: int


class HistoricalPlatformResult(BaseModel):
    """Aggregated statistics for one platform over a historical day range."""
    platform: str
    mentions: int = 0
    total_queries: int = 0
    mention_rate: int = 0
    avg_position: Optional[float] = None
    best_position: Optional[int] = None
    ranking: Optional[int] = None
    score: int = 0
    historical_data: List[HistoricalDayResult] = Field(default_factory=list)
    timeline: List[TimelineMention] = Field(default_factory=list)
    error: Optional[str] = None


class CompetitorEstimate(BaseModel):
    """
    How a competitor fared across platforms.
    estimated_score carries a random smoothing term and is not reproducible.
    """
    url: str
    domain: str
    mentions: int = 0
    platforms_found: int = 0
    estimated_score: float = 0.0


class VisibilitySummary(BaseModel):
    """Summary statistics derived from the platform results."""
    overall_score: int = 0
    total_mentions: int = 0
    average_ranking: Optional[float] = None
    platform_count: int = 0
    competitor_analysis: List[CompetitorEstimate] = Field(default_factory=list)


class UserInfo(BaseModel):
    name: str
    email: str
    company: Optional[str] = None
    website: str


class AnalysisResult(BaseModel):
    """Complete result of one visibility analysis run."""
    timestamp: str
    website: str
    company: Optional[str] = None
    competitors: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    historical: bool = False
    days: int = 1
    platform_results: Dict[str, Union[PlatformResult, HistoricalPlatformResult]] = Field(default_factory=dict)
    summary: VisibilitySummary = Field(default_factory=VisibilitySummary)
    user: Optional[UserInfo] = None
