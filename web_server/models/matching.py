from datetime import datetime
from enum import Enum

from pydantic import ConfigDict, Field

from models.user import CamelModel

DEFAULT_MENTOR_RATING = 4.5
DEFAULT_MATCH_LIMIT = 20
MAX_MATCH_LIMIT = 50


class Priority(str, Enum):
    high = "high"
    medium = "medium"


class ProfileStrength(str, Enum):
    weak = "weak"
    good = "good"
    strong = "strong"


# ── Engine output ────────────────────────────────────────────────────────

class MatchedSkill(CamelModel):
    model_config = ConfigDict(frozen=True)

    skill_name: str
    mentor_level: str
    learner_level: str
    category: str


class MentorSummary(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    avatar: str
    rating: float = DEFAULT_MENTOR_RATING


class MatchResult(CamelModel):
    """One ranked teacher candidate. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    id: str
    mentor_summary: MentorSummary
    matched_skills: list[MatchedSkill]
    match_score: int = Field(ge=0, le=100)
    is_mutual: bool
    primary_category: str


# ── Presentation ─────────────────────────────────────────────────────────

class MatchInsight(CamelModel):
    type: str
    message: str
    priority: Priority


class RecommendedAction(CamelModel):
    action: str
    label: str
    priority: Priority


class EnrichedMatch(MatchResult):
    compatibility_tag: str
    insights: list[MatchInsight] = []
    recommended_actions: list[RecommendedAction] = []


class UserStatistics(CamelModel):
    teachable_skills: int
    learnable_skills: int
    total_skills: int
    credits: int
    badges: int


class UserInsights(CamelModel):
    profile_strength: ProfileStrength
    recommendations: list[str]
    statistics: UserStatistics


# ── Request / response schemas ──────────────────────────────────────────

class FindMatchesRequest(CamelModel):
    """Body of POST /matches/find. userId may be an id or an email."""
    user_id: str = Field(min_length=1)
    limit: int = Field(DEFAULT_MATCH_LIMIT, ge=1, le=MAX_MATCH_LIMIT)


class MatchListData(CamelModel):
    matches: list[EnrichedMatch]
    total_matches: int
    timestamp: datetime


class MatchResponse(CamelModel):
    success: bool = True
    data: MatchListData


class InsightsData(CamelModel):
    user_id: str
    insights: UserInsights
    generated_at: datetime


class InsightsResponse(CamelModel):
    success: bool = True
    data: InsightsData
