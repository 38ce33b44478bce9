from models.matching import (
    EnrichedMatch,
    MatchInsight,
    MatchResult,
    Priority,
    ProfileStrength,
    RecommendedAction,
    UserInsights,
    UserStatistics,
)
from models.user import User
from services.matcher import get_compatibility_tag

HIGH_COMPATIBILITY_SCORE = 90
SCHEDULE_SESSION_SCORE = 80
WEAK_PROFILE_MAX_SKILLS = 3
STRONG_PROFILE_MIN_SKILLS = 10
HIGH_CREDIBILITY_CREDITS = 100


# ── Per-match ────────────────────────────────────────────────────────────

def generate_match_insights(match: MatchResult) -> list[MatchInsight]:
    insights: list[MatchInsight] = []

    if match.is_mutual:
        insights.append(MatchInsight(
            type="mutual_benefit",
            message="Perfect mutual exchange opportunity!",
            priority=Priority.high,
        ))

    if match.match_score >= HIGH_COMPATIBILITY_SCORE:
        insights.append(MatchInsight(
            type="high_compatibility",
            message="Exceptional skill alignment detected",
            priority=Priority.high,
        ))

    if len(match.matched_skills) > 1:
        insights.append(MatchInsight(
            type="multiple_skills",
            message=f"Can help with {len(match.matched_skills)} different skills",
            priority=Priority.medium,
        ))

    return insights


def recommended_actions(match: MatchResult) -> list[RecommendedAction]:
    actions: list[RecommendedAction] = []

    if match.match_score >= SCHEDULE_SESSION_SCORE:
        actions.append(RecommendedAction(
            action="schedule_session", label="Schedule a session now", priority=Priority.high,
        ))

    if match.is_mutual:
        actions.append(RecommendedAction(
            action="propose_exchange", label="Propose skill exchange", priority=Priority.high,
        ))

    actions.append(RecommendedAction(
        action="view_profile", label="View full profile", priority=Priority.medium,
    ))
    return actions


def enrich_match(match: MatchResult) -> EnrichedMatch:
    """Attach the compatibility tag, insights and suggested next steps."""
    return EnrichedMatch(
        **match.model_dump(),
        compatibility_tag=get_compatibility_tag(match.match_score),
        insights=generate_match_insights(match),
        recommended_actions=recommended_actions(match),
    )


# ── Per-user ─────────────────────────────────────────────────────────────

def generate_user_insights(user: User) -> UserInsights:
    """Profile strength and advice based on how complete a profile is."""
    stats = UserStatistics(
        teachable_skills=len(user.skills_teach),
        learnable_skills=len(user.skills_learn),
        total_skills=len(user.skills_teach) + len(user.skills_learn),
        credits=user.credits,
        badges=len(user.badges),
    )

    strength = ProfileStrength.good
    recommendations: list[str] = []

    if stats.total_skills < WEAK_PROFILE_MAX_SKILLS:
        strength = ProfileStrength.weak
        recommendations.append("Add more skills to your profile to get better matches")
    elif stats.total_skills > STRONG_PROFILE_MIN_SKILLS:
        strength = ProfileStrength.strong

    if not user.skills_teach:
        recommendations.append("Add skills you can teach to help others")
    if not user.skills_learn:
        recommendations.append("Add skills you want to learn")

    if user.credits > HIGH_CREDIBILITY_CREDITS:
        recommendations.append("Consider mentoring more sessions - you have high credibility!")

    return UserInsights(profile_strength=strength, recommendations=recommendations, statistics=stats)
