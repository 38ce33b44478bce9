"""Peer match-scoring engine.

Compares one user's learn-skills against every other user's teach-skills,
scores each candidate with a weighted linear model and returns a ranked
list. Everything here is pure and synchronous: callers hand in a snapshot
of the user directory and nothing in it is mutated.
"""
import logging
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
from typing import Any, Optional, Union

from pydantic import ValidationError

from models.matching import (
    DEFAULT_MATCH_LIMIT,
    DEFAULT_MENTOR_RATING,
    MatchedSkill,
    MatchResult,
    MentorSummary,
)
from models.user import LEVEL_RANK, Skill, User

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "Other"
MUTUAL_MULTIPLIER = 1.2
NO_OVERLAP_MULTIPLIER = 0.3

UserLike = Union[User, Mapping[str, Any]]
UserDirectorySnapshot = Union[Mapping[str, UserLike], Iterable[UserLike]]


class MalformedUserError(ValueError):
    """A directory record could not be read as a User."""


# ── Skill names ──────────────────────────────────────────────────────────

_WHITESPACE_RE = re.compile(r"\s+")
# Unicode \w: accented letters survive ("Español" stays "español").
_NON_WORD_RE = re.compile(r"[^\w\s]")


def normalize_skill_name(name: str) -> str:
    """Lower-case, trim, collapse whitespace and drop punctuation."""
    collapsed = _WHITESPACE_RE.sub(" ", name.lower().strip())
    return _NON_WORD_RE.sub("", collapsed)


def skills_match(first: str, second: str) -> bool:
    """True when the normalized names are equal or one contains the other.

    Deliberately permissive: "Python" matches "Python Programming".
    """
    a = normalize_skill_name(first)
    b = normalize_skill_name(second)
    return a == b or a in b or b in a


# ── Levels ───────────────────────────────────────────────────────────────

def level_rank(level: str) -> int:
    return LEVEL_RANK.get(level, 0)


def levels_compatible(learner_level: str, teacher_level: str) -> bool:
    """A teacher must be strictly above the learner; peers do not count."""
    return level_rank(teacher_level) > level_rank(learner_level)


# ── Mutuality ────────────────────────────────────────────────────────────

def _teaches_what_other_wants(teacher: User, learner: User) -> bool:
    return any(
        skills_match(teach_skill.name, learn_skill.name)
        for teach_skill in teacher.skills_teach
        for learn_skill in learner.skills_learn
    )


def has_mutual_match(user_a: User, user_b: User) -> bool:
    return _teaches_what_other_wants(user_a, user_b) and _teaches_what_other_wants(user_b, user_a)


# ── Features ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MatchFeatures:
    exact_skill_matches: int = 0
    compatible_level_matches: int = 0
    mutual_match: int = 0
    current_user_skill_count: int = 0
    other_user_skill_count: int = 0
    current_user_credits: int = 0
    other_user_credits: int = 0
    shared_categories: int = 0
    total_categories: int = 0
    current_user_badges: int = 0
    other_user_badges: int = 0


@dataclass(frozen=True)
class ScoreWeights:
    exact_skill_matches: float = 15
    compatible_level_matches: float = 8
    mutual_match: float = 12
    current_user_skill_count: float = 0.5
    other_user_skill_count: float = 0.3
    current_user_credits: float = 0.1
    other_user_credits: float = 0.1
    shared_categories: float = 3
    current_user_badges: float = 2
    other_user_badges: float = 2


DEFAULT_WEIGHTS = ScoreWeights()


def _categories(user: User) -> set[str]:
    return {skill.category for skill in (*user.skills_teach, *user.skills_learn)}


def extract_match_features(current_user: User, other_user: User) -> MatchFeatures:
    """Flatten a (learner, candidate teacher) pair into scorer inputs.

    Skill matches are counted per (learn-skill, teach-skill) pair, so one
    learn-skill matching two teach-skills counts twice.
    """
    exact = 0
    compatible = 0
    for learner_skill in current_user.skills_learn:
        for teacher_skill in other_user.skills_teach:
            if skills_match(learner_skill.name, teacher_skill.name):
                exact += 1
                if levels_compatible(learner_skill.level, teacher_skill.level):
                    compatible += 1

    current_categories = _categories(current_user)
    other_categories = _categories(other_user)

    return MatchFeatures(
        exact_skill_matches=exact,
        compatible_level_matches=compatible,
        mutual_match=int(has_mutual_match(current_user, other_user)),
        current_user_skill_count=len(current_user.skills_teach) + len(current_user.skills_learn),
        other_user_skill_count=len(other_user.skills_teach) + len(other_user.skills_learn),
        current_user_credits=current_user.credits,
        other_user_credits=other_user.credits,
        shared_categories=len(current_categories & other_categories),
        total_categories=len(current_categories | other_categories),
        current_user_badges=len(current_user.badges),
        other_user_badges=len(other_user.badges),
    )


# ── Scoring ──────────────────────────────────────────────────────────────

def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_match_score(features: MatchFeatures, weights: ScoreWeights = DEFAULT_WEIGHTS) -> int:
    """Weighted sum of features, adjusted and clamped to 0..100."""
    raw = sum(
        getattr(features, weight.name) * getattr(weights, weight.name)
        for weight in fields(weights)
    )
    if features.mutual_match:
        raw *= MUTUAL_MULTIPLIER
    # Unreachable from find_matches, which drops zero-overlap candidates,
    # but still applies when the scorer is called on its own.
    if features.exact_skill_matches == 0:
        raw *= NO_OVERLAP_MULTIPLIER
    return min(100, max(0, _round_half_up(raw)))


def get_compatibility_tag(score: int) -> str:
    if score >= 90:
        return "High Match"
    if score >= 75:
        return "Good Match"
    if score >= 60:
        return "Fair Match"
    return "Potential Match"


# ── Matched skill details ────────────────────────────────────────────────

def _resolve_category(learner_skill: Skill, teacher_skill: Skill) -> str:
    for category in (teacher_skill.category, learner_skill.category):
        if category:
            return category
    return FALLBACK_CATEGORY


def matched_skill_details(current_user: User, other_user: User) -> list[MatchedSkill]:
    return [
        MatchedSkill(
            skill_name=teacher_skill.name,
            mentor_level=teacher_skill.level,
            learner_level=learner_skill.level,
            category=_resolve_category(learner_skill, teacher_skill),
        )
        for learner_skill in current_user.skills_learn
        for teacher_skill in other_user.skills_teach
        if skills_match(learner_skill.name, teacher_skill.name)
    ]


def primary_category(details: list[MatchedSkill]) -> str:
    """Most frequent category; the first one seen wins a tie."""
    counts: dict[str, int] = {}
    for detail in details:
        counts[detail.category] = counts.get(detail.category, 0) + 1
    if not counts:
        return FALLBACK_CATEGORY
    return max(counts, key=counts.__getitem__)


# ── Ranking ──────────────────────────────────────────────────────────────

def _as_user(record: UserLike) -> User:
    if isinstance(record, User):
        return record
    try:
        return User.model_validate(record)
    except ValidationError as e:
        raise MalformedUserError(f"Malformed user record: {e}") from e


def _is_same_user(candidate: User, requester: User) -> bool:
    return candidate.id == requester.id or candidate.email.casefold() == requester.email.casefold()


def find_matches(
    current_user: UserLike,
    all_users: UserDirectorySnapshot,
    limit: int = DEFAULT_MATCH_LIMIT,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
    ratings: Optional[Mapping[str, float]] = None,
) -> list[MatchResult]:
    """Rank every teacher in ``all_users`` for ``current_user``.

    ``all_users`` is a read-only snapshot, either a mapping of id to user
    or a plain iterable of users. ``ratings`` optionally maps mentor ids to
    a rating; mentors without one get DEFAULT_MENTOR_RATING.

    Results are ordered by score, then by number of matched skills, both
    descending, and truncated to ``limit``.
    """
    if limit < 0:
        raise ValueError("limit must be non-negative")

    requester = _as_user(current_user)
    if not requester.skills_learn:
        return []

    records = all_users.values() if isinstance(all_users, Mapping) else all_users
    ratings = ratings or {}

    matches: list[MatchResult] = []
    considered = 0
    for record in records:
        candidate = _as_user(record)
        if _is_same_user(candidate, requester) or not candidate.skills_teach:
            continue
        considered += 1

        details = matched_skill_details(requester, candidate)
        if not details:
            continue

        score = calculate_match_score(extract_match_features(requester, candidate), weights)
        matches.append(MatchResult(
            id=f"match_{requester.id}_{candidate.id}",
            mentor_summary=MentorSummary(
                id=candidate.id,
                name=candidate.name,
                email=candidate.email,
                avatar=candidate.avatar,
                rating=ratings.get(candidate.id, DEFAULT_MENTOR_RATING),
            ),
            matched_skills=details,
            match_score=score,
            is_mutual=has_mutual_match(requester, candidate),
            primary_category=primary_category(details),
        ))

    matches.sort(key=lambda m: (m.match_score, len(m.matched_skills)), reverse=True)
    logger.debug(
        "Matched %d of %d teacher candidates for user %s",
        len(matches), considered, requester.id,
    )
    return matches[:limit]
