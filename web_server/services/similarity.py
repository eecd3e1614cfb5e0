import logging
from dataclasses import dataclass, field
from typing import Optional

from models.genome import Genome, as_genome
from models.matching import (
    Advice,
    CommonSkill,
    CommonStrength,
    NormalizedSkill,
    SimilarityDetails,
    SimilarityResult,
    SkillGap,
)
from services.skills import by_code, extract_skills, extract_strengths

logger = logging.getLogger(__name__)

GAP_THRESHOLD = 0.7
HIGH_IMPACT_GAP_THRESHOLD = 0.8

# No education data to compare yet; every pair gets the neutral midpoint
NEUTRAL_EDUCATION_SCORE = 0.5


# ── Helpers ──────────────────────────────────────────────────────────────

def _overlap_ratio(common: int, size_a: int, size_b: int) -> float:
    total = size_a + size_b
    if total == 0:
        return 0.0
    return min(1.0, (2 * common) / total)


def _jaccard(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


# ── Dimension scores ────────────────────────────────────────────────────

@dataclass
class SkillComparison:
    score: float
    common: list[CommonSkill] = field(default_factory=list)
    unique_a: list[NormalizedSkill] = field(default_factory=list)
    unique_b: list[NormalizedSkill] = field(default_factory=list)
    gaps: list[SkillGap] = field(default_factory=list)


def compare_skills(skills_a: list[NormalizedSkill], skills_b: list[NormalizedSkill]) -> SkillComparison:
    map_a = by_code(skills_a)
    map_b = by_code(skills_b)

    common: list[CommonSkill] = []
    unique_a: list[NormalizedSkill] = []
    for code, skill_a in map_a.items():
        skill_b = map_b.get(code)
        if skill_b is None:
            unique_a.append(skill_a)
            continue
        common.append(CommonSkill(
            name=skill_a.name,
            proficiency_a=skill_a.proficiency,
            proficiency_b=skill_b.proficiency,
            difference=abs(skill_a.proficiency - skill_b.proficiency),
        ))
    unique_b = [s for code, s in map_b.items() if code not in map_a]

    gaps = [
        SkillGap(skill=s.name, missing_in="b", proficiency=s.proficiency)
        for s in unique_a if s.proficiency > GAP_THRESHOLD
    ]
    gaps += [
        SkillGap(skill=s.name, missing_in="a", proficiency=s.proficiency)
        for s in unique_b if s.proficiency > GAP_THRESHOLD
    ]

    return SkillComparison(
        score=_overlap_ratio(len(common), len(map_a), len(map_b)),
        common=common,
        unique_a=unique_a,
        unique_b=unique_b,
        gaps=gaps,
    )


def compare_strengths(
    strengths_a: list[NormalizedSkill], strengths_b: list[NormalizedSkill]
) -> tuple[float, list[CommonStrength]]:
    map_a = by_code(strengths_a)
    map_b = by_code(strengths_b)
    common = [
        CommonStrength(name=s.name, proficiency_a=s.proficiency, proficiency_b=map_b[code].proficiency)
        for code, s in map_a.items()
        if code in map_b
    ]
    return _overlap_ratio(len(common), len(map_a), len(map_b)), common


def compare_experience(a: Genome, b: Genome) -> float:
    """Approximate: profile completion and Torre weight stand in for tenure,
    which the genome does not expose in a comparable form."""
    completion_similarity = 1 - abs(_clamp01(a.completion or 0) - _clamp01(b.completion or 0))
    weight_a = a.weight or 0
    weight_b = b.weight or 0
    if weight_a > 0 and weight_b > 0:
        weight_similarity = min(weight_a, weight_b) / max(weight_a, weight_b)
    else:
        weight_similarity = 0.0
    return _clamp01((completion_similarity + weight_similarity) / 2)


def compare_education(a: Genome, b: Genome) -> float:
    return NEUTRAL_EDUCATION_SCORE


# ── Advice ───────────────────────────────────────────────────────────────

def _comparison_advice(result: SimilarityResult) -> list[Advice]:
    details = result.details
    advice: list[Advice] = []

    if result.overall_score > 0.8:
        advice.append(Advice(
            type="high_similarity",
            title="Highly Similar Professionals",
            description="These professionals have very similar profiles and could be ideal "
                        "for similar roles or peer collaboration",
            priority="high",
        ))

    high_impact = [g.skill for g in details.skill_gaps if g.proficiency > HIGH_IMPACT_GAP_THRESHOLD]
    if high_impact:
        advice.append(Advice(
            type="skill_development",
            title="High-Impact Skill Development",
            description=f"Consider developing expertise in: {', '.join(high_impact)}",
            priority="high",
        ))
    elif details.skill_gaps:
        names = ", ".join(g.skill for g in details.skill_gaps[:3])
        advice.append(Advice(
            type="skill_development",
            title="Skill Development Opportunities",
            description=f"Consider developing skills in: {names}",
            priority="medium",
        ))

    if details.unique_skills_a and details.unique_skills_b:
        advice.append(Advice(
            type="collaboration",
            title="Complementary Skills Partnership",
            description="These professionals have complementary skills that could create "
                        "a strong collaborative team",
            priority="medium",
        ))

    if result.experience_score < 0.4:
        advice.append(Advice(
            type="mentorship",
            title="Mentorship Opportunity",
            description="Significant experience gap suggests potential for mentorship relationship",
            priority="medium",
        ))

    if result.skills_score > 0.6 and len(details.common_skills) > 5:
        advice.append(Advice(
            type="skills_overlap",
            title="Strong Skills Alignment",
            description=f"{len(details.common_skills)} shared skills indicate strong professional alignment",
            priority="medium",
        ))

    if result.skills_score < 0.3 and len(details.unique_skills_a) > 3 and len(details.unique_skills_b) > 3:
        advice.append(Advice(
            type="diversity",
            title="Diverse Skill Sets",
            description="Very different skill sets could bring valuable diversity to a team or project",
            priority="low",
        ))

    return advice


# ── Scoring ──────────────────────────────────────────────────────────────

@dataclass
class SimilarityWeights:
    skills: float = 0.4
    strengths: float = 0.3
    experience: float = 0.2
    education: float = 0.1


def calculate_similarity(
    profile_a: "Genome | dict | None",
    profile_b: "Genome | dict | None",
    weights: Optional[SimilarityWeights] = None,
) -> SimilarityResult:
    """Score two profiles on skills, strengths, experience and education.

    Never raises: a malformed profile yields a zero result with
    `details.error` set.
    """
    try:
        weights = weights or SimilarityWeights()
        a = as_genome(profile_a)
        b = as_genome(profile_b)

        skills = compare_skills(extract_skills(a), extract_skills(b))
        strengths_score, common_strengths = compare_strengths(extract_strengths(a), extract_strengths(b))
        experience_score = compare_experience(a, b)
        education_score = compare_education(a, b)

        result = SimilarityResult(
            overall_score=(
                weights.skills * skills.score
                + weights.strengths * strengths_score
                + weights.experience * experience_score
                + weights.education * education_score
            ),
            skills_score=skills.score,
            strengths_score=strengths_score,
            experience_score=experience_score,
            education_score=education_score,
            details=SimilarityDetails(
                common_skills=skills.common,
                unique_skills_a=skills.unique_a,
                unique_skills_b=skills.unique_b,
                common_strengths=common_strengths,
                skill_gaps=skills.gaps,
            ),
        )
        result.details.recommendations = _comparison_advice(result)
        return result
    except Exception as exc:
        logger.warning("Similarity calculation failed: %s", exc)
        return SimilarityResult(details=SimilarityDetails(error=str(exc)))


def calculate_basic_similarity(profile_a: "Genome | dict | None", profile_b: "Genome | dict | None") -> float:
    """Cheap Jaccard overlap of lowercased skill names, used as a pre-filter."""
    names_a = {s.name.lower() for s in extract_skills(profile_a)}
    names_b = {s.name.lower() for s in extract_skills(profile_b)}
    return _jaccard(names_a, names_b)
