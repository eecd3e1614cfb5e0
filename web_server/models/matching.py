from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.genome import Genome


SkillKind = Literal["skill", "interest", "strength"]
Side = Literal["a", "b"]


class NormalizedSkill(BaseModel):
    name: str
    code: str
    proficiency: float
    kind: SkillKind = "skill"


class Advice(BaseModel):
    """An advisory note attached to a comparison or a team analysis."""
    type: str
    title: str
    description: str
    priority: Literal["high", "medium", "low"]


# ── Pairwise similarity ─────────────────────────────────────────────────


class CommonSkill(BaseModel):
    name: str
    proficiency_a: float
    proficiency_b: float
    difference: float


class CommonStrength(BaseModel):
    name: str
    proficiency_a: float
    proficiency_b: float


class SkillGap(BaseModel):
    skill: str
    missing_in: Side
    proficiency: float


class SimilarityDetails(BaseModel):
    common_skills: list[CommonSkill] = []
    unique_skills_a: list[NormalizedSkill] = []
    unique_skills_b: list[NormalizedSkill] = []
    common_strengths: list[CommonStrength] = []
    skill_gaps: list[SkillGap] = []
    recommendations: list[Advice] = []
    error: Optional[str] = None


class SimilarityResult(BaseModel):
    overall_score: float = 0.0
    skills_score: float = 0.0
    strengths_score: float = 0.0
    experience_score: float = 0.0
    education_score: float = 0.0
    details: SimilarityDetails = Field(default_factory=SimilarityDetails)


# ── Complementarity ─────────────────────────────────────────────────────


class ComplementaryPair(BaseModel):
    skill: str
    proficiency_a: float
    proficiency_b: float
    score: float
    stronger: Side


class ComplementarityResult(BaseModel):
    complementarity_score: float = 0.0
    pairs: list[ComplementaryPair] = []
    total_pairs: int = 0
    error: Optional[str] = None


class ComparisonResponse(BaseModel):
    username_a: str
    username_b: str
    similarity: SimilarityResult
    complementarity: ComplementarityResult


# ── Team composition ────────────────────────────────────────────────────


class SkillCoverage(BaseModel):
    skill: str
    coverage: int
    max_proficiency: float


class UniqueSkill(BaseModel):
    skill: str
    owner: Optional[str] = None
    proficiency: float


class TeamComposition(BaseModel):
    well_covered: list[SkillCoverage] = []
    poorly_covered: list[SkillCoverage] = []
    unique_skills: list[UniqueSkill] = []
    recommendations: list[Advice] = []
    total_skills: int = 0
    avg_skills_per_person: float = 0.0
    error: Optional[str] = None


# ── Recommendations ─────────────────────────────────────────────────────


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate: Genome
    similarity: SimilarityResult
    justifications: list[str]


class RecommendationResponse(BaseModel):
    success: bool
    data: list[Recommendation] = []
    target_username: Optional[str] = None
    total_candidates: int = 0
    search_queries_used: list[str] = []
    error: Optional[str] = None


class RecommendationOptions(BaseModel):
    limit: int = Field(10, ge=1)
    min_similarity_score: float = Field(0.3, ge=0.0, le=1.0)
    extra_search_queries: list[str] = []
    exclude_usernames: list[str] = []
