"""Tests for skill extraction and the pairwise similarity engine.

Run with: pytest web_server/test_similarity.py
"""
import pytest

from models.genome import Genome
from services.similarity import (
    SimilarityWeights,
    calculate_basic_similarity,
    calculate_similarity,
    compare_experience,
)
from services.skills import derive_code, extract_skills, extract_strengths


def create_example_genome(
    username: str,
    skills: list = (),
    strengths: list = (),
    interests: list = (),
    completion: float = 0.8,
    weight: float = 100.0,
) -> Genome:
    def items(entries):
        return [e if isinstance(e, dict) else {"name": e} for e in entries]

    return Genome.from_raw({
        "person": {
            "username": username,
            "name": username.title(),
            "professionalHeadline": "Software Engineer",
            "completion": completion,
            "weight": weight,
        },
        "skills": items(skills),
        "strengths": items(strengths),
        "interests": items(interests),
    })


# ── Extraction ───────────────────────────────────────────────────────────


def test_code_is_lowercased_slug_of_name():
    assert derive_code("Machine   Learning") == "machine-learning"
    assert derive_code("Python", code="py-01") == "py-01"
    assert derive_code("Python", code="") == "python"


def test_positional_fallback_decays_with_list_position():
    genome = create_example_genome("alice", skills=["A", "B", "C", "D"])
    proficiencies = [s.proficiency for s in extract_skills(genome)]
    assert proficiencies[0] == pytest.approx(0.8)
    assert proficiencies[3] == pytest.approx(0.5)
    assert proficiencies == sorted(proficiencies, reverse=True)


def test_explicit_weight_then_proficiency_then_evidence():
    genome = create_example_genome("alice", skills=[
        {"name": "Weighted", "weight": 3.5},
        {"name": "Rated", "proficiency": "0.65"},
        {"name": "Evidenced", "media": [{}, {}]},
        {"name": "Heavily evidenced", "media": [{}] * 8},
        {"name": "Counted", "evidenceCount": 1},
    ])
    by_name = {s.name: s.proficiency for s in extract_skills(genome)}
    assert by_name["Weighted"] == 1.0
    assert by_name["Rated"] == pytest.approx(0.65)
    assert by_name["Evidenced"] == pytest.approx(0.7)
    assert by_name["Heavily evidenced"] == pytest.approx(0.9)
    assert by_name["Counted"] == pytest.approx(0.6)


def test_unparseable_explicit_value_resolves_to_zero():
    genome = create_example_genome("alice", skills=[
        {"name": "Garbled", "weight": "lots"},
        {"name": "Not a number", "proficiency": float("nan")},
    ])
    assert [s.proficiency for s in extract_skills(genome)] == [0.0, 0.0]


def test_interests_and_strengths_are_folded_in():
    genome = create_example_genome(
        "alice",
        skills=["Python"],
        interests=["Chess", "Go", "Poker"],
        strengths=[{"name": "Leadership", "weight": 0.9}, "Patience"],
    )
    skills = extract_skills(genome)
    kinds = [s.kind for s in skills]
    assert kinds == ["skill", "interest", "interest", "interest", "strength", "strength"]

    interests = [s.proficiency for s in skills if s.kind == "interest"]
    assert interests[0] == pytest.approx(0.7)
    assert interests[2] == pytest.approx(0.5)

    strengths = {s.name: s.proficiency for s in skills if s.kind == "strength"}
    assert strengths == {"Leadership": 0.9, "Patience": 0.0}


def test_extraction_tolerates_missing_data():
    assert extract_skills(None) == []
    assert extract_skills({}) == []
    assert extract_strengths({"username": "stub"}) == []
    assert extract_skills({"skills": [{"weight": 0.5}, {"name": "Rust"}]})[0].name == "Rust"


# ── Similarity ───────────────────────────────────────────────────────────


def test_case_insensitive_common_skill():
    a = create_example_genome("alice", skills=[{"name": "Python", "weight": 0.9}, {"name": "SQL", "weight": 0.6}])
    b = create_example_genome("bob", skills=[{"name": "python", "weight": 0.5}, {"name": "Go", "weight": 0.8}])

    result = calculate_similarity(a, b)

    assert result.skills_score == pytest.approx(0.5)
    assert len(result.details.common_skills) == 1
    common = result.details.common_skills[0]
    assert common.difference == pytest.approx(0.4)
    assert [s.code for s in result.details.unique_skills_a] == ["sql"]
    assert [s.code for s in result.details.unique_skills_b] == ["go"]
    assert [(g.skill, g.missing_in) for g in result.details.skill_gaps] == [("Go", "a")]


def test_empty_profiles_score_zero_not_nan():
    result = calculate_similarity(Genome(), Genome())
    assert result.skills_score == 0.0
    assert result.strengths_score == 0.0
    assert result.details.error is None


def test_identical_skill_lists_score_one():
    skills = ["Python", "FastAPI", "MongoDB"]
    result = calculate_similarity(
        create_example_genome("alice", skills=skills),
        create_example_genome("bob", skills=skills),
    )
    assert result.skills_score == 1.0


def test_overall_is_weighted_sum_and_bounded():
    a = create_example_genome("alice", skills=["Python", "Go"], strengths=["Leadership"], completion=0.9, weight=50)
    b = create_example_genome("bob", skills=["Python", "Rust"], strengths=["Leadership"], completion=0.4, weight=200)
    r = calculate_similarity(a, b)

    expected = 0.4 * r.skills_score + 0.3 * r.strengths_score + 0.2 * r.experience_score + 0.1 * r.education_score
    assert r.overall_score == pytest.approx(expected)
    assert r.education_score == 0.5
    for score in (r.overall_score, r.skills_score, r.strengths_score, r.experience_score, r.education_score):
        assert 0.0 <= score <= 1.0


def test_custom_weights_do_not_leak_into_later_calls():
    a = create_example_genome("alice", skills=["Python", "Go"])
    b = create_example_genome("bob", skills=["Python", "Rust"])

    skills_only = calculate_similarity(a, b, SimilarityWeights(skills=1.0, strengths=0, experience=0, education=0))
    assert skills_only.overall_score == pytest.approx(skills_only.skills_score)

    r = calculate_similarity(a, b)
    assert r.overall_score == pytest.approx(0.4 * r.skills_score + 0.2 * r.experience_score + 0.05)


@pytest.mark.parametrize("skills_a,skills_b", [
    (["Python", "SQL"], ["python", "Go"]),
    (["A", "B", "C"], []),
    (["Python", "python", "PYTHON"], ["Python"]),
    ([{"name": "Python", "code": "x"}], [{"name": "Java", "code": "x"}, "Python"]),
])
def test_scores_are_symmetric(skills_a, skills_b):
    a = create_example_genome("alice", skills=skills_a, strengths=["Focus"], completion=0.3, weight=10)
    b = create_example_genome("bob", skills=skills_b, strengths=["Focus", "Grit"], completion=0.7, weight=40)
    ab = calculate_similarity(a, b)
    ba = calculate_similarity(b, a)
    assert ab.overall_score == ba.overall_score
    assert ab.skills_score == ba.skills_score
    assert ab.strengths_score == ba.strengths_score


def test_calculation_is_deterministic():
    a = create_example_genome("alice", skills=["Python", "Go", "Rust"], interests=["Chess"])
    b = create_example_genome("bob", skills=["Go", "Kotlin"], strengths=["Grit"])
    assert calculate_similarity(a, b).model_dump_json() == calculate_similarity(a, b).model_dump_json()


def test_experience_proxy():
    a = Genome(completion=1.0, weight=100)
    b = Genome(completion=0.5, weight=50)
    assert compare_experience(a, b) == pytest.approx((0.5 + 0.5) / 2)
    assert compare_experience(a, Genome(completion=1.0)) == pytest.approx(0.5)


def test_malformed_profile_yields_error_result():
    result = calculate_similarity({"skills": "not a list"}, Genome())
    assert result.overall_score == 0.0
    assert result.details.error


# ── Advice ───────────────────────────────────────────────────────────────


def _advice_types(result):
    return [a.type for a in result.details.recommendations]


def test_high_impact_gap_and_collaboration_advice():
    a = create_example_genome("alice", skills=[{"name": "Kubernetes", "weight": 0.95}, "Python"])
    b = create_example_genome("bob", skills=["Python", {"name": "Figma", "weight": 0.5}])
    result = calculate_similarity(a, b)
    types = _advice_types(result)
    assert "skill_development" in types
    assert "collaboration" in types
    advice = next(x for x in result.details.recommendations if x.type == "skill_development")
    assert advice.priority == "high"
    assert "Kubernetes" in advice.description


def test_medium_gap_advice_names_at_most_three_skills():
    strong = [{"name": n, "weight": 0.75} for n in ("A", "B", "C", "D")]
    result = calculate_similarity(create_example_genome("alice", skills=strong), create_example_genome("bob"))
    advice = next(x for x in result.details.recommendations if x.type == "skill_development")
    assert advice.priority == "medium"
    assert advice.description.endswith("A, B, C")


def test_mentorship_and_diversity_advice():
    a = create_example_genome("alice", skills=["A", "B", "C", "D"], completion=1.0, weight=0)
    b = create_example_genome("bob", skills=["E", "F", "G", "H"], completion=0.1, weight=0)
    types = _advice_types(calculate_similarity(a, b))
    assert "mentorship" in types
    assert "diversity" in types


def test_skills_alignment_advice():
    skills = [f"skill {i}" for i in range(7)]
    result = calculate_similarity(create_example_genome("alice", skills=skills), create_example_genome("bob", skills=skills))
    assert "skills_overlap" in _advice_types(result)


# ── Basic similarity ─────────────────────────────────────────────────────


def test_basic_similarity_is_jaccard_of_names():
    a = create_example_genome("alice", skills=["Python", "SQL", "Go"])
    b = create_example_genome("bob", skills=["python", "Go", "Rust", "C"])
    assert calculate_basic_similarity(a, b) == pytest.approx(2 / 5)
    assert calculate_basic_similarity(a, Genome()) == 0.0
