import logging

from models.genome import Genome
from models.matching import ComplementarityResult, ComplementaryPair
from services.skills import by_code, extract_skills

logger = logging.getLogger(__name__)

STRONG_SKILL_THRESHOLD = 0.7
PROFICIENCY_SPREAD_THRESHOLD = 0.4


def calculate_complementarity(
    profile_a: "Genome | dict | None",
    profile_b: "Genome | dict | None",
) -> ComplementarityResult:
    """Find skills where one side is strong and the other is weak or missing."""
    try:
        map_a = by_code(extract_skills(profile_a))
        map_b = by_code(extract_skills(profile_b))

        pairs: list[ComplementaryPair] = []
        for code, skill_a in map_a.items():
            skill_b = map_b.get(code)
            if skill_b is None:
                if skill_a.proficiency > STRONG_SKILL_THRESHOLD:
                    pairs.append(ComplementaryPair(
                        skill=skill_a.name,
                        proficiency_a=skill_a.proficiency,
                        proficiency_b=0.0,
                        score=skill_a.proficiency,
                        stronger="a",
                    ))
                continue
            spread = abs(skill_a.proficiency - skill_b.proficiency)
            if spread > PROFICIENCY_SPREAD_THRESHOLD:
                pairs.append(ComplementaryPair(
                    skill=skill_a.name,
                    proficiency_a=skill_a.proficiency,
                    proficiency_b=skill_b.proficiency,
                    score=spread,
                    stronger="a" if skill_a.proficiency > skill_b.proficiency else "b",
                ))

        for code, skill_b in map_b.items():
            if code not in map_a and skill_b.proficiency > STRONG_SKILL_THRESHOLD:
                pairs.append(ComplementaryPair(
                    skill=skill_b.name,
                    proficiency_a=0.0,
                    proficiency_b=skill_b.proficiency,
                    score=skill_b.proficiency,
                    stronger="b",
                ))

        average = sum(p.score for p in pairs) / len(pairs) if pairs else 0.0
        pairs.sort(key=lambda p: p.score, reverse=True)

        return ComplementarityResult(
            complementarity_score=max(0.0, min(1.0, average)),
            pairs=pairs,
            total_pairs=len(pairs),
        )
    except Exception as exc:
        logger.warning("Complementarity calculation failed: %s", exc)
        return ComplementarityResult(error=str(exc))
