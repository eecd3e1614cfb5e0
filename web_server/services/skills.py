import math
import re
from typing import Any, Optional

from models.genome import Genome, GenomeItem, as_genome
from models.matching import NormalizedSkill

_WHITESPACE = re.compile(r"\s+")

# Positional fallback ranges: (ceiling, decay, floor)
SKILL_POSITION_RANGE = (0.8, 0.4, 0.3)
INTEREST_POSITION_RANGE = (0.7, 0.3, 0.4)


# ── Helpers ──────────────────────────────────────────────────────────────

def derive_code(name: str, code: Any = None) -> str:
    """Deduplication key for a skill: the explicit code, else a slug of the name."""
    if code is not None and code != "":
        return str(code)
    return _WHITESPACE.sub("-", name.lower())


def _to_proficiency(value: Any) -> float:
    # Present but unparseable resolves to 0, never to a default
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(num):
        return 0.0
    return max(0.0, min(1.0, num))


def _explicit_proficiency(item: GenomeItem) -> Optional[float]:
    if item.weight is not None:
        return _to_proficiency(item.weight)
    if item.proficiency is not None:
        return _to_proficiency(item.proficiency)
    return None


def _evidence_count(item: GenomeItem) -> int:
    if item.media:
        return len(item.media)
    return item.evidence_count or 0


def _positional(index: int, total: int, bounds: tuple[float, float, float]) -> float:
    ceiling, decay, floor = bounds
    return max(floor, ceiling - decay * (index / total))


def _normalize(item: GenomeItem, proficiency: float, kind: str) -> NormalizedSkill:
    return NormalizedSkill(
        name=item.name,
        code=derive_code(item.name, item.code),
        proficiency=proficiency,
        kind=kind,
    )


# ── Extraction ───────────────────────────────────────────────────────────

def extract_skills(profile: "Genome | dict | None") -> list[NormalizedSkill]:
    """Flatten a profile's skills, interests and strengths into normalized entries.

    Proficiency resolution for skills: explicit weight, explicit proficiency,
    evidence count, then list position. Interests skip the evidence step and
    use a narrower positional range. Strengths only take explicit values.
    """
    genome = as_genome(profile)
    out: list[NormalizedSkill] = []

    total = len(genome.skills)
    for index, item in enumerate(genome.skills):
        if not item.name:
            continue
        proficiency = _explicit_proficiency(item)
        if proficiency is None:
            evidence = _evidence_count(item)
            if evidence > 0:
                proficiency = min(0.9, 0.5 + 0.1 * evidence)
            else:
                proficiency = _positional(index, total, SKILL_POSITION_RANGE)
        out.append(_normalize(item, proficiency, "skill"))

    total = len(genome.interests)
    for index, item in enumerate(genome.interests):
        if not item.name:
            continue
        proficiency = _explicit_proficiency(item)
        if proficiency is None:
            proficiency = _positional(index, total, INTEREST_POSITION_RANGE)
        out.append(_normalize(item, proficiency, "interest"))

    for item in genome.strengths:
        if not item.name:
            continue
        out.append(_normalize(item, _explicit_proficiency(item) or 0.0, "strength"))

    return out


def extract_strengths(profile: "Genome | dict | None") -> list[NormalizedSkill]:
    """Strengths only, explicit proficiency or 0."""
    genome = as_genome(profile)
    return [
        _normalize(item, _explicit_proficiency(item) or 0.0, "strength")
        for item in genome.strengths
        if item.name
    ]


def by_code(skills: list[NormalizedSkill]) -> dict[str, NormalizedSkill]:
    """Index entries by code, keeping the first occurrence of each."""
    index: dict[str, NormalizedSkill] = {}
    for skill in skills:
        index.setdefault(skill.code, skill)
    return index
