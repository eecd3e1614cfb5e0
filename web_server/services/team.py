import logging
import math
from dataclasses import dataclass, field

from models.genome import Genome, as_genome
from models.matching import Advice, SkillCoverage, TeamComposition, UniqueSkill
from services.skills import by_code, extract_skills

logger = logging.getLogger(__name__)


@dataclass
class _Coverage:
    name: str
    holders: list[tuple[int, float]] = field(default_factory=list)

    @property
    def max_proficiency(self) -> float:
        return max(p for _, p in self.holders)


def _names(items, limit: int = 3) -> str:
    return ", ".join(item.skill for item in items[:limit])


def analyze_team_composition(profiles: "list[Genome | dict]") -> TeamComposition:
    """Classify every skill held across a team as well covered, poorly
    covered or unique to one member. Needs at least two profiles."""
    try:
        genomes = [as_genome(p) for p in profiles or []]
        if len(genomes) < 2:
            return TeamComposition(error="At least 2 people required for team analysis")

        coverage: dict[str, _Coverage] = {}
        for index, genome in enumerate(genomes):
            for code, skill in by_code(extract_skills(genome)).items():
                entry = coverage.setdefault(code, _Coverage(name=skill.name))
                entry.holders.append((index, skill.proficiency))

        well_threshold = math.ceil(0.5 * len(genomes))
        well_covered: list[SkillCoverage] = []
        poorly_covered: list[SkillCoverage] = []
        unique: list[UniqueSkill] = []
        for entry in coverage.values():
            count = len(entry.holders)
            if count == 1:
                owner_index, proficiency = entry.holders[0]
                owner = genomes[owner_index]
                unique.append(UniqueSkill(
                    skill=entry.name,
                    owner=owner.name or owner.username,
                    proficiency=proficiency,
                ))
                continue
            summary = SkillCoverage(skill=entry.name, coverage=count, max_proficiency=entry.max_proficiency)
            if count >= well_threshold:
                well_covered.append(summary)
            else:
                poorly_covered.append(summary)

        advice: list[Advice] = []
        if well_covered:
            advice.append(Advice(
                type="strength",
                title="Team Strengths",
                description=f"Strong coverage in: {_names(well_covered)}",
                priority="high",
            ))
        if unique:
            advice.append(Advice(
                type="unique_expertise",
                title="Unique Expertise",
                description=f"Specialized skills: {_names(unique)}",
                priority="medium",
            ))
        if poorly_covered:
            advice.append(Advice(
                type="skill_gaps",
                title="Potential Skill Gaps",
                description=f"Consider strengthening: {_names(poorly_covered)}",
                priority="medium",
            ))

        held = sum(len(entry.holders) for entry in coverage.values())
        return TeamComposition(
            well_covered=well_covered,
            poorly_covered=poorly_covered,
            unique_skills=unique,
            recommendations=advice,
            total_skills=len(coverage),
            avg_skills_per_person=held / len(genomes),
        )
    except Exception as exc:
        logger.warning("Team composition analysis failed: %s", exc)
        return TeamComposition(error=str(exc))
