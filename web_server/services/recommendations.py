import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional

from models.genome import Genome, as_genome
from models.matching import (
    NormalizedSkill,
    Recommendation,
    RecommendationOptions,
    RecommendationResponse,
    SimilarityResult,
)
from services.events import EventHandler, emit
from services.genome_cache import GenomeCache
from services.similarity import calculate_basic_similarity, calculate_similarity
from services.skills import extract_skills, extract_strengths
from torre import ProfileSource

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "do", "does", "did",
    "will", "would", "could", "should", "may", "might", "can", "must", "shall",
})

ROLE_PATTERNS = [
    ("developer", ["developer", "programming", "software"]),
    ("engineer", ["engineer", "engineering", "technical"]),
    ("designer", ["designer", "design", "creative"]),
    ("manager", ["manager", "management", "leadership"]),
    ("analyst", ["analyst", "analysis", "data"]),
    ("consultant", ["consultant", "consulting", "advisory"]),
]

TEAM_GAP_QUERIES = ["full stack", "backend", "frontend", "devops", "data science", "design"]

_PUNCTUATION = re.compile(r"[^\w\s]")
_ALPHA = re.compile(r"[a-zA-Z]+")


@dataclass
class PipelineSettings:
    batch_size: int = 8
    max_queries: int = 8
    search_limit: int = 25
    top_skills: int = 5
    top_strengths: int = 3
    # Stop issuing candidate batches once this many have qualified
    early_exit_after: int = 30
    # Pre-filter tolerance below min_similarity_score; untuned heuristic
    prefilter_margin: float = 0.1
    timeout: Optional[float] = None


# ── Query generation ────────────────────────────────────────────────────

def extract_keywords(headline: Optional[str]) -> list[str]:
    if not headline:
        return []
    words = _PUNCTUATION.sub(" ", headline.lower()).split()
    keywords = [
        w for w in words
        if len(w) > 2 and w not in STOP_WORDS and _ALPHA.fullmatch(w)
    ]
    return list(dict.fromkeys(keywords))


def role_queries(headline: Optional[str]) -> list[str]:
    if not headline:
        return []
    lowered = headline.lower()
    queries: list[str] = []
    for pattern, bundle in ROLE_PATTERNS:
        if pattern in lowered:
            queries.extend(bundle)
    return list(dict.fromkeys(queries))


def _top_names(entries: list[NormalizedSkill], count: int) -> list[str]:
    ranked = sorted(entries, key=lambda s: s.proficiency, reverse=True)
    return [s.name for s in ranked[:count]]


def generate_search_queries(
    headline: Optional[str],
    skills: list[NormalizedSkill],
    strengths: list[NormalizedSkill],
    extra_queries: Optional[list[str]] = None,
    settings: Optional[PipelineSettings] = None,
) -> list[str]:
    """Ordered, de-duplicated query set: caller extras, headline keywords,
    top skills, top strengths, then role bundles."""
    settings = settings or PipelineSettings()
    queries: dict[str, None] = {}
    for query in [
        *(extra_queries or []),
        *extract_keywords(headline),
        *_top_names(skills, settings.top_skills),
        *_top_names(strengths, settings.top_strengths),
        *role_queries(headline),
    ]:
        if query and query.strip():
            queries.setdefault(query, None)
    return list(queries)[:settings.max_queries]


# ── Justifications ──────────────────────────────────────────────────────

def justify(similarity: SimilarityResult) -> list[str]:
    details = similarity.details
    reasons: list[str] = []

    if details.common_skills:
        top = ", ".join(s.name for s in details.common_skills[:3])
        reasons.append(f"Shares {len(details.common_skills)} common skills including {top}")

    if details.common_strengths:
        names = " and ".join(s.name for s in details.common_strengths[:2])
        reasons.append(f"Similar strengths in {names}")

    if similarity.experience_score > 0.7:
        reasons.append("Similar experience level and professional maturity")

    if details.unique_skills_b:
        names = " and ".join(s.name for s in details.unique_skills_b[:2])
        reasons.append(f"Brings complementary skills in {names}")

    if similarity.overall_score > 0.8:
        reasons.append("High overall profile similarity")
    elif similarity.overall_score > 0.6:
        reasons.append("Good profile compatibility")

    return reasons or ["Professional profile match"]


# ── Fan-out ──────────────────────────────────────────────────────────────

async def _search_one(
    source: ProfileSource, query: str, limit: int, on_event: Optional[EventHandler]
) -> list[Genome]:
    try:
        return await source.search(query, limit)
    except Exception as e:
        logger.warning('Search failed for query "%s": %s', query, e)
        emit(on_event, "search_failed", query, e)
        return []


async def _score_candidate(
    candidate: Genome,
    target: Genome,
    cache: GenomeCache,
    min_score: float,
    settings: PipelineSettings,
    on_event: Optional[EventHandler],
) -> Optional[Recommendation]:
    username = candidate.username
    try:
        genome = await cache.get_genome(username)
        if genome is None:
            emit(on_event, "genome_unavailable", username, "genome could not be fetched")
            return None

        if calculate_basic_similarity(target, genome) < min_score - settings.prefilter_margin:
            return None

        similarity = calculate_similarity(target, genome)
        if similarity.overall_score < min_score:
            return None

        if not genome.username:
            genome = genome.model_copy(update={"username": username})
        return Recommendation(candidate=genome, similarity=similarity, justifications=justify(similarity))
    except Exception as e:
        logger.warning("Error processing candidate %s: %s", username, e)
        emit(on_event, "candidate_failed", username, e)
        return None


async def _score_in_batches(
    candidates: list[Genome],
    target: Genome,
    cache: GenomeCache,
    min_score: float,
    settings: PipelineSettings,
    on_event: Optional[EventHandler],
) -> list[Recommendation]:
    kept: list[Recommendation] = []
    for start in range(0, len(candidates), settings.batch_size):
        batch = candidates[start:start + settings.batch_size]
        results = await asyncio.gather(*(
            _score_candidate(c, target, cache, min_score, settings, on_event) for c in batch
        ))
        kept.extend(r for r in results if r is not None)
        if len(kept) >= settings.early_exit_after:
            logger.info("Stopping after %d qualifying candidates", len(kept))
            break
    return kept


# ── Main entry points ───────────────────────────────────────────────────

async def _run(
    target_profile: "Genome | dict",
    source: ProfileSource,
    cache: GenomeCache,
    options: RecommendationOptions,
    settings: PipelineSettings,
    on_event: Optional[EventHandler],
) -> RecommendationResponse:
    thin = as_genome(target_profile)
    target = None
    if thin.username:
        target = await cache.get_genome(thin.username)
    if target is None:
        logger.warning("Using basic profile data for %s", thin.username)
        target = thin

    headline = thin.professional_headline or target.professional_headline
    queries = generate_search_queries(
        headline,
        extract_skills(target),
        extract_strengths(target),
        options.extra_search_queries,
        settings,
    )
    logger.info("Finding similar professionals for %s with queries %s", thin.username, queries)

    search_results = await asyncio.gather(*(
        _search_one(source, q, settings.search_limit, on_event) for q in queries
    ))

    excluded = set(options.exclude_usernames)
    if thin.username:
        excluded.add(thin.username)
    candidates: dict[str, Genome] = {}
    for results in search_results:
        for person in results:
            if person.username and person.username not in excluded:
                candidates.setdefault(person.username, person)
    logger.info("Found %d candidate professionals", len(candidates))

    kept = await _score_in_batches(
        list(candidates.values()), target, cache, options.min_similarity_score, settings, on_event
    )
    kept.sort(key=lambda r: r.similarity.overall_score, reverse=True)
    ranked = kept[:options.limit]
    logger.info("Generated %d recommendations", len(ranked))

    return RecommendationResponse(
        success=True,
        data=ranked,
        target_username=thin.username,
        total_candidates=len(candidates),
        search_queries_used=queries,
    )


async def find_similar_professionals(
    target_profile: "Genome | dict",
    source: ProfileSource,
    cache: GenomeCache,
    options: Optional[RecommendationOptions] = None,
    settings: Optional[PipelineSettings] = None,
    on_event: Optional[EventHandler] = None,
) -> RecommendationResponse:
    """Search Torre for people resembling the target and rank them.

    Per-query and per-candidate failures are dropped (and reported through
    on_event); anything else comes back as success=False rather than raising.
    """
    options = options or RecommendationOptions()
    settings = settings or PipelineSettings()
    try:
        run = _run(target_profile, source, cache, options, settings, on_event)
        if settings.timeout:
            return await asyncio.wait_for(run, settings.timeout)
        return await run
    except asyncio.TimeoutError:
        logger.warning("Recommendation pipeline timed out after %.1fs", settings.timeout)
        return RecommendationResponse(success=False, error=f"Timed out after {settings.timeout}s")
    except Exception as e:
        logger.exception("Error finding similar professionals")
        return RecommendationResponse(success=False, error=str(e))


async def get_team_recommendations(
    members: "list[Genome | dict]",
    source: ProfileSource,
    cache: GenomeCache,
    options: Optional[RecommendationOptions] = None,
    settings: Optional[PipelineSettings] = None,
    on_event: Optional[EventHandler] = None,
) -> RecommendationResponse:
    """Recommend people for a team, seeded from its first member and
    excluding everyone already on it."""
    if not members:
        return RecommendationResponse(success=False, error="At least one team member is required")

    options = options or RecommendationOptions()
    try:
        genomes = [as_genome(m) for m in members]
    except Exception as e:
        return RecommendationResponse(success=False, error=str(e))

    team_options = options.model_copy(update={
        "extra_search_queries": TEAM_GAP_QUERIES + list(options.extra_search_queries),
        "exclude_usernames": [g.username for g in genomes if g.username] + list(options.exclude_usernames),
    })
    return await find_similar_professionals(genomes[0], source, cache, team_options, settings, on_event)
