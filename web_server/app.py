import asyncio
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

from fastapi import FastAPI, HTTPException, Query

load_dotenv()

from log import setup_logging
from models.genome import Genome, SearchResponse, TeamRecommendationsBody, UsernamesBody
from models.matching import (
    ComparisonResponse,
    RecommendationOptions,
    RecommendationResponse,
    TeamComposition,
)
from services.complementarity import calculate_complementarity
from services.genome_cache import DEFAULT_TTL_SECONDS, GenomeCache
from services.recommendations import (
    PipelineSettings,
    find_similar_professionals,
    get_team_recommendations,
)
from services.similarity import calculate_similarity
from services.team import analyze_team_composition
from torre import TorreAPIError, close_client, connect_client, get_client

setup_logging()

cache: GenomeCache | None = None


def _pipeline_settings() -> PipelineSettings:
    timeout = os.getenv("RECOMMENDATION_TIMEOUT")
    return PipelineSettings(timeout=float(timeout) if timeout else None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    global cache
    client = await connect_client()
    cache = GenomeCache(
        client.fetch_genome,
        ttl=float(os.getenv("GENOME_CACHE_TTL", DEFAULT_TTL_SECONDS)),
    )
    yield
    await close_client()


app = FastAPI(title="Genome Matcher API", lifespan=lifespan)


def get_cache() -> GenomeCache:
    assert cache is not None, "Genome cache not initialised. Is the app lifespan running?"
    return cache


async def _require_genomes(usernames: list[str]) -> list[Genome]:
    genomes = await asyncio.gather(*(get_cache().get_genome(u) for u in usernames))
    for username, genome in zip(usernames, genomes):
        if genome is None:
            raise HTTPException(status_code=404, detail=f"Genome for {username} not available")
    return list(genomes)


# ── Search / genome endpoints ──────────────────────────────────────────


@app.get("/search", response_model=SearchResponse)
async def search_people(
    query: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(20, ge=1, le=50),
):
    try:
        results = await get_client().search(query, limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TorreAPIError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return SearchResponse(query=query.strip(), total=len(results), results=results)


@app.get("/genomes/{username}", response_model=Genome)
async def read_genome(username: str):
    genome = await get_cache().get_genome(username)
    if genome is None:
        raise HTTPException(status_code=404, detail="Genome not available")
    return genome


# ── Comparison endpoints ───────────────────────────────────────────────


@app.post("/compare", response_model=ComparisonResponse)
async def compare(body: UsernamesBody):
    if len(body.usernames) != 2:
        raise HTTPException(status_code=400, detail="Exactly two usernames are required")

    a, b = await _require_genomes(body.usernames)
    return ComparisonResponse(
        username_a=body.usernames[0],
        username_b=body.usernames[1],
        similarity=calculate_similarity(a, b),
        complementarity=calculate_complementarity(a, b),
    )


@app.post("/team/analysis", response_model=TeamComposition)
async def team_analysis(body: UsernamesBody):
    if len(body.usernames) < 2:
        raise HTTPException(status_code=400, detail="At least 2 people required for team analysis")
    genomes = await _require_genomes(body.usernames)
    return analyze_team_composition(genomes)


# ── Recommendation endpoints ───────────────────────────────────────────


@app.get("/genomes/{username}/similar", response_model=RecommendationResponse)
async def similar_professionals(
    username: str,
    limit: int = Query(10, ge=1, le=50),
    min_score: float = Query(0.3, ge=0.0, le=1.0),
    query: Optional[list[str]] = Query(None),
    exclude: Optional[list[str]] = Query(None),
):
    options = RecommendationOptions(
        limit=limit,
        min_similarity_score=min_score,
        extra_search_queries=query or [],
        exclude_usernames=exclude or [],
    )
    return await find_similar_professionals(
        Genome(username=username), get_client(), get_cache(), options, _pipeline_settings()
    )


@app.post("/team/recommendations", response_model=RecommendationResponse)
async def team_recommendations(body: TeamRecommendationsBody):
    if not body.usernames:
        raise HTTPException(status_code=400, detail="At least one team member is required")
    members = await _require_genomes(body.usernames)
    options = RecommendationOptions(limit=body.limit, min_similarity_score=body.min_score)
    return await get_team_recommendations(
        members, get_client(), get_cache(), options, _pipeline_settings()
    )
