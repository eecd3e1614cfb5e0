from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _TorreModel(BaseModel):
    """Base for records coming from Torre: camelCase on the wire, unknown keys dropped."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Torre sends explicit nulls; let the field defaults apply instead
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# ── Nested models ────────────────────────────────────────────────────────

class GenomeItem(_TorreModel):
    """One skill, strength or interest entry. Numeric fields stay raw so the
    extractor can tell 'absent' from 'present but unparseable'."""
    id: Optional[int | str] = None
    name: Optional[str] = None
    code: Optional[int | str] = None
    weight: Any = None
    proficiency: Any = None
    media: list[Any] = []
    evidence_count: Optional[int] = None
    recommendations: Optional[int] = None


class Experience(_TorreModel):
    id: Optional[int | str] = None
    name: Optional[str] = Field(None, validation_alias=AliasChoices("name", "role", "title"))
    category: Optional[str] = None
    summary: Optional[str] = Field(None, validation_alias=AliasChoices("summary", "description"))
    organizations: list[Any] = []
    from_month: Optional[int | str] = Field(None, validation_alias=AliasChoices("fromMonth", "startMonth", "from_month"))
    from_year: Optional[int | str] = Field(None, validation_alias=AliasChoices("fromYear", "startYear", "from_year"))
    to_month: Optional[int | str] = Field(None, validation_alias=AliasChoices("toMonth", "endMonth", "to_month"))
    to_year: Optional[int | str] = Field(None, validation_alias=AliasChoices("toYear", "endYear", "to_year"))
    remote: bool = False


class Education(_TorreModel):
    id: Optional[int | str] = None
    name: Optional[str] = Field(None, validation_alias=AliasChoices("name", "degree", "title"))
    category: Optional[str] = None
    field: Optional[str] = Field(None, validation_alias=AliasChoices("field", "fieldOfStudy", "major"))
    organizations: list[Any] = []
    from_month: Optional[int | str] = Field(None, validation_alias=AliasChoices("fromMonth", "startMonth", "from_month"))
    from_year: Optional[int | str] = Field(None, validation_alias=AliasChoices("fromYear", "startYear", "from_year"))
    to_month: Optional[int | str] = Field(None, validation_alias=AliasChoices("toMonth", "endMonth", "to_month"))
    to_year: Optional[int | str] = Field(None, validation_alias=AliasChoices("toYear", "endYear", "to_year"))


# ── Genome ───────────────────────────────────────────────────────────────

class Genome(_TorreModel):
    """A professional profile. Every field is optional: search results only
    carry identity and headline, a full genome carries the rest."""
    username: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = Field(None, validation_alias=AliasChoices("picture", "imageUrl", "pictureUrl"))
    verified: bool = False
    professional_headline: Optional[str] = Field(
        None, validation_alias=AliasChoices("professionalHeadline", "headline", "professional_headline")
    )
    summary_of_bio: Optional[str] = Field(None, validation_alias=AliasChoices("summaryOfBio", "bio", "summary_of_bio"))
    completion: Optional[float] = None
    weight: Optional[float] = None
    location: Any = None
    remote: bool = False
    open_to_work: bool = False

    skills: list[GenomeItem] = []
    strengths: list[GenomeItem] = []
    interests: list[GenomeItem] = []
    experiences: list[Experience] = []
    education: list[Education] = []

    @classmethod
    def from_raw(cls, data: Optional[dict]) -> "Genome":
        """Build a Genome from either the flat search-stub shape or the nested
        Torre bio shape (`person`, `stats`, root-level lists)."""
        if not data:
            return cls()
        person = data.get("person")
        if not isinstance(person, dict):
            return cls.model_validate(data)

        stats = data.get("stats") if isinstance(data.get("stats"), dict) else {}
        flat = {k: v for k, v in data.items() if k not in ("person", "stats")}
        flat.update(person)
        # stats may hold counts instead of lists
        for key in ("skills", "strengths", "interests"):
            flat[key] = next(
                (v for v in (stats.get(key), data.get(key)) if isinstance(v, list) and v),
                [],
            )
        return cls.model_validate(flat)


def as_genome(profile: "Genome | dict | None") -> Genome:
    """Coerce anything profile-shaped into a Genome."""
    if isinstance(profile, Genome):
        return profile
    if profile is None:
        return Genome()
    return Genome.from_raw(profile)


# ── Request / response schemas ──────────────────────────────────────────

class SearchResponse(BaseModel):
    query: str
    total: int
    results: list[Genome]


class UsernamesBody(BaseModel):
    """Body of POST /compare and POST /team/analysis."""
    usernames: list[str]


class TeamRecommendationsBody(BaseModel):
    """Body of POST /team/recommendations."""
    usernames: list[str]
    limit: int = Field(10, ge=1, le=50)
    min_score: float = Field(0.3, ge=0.0, le=1.0)
