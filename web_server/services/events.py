import logging
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineEvent:
    """A recovered failure, reported to whoever hosts the pipeline.

    kind is one of: search_failed, genome_fetch_failed, genome_unavailable,
    candidate_failed.
    subject is the query or username involved.
    """
    kind: str
    subject: str
    error: str


EventHandler = Callable[[PipelineEvent], None]


def emit(handler: Optional[EventHandler], kind: str, subject: str, error: BaseException | str) -> None:
    if handler is None:
        return
    try:
        handler(PipelineEvent(kind=kind, subject=subject, error=str(error)))
    except Exception:
        logger.exception("Event handler raised while handling %s for %s", kind, subject)
