"""
Citation Resolver
Picks up to three supporting citations for an excerpt: local library matches
first, then AI-generated entries to fill the shortfall.

The resolver never mutates the library; the caller merges `generated` back in.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Sequence

from vibewriter.config import MAX_CITATIONS, MIN_KEYWORD_TEXT_LENGTH
from vibewriter.models import ResearchSnippet
from vibewriter.oracle import WritingOracle
from vibewriter.utils import setup_logger, new_snippet_id

logger = setup_logger(__name__)


@dataclass
class CitationResult:
    citations: List[ResearchSnippet] = field(default_factory=list)
    generated: List[ResearchSnippet] = field(default_factory=list)

    @property
    def local(self) -> List[ResearchSnippet]:
        return self.citations[:len(self.citations) - len(self.generated)]


def match_local(keywords: Iterable[str], library: Sequence[ResearchSnippet]) -> List[ResearchSnippet]:
    """
    Case-insensitive substring match of keywords against content and tags.
    Keeps library order; a snippet appears at most once.
    """
    needles = [k.lower() for k in keywords if k]
    if not needles:
        return []

    matches = []
    for snippet in library:
        haystacks = [snippet.content.lower()] + [t.lower() for t in snippet.tags]
        if any(n in h for n in needles for h in haystacks):
            matches.append(snippet)
    return matches


def _snippet_from_generated(record: Dict[str, Any], taken: set) -> ResearchSnippet:
    """Build a library entry from one generated record under a fresh id."""
    try:
        year = int(record.get("year"))
    except (TypeError, ValueError):
        year = datetime.now().year
    tags = record.get("tags") if isinstance(record.get("tags"), list) else []

    snippet = ResearchSnippet(
        id=new_snippet_id(taken),
        source=str(record.get("source") or "Untitled"),
        year=year,
        author=str(record.get("author") or "Unknown"),
        content=str(record.get("content") or ""),
        tags=[str(t) for t in tags if isinstance(t, str)],
    )
    taken.add(snippet.id)
    return snippet


class CitationResolver:
    """Local-first citation lookup with generative top-up."""

    def __init__(self, oracle: WritingOracle, limit: int = MAX_CITATIONS):
        self.oracle = oracle
        self.limit = limit

    def keywords_for(self, text: str) -> List[str]:
        """Oracle keywords for text; [] when the text is too short or the oracle fails."""
        if not text or len(text) < MIN_KEYWORD_TEXT_LENGTH:
            return []
        try:
            keywords = self.oracle.extract_keywords(text) or []
        except Exception as e:
            logger.warning(f"[CITE] Keyword oracle failed ({type(e).__name__}): {str(e)[:100]}")
            return []
        return [k.strip().lower() for k in keywords if isinstance(k, str) and k.strip()]

    def suggest_local(self, text: str, library: Sequence[ResearchSnippet]) -> List[ResearchSnippet]:
        """Keyword + local match only; never generates."""
        return match_local(self.keywords_for(text), library)[:self.limit]

    def resolve(self, excerpt: str, library: Sequence[ResearchSnippet]) -> CitationResult:
        keywords = self.keywords_for(excerpt)
        local = match_local(keywords, library)
        logger.info(f"[CITE] {len(keywords)} keyword(s), {len(local)} local match(es)")

        if len(local) >= self.limit:
            return CitationResult(citations=local[:self.limit])

        shortfall = self.limit - len(local)
        try:
            records = self.oracle.generate_citations(excerpt, shortfall)
            if not isinstance(records, list):
                raise ValueError(f"expected a list of citations, got {type(records).__name__}")
            taken = {s.id for s in library}
            usable = [r for r in records if isinstance(r, dict)][:shortfall]
            generated = [_snippet_from_generated(r, taken) for r in usable]
        except Exception as e:
            logger.warning(f"[CITE] Citation generation failed ({type(e).__name__}): {str(e)[:100]}")
            return CitationResult(citations=local)

        logger.info(f"[CITE] Generated {len(generated)} supplementary citation(s)")
        return CitationResult(citations=local + generated, generated=generated)
