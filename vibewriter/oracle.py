"""
Writing Oracle
The capability boundary between the writing session and the external LLM.

Exactly four operations cross it:
  - extract_keywords       best effort, [] on failure or short text
  - generate_citations     synthetic bibliography records, raises OracleError on failure
  - analyze_style          raw (possibly partial) style record, raises OracleError on failure
  - generate_style_sample  free text, returns SAMPLE_ERROR_TEXT on failure

Tests replace the whole boundary with deterministic stubs.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from vibewriter.config import (
    MAX_KEYWORDS,
    MIN_KEYWORD_TEXT_LENGTH,
    KEYWORD_CONTEXT_CHARS,
    CITATION_CONTEXT_CHARS,
    STYLE_SAMPLE_CHARS,
)
from vibewriter.models import StyleProfile
from vibewriter.utils import setup_logger, parse_json_response

logger = setup_logger(__name__)

SAMPLE_ERROR_TEXT = "Error generating sample."
SAMPLE_EMPTY_TEXT = "Failed to generate sample."
SAMPLE_TOPIC = "The impact of synthetic biology on future manufacturing"


class OracleError(Exception):
    """An oracle call failed or returned something unusable."""


class WritingOracle(ABC):

    @abstractmethod
    def extract_keywords(self, text: str) -> List[str]:
        ...

    @abstractmethod
    def generate_citations(self, excerpt: str, count: int) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def analyze_style(self, sample_text: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def generate_style_sample(self, profile: StyleProfile) -> str:
        ...


class LLMOracle(WritingOracle):
    """WritingOracle backed by the multi-provider AIEngine."""

    def __init__(self, engine=None):
        if engine is None:
            from vibewriter.ai_engine import AIEngine
            engine = AIEngine()
        self.ai = engine

    def _ask(self, prompt: str, max_tokens: int = 1000, json_output: bool = False) -> str:
        result = self.ai.safe_generate(prompt, max_tokens=max_tokens, json_output=json_output)
        if result.get("status") != "success" or not result.get("text"):
            raise OracleError(result.get("error") or "No data returned")
        return result["text"]

    # ─────────────────────────────────────────────
    # Keywords
    # ─────────────────────────────────────────────

    def extract_keywords(self, text: str) -> List[str]:
        if not self.ai.is_ready() or len(text) < MIN_KEYWORD_TEXT_LENGTH:
            return []

        prompt = (
            f"Extract 3-5 main search keywords. Return JSON array of strings.\n"
            f"Text: \"{text[-KEYWORD_CONTEXT_CHARS:]}\""
        )
        try:
            parsed = parse_json_response(self._ask(prompt, max_tokens=100, json_output=True))
        except (OracleError, ValueError) as e:
            logger.warning(f"[CITE] Keyword extraction failed: {str(e)[:100]}")
            return []

        if not isinstance(parsed, list):
            return []
        keywords = [k.strip().lower() for k in parsed if isinstance(k, str) and k.strip()]
        return keywords[:MAX_KEYWORDS]

    # ─────────────────────────────────────────────
    # Citations
    # ─────────────────────────────────────────────

    def generate_citations(self, excerpt: str, count: int) -> List[Dict[str, Any]]:
        prompt = (
            f"Based on the text below, generate {count} relevant academic citations that would support the claims.\n"
            f"These should look like real research papers.\n\n"
            f"Text Context: \"{excerpt[:CITATION_CONTEXT_CHARS]}\"\n\n"
            f"Output strictly a JSON array of objects with this schema:\n"
            f"[{{\n"
            f"  \"source\": \"Title of paper\",\n"
            f"  \"year\": 2024,\n"
            f"  \"author\": \"Author Name\",\n"
            f"  \"content\": \"One sentence summary of relevance.\",\n"
            f"  \"tags\": [\"tag1\", \"tag2\"]\n"
            f"}}]"
        )
        try:
            parsed = parse_json_response(self._ask(prompt, max_tokens=800, json_output=True))
        except ValueError as e:
            raise OracleError(f"Malformed citation response: {e}") from e

        if not isinstance(parsed, list):
            raise OracleError(f"Expected a JSON array of citations, got {type(parsed).__name__}")
        return parsed

    # ─────────────────────────────────────────────
    # Style
    # ─────────────────────────────────────────────

    def analyze_style(self, sample_text: str) -> Dict[str, Any]:
        prompt = f"""
Analyze the writing style of the following text with high linguistic precision.

Return a JSON object with these keys:
- tone (string)
- avgSentenceLength (string)
- jargonLevel (string)
- transitionWords (array of strings)
- rawSummary (string, 2 sentences)
- formalityLevel (number 0-100)
- sentenceVariance (number 0-100)
- activeVoice (number 0-100)
- dialect (string enum: "American", "British", or "International")
- sentenceStructure (string enum: "Natural", "Periodic", "Loose", or "Balanced")
- sentenceLengthBias (string enum: "Short", "Varied", "Long")
- vocabularyStyle (string enum: "Literal", "Descriptive", or "Complex")
- modifierFrequency (string enum: "Low", "Medium", "High")
- connectiveFrequency (string enum: "Low", "Medium", "High")
- writingDomain (string enum: "General", "Academic", "Scientific", "Expository", "Creative")
- structuralBias (string enum: "Default", "Coupling (2s)", "Triplets (3s)", "Quadruplets (4s)")
- useMetaphors (boolean)
- useAnalogies (boolean)
- useAnecdotes (boolean)
- allowContractions (boolean)
- allowSplitInfinitives (boolean)
- allowEndingPrepositions (boolean)
- preferConcreteNouns (boolean)
- allowedPunctuation (array of strings)
- bannedWords (array of strings - detect overuse of clichés)

Text Sample:
"{sample_text[:STYLE_SAMPLE_CHARS]}"
"""
        try:
            parsed = parse_json_response(self._ask(prompt, max_tokens=1000, json_output=True))
        except ValueError as e:
            raise OracleError(f"Malformed style analysis: {e}") from e

        if not isinstance(parsed, dict):
            raise OracleError(f"Expected a JSON object, got {type(parsed).__name__}")
        return parsed

    def generate_style_sample(self, profile: StyleProfile) -> str:
        p = profile
        prompt = f"""
Generate a 400-word text about "{SAMPLE_TOPIC}".

STRICTLY FOLLOW THESE LINGUISTIC RULES:
- Domain: {p.writing_domain}
- Structural Bias: {p.structural_bias}
- Dialect: {p.dialect}
- Sentence Structure: {p.sentence_structure}
- Vocabulary: {p.vocabulary_style}
- Modifier Frequency: {p.modifier_frequency}
- Connective Frequency: {p.connective_frequency}
- Grammar Pedantry: Contractions={p.allow_contractions}, SplitInfinitives={p.allow_split_infinitives}, EndPrepositions={p.allow_ending_prepositions}
- Rhetoric: Metaphor={p.use_metaphors}, Analogy={p.use_analogies}
- Avoid Banned Words: {', '.join(p.banned_words)}
- Active Voice (0-100): {p.active_voice}
- Allowed Punctuation: [{', '.join(p.allowed_punctuation)}]

Output purely the text. No JSON.
"""
        result = self.ai.safe_generate(prompt, max_tokens=900)
        if result.get("status") != "success":
            logger.warning(f"[STYLE] Sample generation failed: {result.get('error')}")
            return SAMPLE_ERROR_TEXT
        return result.get("text") or SAMPLE_EMPTY_TEXT
