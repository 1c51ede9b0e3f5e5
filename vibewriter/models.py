"""
Data models shared by the library, the style store and the writing session.

Wire format (JSON exchanged with the analyzer and the HTTP API) uses camelCase
keys; attributes are snake_case.
"""

import re
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from typing import Any, Dict, List

# ── Enumerations ──────────────────────────────────────────
DIALECTS = ("American", "British", "International")
SENTENCE_STRUCTURES = ("Natural", "Periodic", "Loose", "Balanced")
SENTENCE_LENGTH_BIASES = ("Short", "Varied", "Long")
VOCABULARY_STYLES = ("Literal", "Descriptive", "Complex")
FREQUENCIES = ("Low", "Medium", "High")
WRITING_DOMAINS = ("General", "Academic", "Scientific", "Expository", "Creative")
STRUCTURAL_BIASES = ("Default", "Coupling (2s)", "Triplets (3s)", "Quadruplets (4s)")

EDITOR_MODES = ("markdown", "latex", "docx")


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


@dataclass
class ResearchSnippet:
    """One bibliography entry. Identity is the id, never the content."""

    id: str
    source: str
    year: int
    author: str
    content: str
    tags: List[str] = field(default_factory=list)

    @property
    def cite_key(self) -> str:
        first = self.author.split(" ")[0] if self.author else "Unknown"
        return f"{first}{self.year}"

    def cite_command(self) -> str:
        return f"\\cite{{{self.cite_key}}}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResearchSnippet":
        """
        Build a snippet from wire data. A missing year means the current year;
        tags that are not a list are dropped. Raises ValueError for a non-numeric year.
        """
        year = data.get("year")
        if year in (None, ""):
            year = datetime.now().year
        try:
            year = int(year)
        except TypeError as e:
            raise ValueError(f"year must be a number, got {type(year).__name__}") from e
        tags = data.get("tags")
        return cls(
            id=str(data["id"]),
            source=str(data.get("source", "Untitled")),
            year=year,
            author=str(data.get("author", "Unknown")),
            content=str(data.get("content", "")),
            tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else [],
        )


@dataclass
class StyleProfile:
    """Tone, grammar, rhetoric and punctuation settings for generated prose."""

    tone: str
    avg_sentence_length: str
    jargon_level: str
    transition_words: List[str]
    raw_summary: str

    # Numeric sliders (0-100)
    formality_level: int
    sentence_variance: int
    active_voice: int

    # Linguistics
    dialect: str
    sentence_structure: str
    sentence_length_bias: str
    vocabulary_style: str
    modifier_frequency: str
    connective_frequency: str
    writing_domain: str
    structural_bias: str

    # Rhetorical flourishes
    use_metaphors: bool
    use_analogies: bool
    use_anecdotes: bool

    # Grammar pedantry
    allow_contractions: bool
    allow_split_infinitives: bool
    allow_ending_prepositions: bool

    use_idioms: bool
    use_rhetorical_devices: bool
    prefer_concrete_nouns: bool

    allowed_punctuation: List[str]
    banned_words: List[str]

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def to_dict(self) -> Dict[str, Any]:
        return {to_camel(k): v for k, v in asdict(self).items()}

    def copy(self) -> "StyleProfile":
        return StyleProfile(**asdict(self))


def editor_stats(content: str) -> Dict[str, int]:
    return {"words": len(content.split()), "chars": len(content)}
