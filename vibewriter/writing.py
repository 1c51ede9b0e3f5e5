"""
Ghost Writing Module
Generates prose that follows the active StyleProfile: continue the draft with a
new paragraph, rewrite a selection, or extend a selection by a sentence or two.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from vibewriter.config import GHOSTWRITE_CONTEXT_WORDS, GHOSTWRITE_TRIGGER
from vibewriter.models import ResearchSnippet, StyleProfile
from vibewriter.utils import setup_logger, new_snippet_id, parse_json_response

logger = setup_logger(__name__)


class GenerationError(Exception):
    """Ghost writing produced nothing usable."""


@dataclass
class GhostWriteResponse:
    paragraph: str
    new_references: List[ResearchSnippet] = field(default_factory=list)


def strip_trigger(content: str) -> str:
    """Remove the trailing '+++' ghost-write trigger typed in the editor."""
    return content[:-len(GHOSTWRITE_TRIGGER)] if content.endswith(GHOSTWRITE_TRIGGER) else content


def build_research_context(library: Sequence[ResearchSnippet]) -> str:
    return "\n".join(
        f"[Existing Source ID: {s.id}] {s.author} ({s.year}): {s.content}" for s in library
    )


def _mode_rules(mode: str) -> str:
    return (
        f"EDITOR MODE: {mode.upper()}\n"
        f"If LATEX: Use \\section{{}}, \\textbf{{}}, etc.\n"
        f"If MARKDOWN: Use #, **, etc.\n"
        f"If DOCX: Plain text only."
    )


def build_system_prompt(profile: StyleProfile, mode: str, context: str) -> str:
    """Translate every profile setting into explicit generation rules."""
    p = profile

    contractions = "" if p.allow_contractions else "(Do NOT use 'can't', 'won't', etc.)"
    split_inf = "" if p.allow_split_infinitives else "(NEVER split infinitives. e.g. 'to boldly go' -> 'to go boldly')"
    end_prep = "" if p.allow_ending_prepositions else (
        "(NEVER end sentence with preposition. e.g. 'tool I work with' -> 'tool with which I work')"
    )

    def flag(enabled: bool) -> str:
        return "ENCOURAGED" if enabled else "BANNED"

    return f"""
ROLE: You are an expert {p.writing_domain} writer and specialized linguist.

{_mode_rules(mode)}

INPUT DATA:
1. Research Context:
{context}

2. LINGUISTIC PROFILE (STRICTLY ENFORCE):
- Domain: {p.writing_domain}
- Structural Bias: {p.structural_bias}
- Dialect: {p.dialect} (Use strictly {p.dialect} spelling/grammar).

SENTENCE ARCHITECTURE:
- Structure: {p.sentence_structure}
   * "Periodic": Main clause at the end.
   * "Loose": Main clause at start.
   * "Balanced": Parallel structures.
- Length Bias: {p.sentence_length_bias} (Force this length trend).
- Variance: {p.sentence_variance}% (Lower = more uniform length).

VOCABULARY & TONE:
- Style: {p.vocabulary_style} (Literal = Direct/Precise).
- Modifier Frequency: {p.modifier_frequency} (Low = Minimal adjectives).
- Connective Frequency: {p.connective_frequency} (Low = Minimal transition words).
- Concrete Nouns: {p.prefer_concrete_nouns}
- Formality: {p.formality_level}%
- Active Voice: {p.active_voice}%

GRAMMAR PEDANTRY (STRICT RULES):
- Contractions Allowed: {p.allow_contractions} {contractions}
- Split Infinitives Allowed: {p.allow_split_infinitives} {split_inf}
- Ending Prepositions Allowed: {p.allow_ending_prepositions} {end_prep}

RHETORICAL FLOURISHES:
- Metaphors: {flag(p.use_metaphors)}
- Analogies: {flag(p.use_analogies)}
- Anecdotes: {flag(p.use_anecdotes)}
- Idioms: {flag(p.use_idioms)}

ANTI-HYPE KILL LIST (DO NOT USE THESE WORDS):
{', '.join(p.banned_words)}

PUNCTUATION RULES:
- Allowed Set: [{', '.join(p.allowed_punctuation)}]
- CRITICAL: Do NOT use semicolons (;) unless allowed.
- Use the Oxford Comma? {'Yes' if p.dialect == 'American' else 'No'}.

CITATION RULES:
1. If a fact is not in Context, hallucinate a plausible citation.
2. Use \\cite{{AuthorYear}} format.
"""


class GhostWriter:
    """Style-conditioned text generation on top of the AIEngine."""

    def __init__(self, engine=None):
        if engine is None:
            from vibewriter.ai_engine import AIEngine
            engine = AIEngine()
        self.ai = engine

    def _generate(self, prompt: str, system_prompt: str, max_tokens: int = 1000,
                  json_output: bool = False) -> str:
        result = self.ai.safe_generate(prompt, system_prompt=system_prompt,
                                       max_tokens=max_tokens, json_output=json_output)
        if result.get("status") == "success" and result.get("text"):
            return result["text"]
        raise GenerationError(result.get("error") or "Failed to generate content")

    # ─────────────────────────────────────────────
    # Continue the draft
    # ─────────────────────────────────────────────

    def ghost_write(self, content: str, profile: StyleProfile,
                    library: Sequence[ResearchSnippet], mode: str) -> GhostWriteResponse:
        """
        Write the next paragraph of the draft.

        Args:
            content: full document (trigger already stripped)
            profile: active style profile
            library: research entries offered to the model as context
            mode:    editor mode, selects the markup dialect

        Returns:
            GhostWriteResponse whose new_references carry fresh ids

        Raises:
            GenerationError when no provider answers or the answer is not the expected JSON
        """
        logger.info("[GHOST] Writing next paragraph...")
        recent = " ".join(content.split(" ")[-GHOSTWRITE_CONTEXT_WORDS:])
        system_prompt = build_system_prompt(profile, mode, build_research_context(library)) + (
            "\nTASK: Continue the draft. Write the next paragraph.\n"
            "OUTPUT: Return JSON with keys \"paragraph\" (string) and \"newReferences\" "
            "(array of objects with id, source, year, author, content, tags).\n"
        )
        text = self._generate(f"Current Draft (End of text):\n...{recent}", system_prompt,
                              max_tokens=1500, json_output=True)

        try:
            data = parse_json_response(text)
        except ValueError as e:
            raise GenerationError(f"Malformed ghost-write response: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("paragraph"), str):
            raise GenerationError("Ghost-write response has no paragraph")

        taken = {s.id for s in library}
        references = []
        for ref in data.get("newReferences") or []:
            if not isinstance(ref, dict):
                continue
            try:
                snippet = ResearchSnippet.from_dict({**ref, "id": new_snippet_id(taken)})
            except (TypeError, ValueError):
                continue
            taken.add(snippet.id)
            references.append(snippet)

        logger.info(f"[GHOST] Paragraph ready ({len(references)} new reference(s))")
        return GhostWriteResponse(paragraph=data["paragraph"].strip(), new_references=references)

    # ─────────────────────────────────────────────
    # Selection tools
    # ─────────────────────────────────────────────

    def rewrite(self, selection: str, profile: StyleProfile, mode: str) -> str:
        """Rewrite selection to match the profile; the selection itself on failure."""
        system_prompt = build_system_prompt(profile, mode, "") + (
            "\nTASK: Rewrite the following text to perfectly match the Style Profile.\n"
            "Maintain the original meaning but change the structure, vocabulary, and tone.\n"
            "Output ONLY the rewritten text.\n"
        )
        try:
            return self._generate(f"Text to Rewrite:\n{selection}", system_prompt).strip()
        except GenerationError as e:
            logger.warning(f"[GHOST] Rewrite failed, keeping selection: {e}")
            return selection

    def continue_text(self, selection: str, profile: StyleProfile, mode: str) -> str:
        """One or two sentences following the selection; "" on failure."""
        system_prompt = build_system_prompt(profile, mode, "") + (
            "\nTASK: Write the immediate next sentence or two that follows logically from the selection.\n"
            "Output ONLY the continuation text.\n"
        )
        try:
            return self._generate(f"Context:\n{selection}", system_prompt, max_tokens=300).strip()
        except GenerationError as e:
            logger.warning(f"[GHOST] Continuation failed: {e}")
            return ""
