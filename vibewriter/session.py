"""
Writing Session
Owns the mutable state of one editing session and is the only writer to it:

  - the research library (bibliography)
  - the active style profile and the unsaved settings draft
  - the document content, editor mode and live-suggestion feed

Mutations are serialized behind one re-entrant lock. Oracle and engine calls run
outside the lock against a snapshot; their results are applied afterwards to
whatever the state is by then (last write wins, no staleness check).
"""

import threading
from typing import Any, Dict, Iterable, List, Optional

from vibewriter.citations import CitationResolver, match_local
from vibewriter.config import (
    MAX_CITATIONS,
    MIN_CALIBRATION_LENGTH,
    LIVE_CONTEXT_MIN_LENGTH,
    QUIET_PERIOD_SECONDS,
)
from vibewriter.library import seed_library, snippet_from_upload, merge_snippets
from vibewriter.live_context import QuietPeriodWatcher
from vibewriter.models import ResearchSnippet, StyleProfile, EDITOR_MODES, editor_stats
from vibewriter.oracle import WritingOracle, SAMPLE_ERROR_TEXT
from vibewriter.profiles import (
    analyze_profile,
    apply_patch,
    apply_preset,
    default_profile,
    merge_with_defaults,
)
from vibewriter.utils import setup_logger, split_csv_words
from vibewriter.writing import GhostWriter, strip_trigger

logger = setup_logger(__name__)


class CalibrationError(ValueError):
    """Calibration text is too short to analyze."""


class UnknownSnippetError(KeyError):
    pass


class GenerationInProgress(RuntimeError):
    pass


def _clamp(position: Optional[int], length: int) -> int:
    if position is None:
        return length
    return max(0, min(int(position), length))


class WritingSession:
    """Coordinator for one document, its research library and its style profile."""

    def __init__(
        self,
        oracle: Optional[WritingOracle] = None,
        writer: Optional[GhostWriter] = None,
        library: Optional[Iterable[ResearchSnippet]] = None,
        profile: Optional[StyleProfile] = None,
        quiet_period: float = QUIET_PERIOD_SECONDS,
    ):
        if oracle is None or writer is None:
            # One engine shared by both AI surfaces
            from vibewriter.ai_engine import AIEngine
            from vibewriter.oracle import LLMOracle
            engine = AIEngine()
            oracle = oracle or LLMOracle(engine)
            writer = writer or GhostWriter(engine)

        self.oracle = oracle
        self.writer = writer
        self.resolver = CitationResolver(oracle, limit=MAX_CITATIONS)

        self._lock = threading.RLock()
        self._library: List[ResearchSnippet] = list(library) if library is not None else seed_library()
        self._profile: StyleProfile = profile.copy() if profile else default_profile()
        self._draft: StyleProfile = self._profile.copy()
        self._content = ""
        self._mode = "markdown"
        self._live: List[ResearchSnippet] = []
        self._ghost_busy = False

        self.watcher = QuietPeriodWatcher(self.refresh_live_suggestions, delay=quiet_period)

    # ─────────────────────────────────────────────
    # Snapshots
    # ─────────────────────────────────────────────

    @property
    def library(self) -> List[ResearchSnippet]:
        with self._lock:
            return list(self._library)

    @property
    def profile(self) -> StyleProfile:
        with self._lock:
            return self._profile.copy()

    @property
    def draft(self) -> StyleProfile:
        with self._lock:
            return self._draft.copy()

    @property
    def content(self) -> str:
        with self._lock:
            return self._content

    @property
    def mode(self) -> str:
        with self._lock:
            return self._mode

    @property
    def live_suggestions(self) -> List[ResearchSnippet]:
        with self._lock:
            return list(self._live)

    @property
    def ghost_writing(self) -> bool:
        with self._lock:
            return self._ghost_busy

    @property
    def provider(self) -> str:
        """Label of the provider that last answered, "None" for stub writers."""
        return getattr(getattr(self.writer, "ai", None), "provider", "None")

    def stats(self) -> Dict[str, int]:
        return editor_stats(self.content)

    def close(self):
        self.watcher.cancel()

    # ─────────────────────────────────────────────
    # Document
    # ─────────────────────────────────────────────

    def set_content(self, content: str, mode: Optional[str] = None):
        """Replace the document; every edit restarts the quiet period."""
        with self._lock:
            if mode is not None:
                self._set_mode(mode)
            self._content = content
        self.watcher.touch()

    def set_mode(self, mode: str):
        with self._lock:
            self._set_mode(mode)

    def _set_mode(self, mode: str):
        if mode not in EDITOR_MODES:
            raise ValueError(f"mode must be one of {', '.join(EDITOR_MODES)}")
        self._mode = mode

    def _edit(self, mutate) -> str:
        with self._lock:
            self._content = mutate(self._content)
            content = self._content
        self.watcher.touch()
        return content

    def refresh_live_suggestions(self) -> List[ResearchSnippet]:
        """
        Quiet-period pass: keyword extraction plus local matching over the whole
        document. Never generates citations; leaves the feed alone when no
        keywords come back.
        """
        content = self.content
        library = self.library
        if len(content) <= LIVE_CONTEXT_MIN_LENGTH:
            return self.live_suggestions

        keywords = self.resolver.keywords_for(content)
        if not keywords:
            return self.live_suggestions

        relevant = match_local(keywords, library)[:MAX_CITATIONS]
        with self._lock:
            self._live = relevant
        logger.info(f"[LIVE] {len(relevant)} suggestion(s) for keywords: {', '.join(keywords)}")
        return list(relevant)

    # ─────────────────────────────────────────────
    # Library
    # ─────────────────────────────────────────────

    def get_snippet(self, snippet_id: str) -> ResearchSnippet:
        with self._lock:
            for snippet in self._library:
                if snippet.id == snippet_id:
                    return snippet
        raise UnknownSnippetError(snippet_id)

    def add_snippet(self, snippet: ResearchSnippet) -> ResearchSnippet:
        with self._lock:
            if any(s.id == snippet.id for s in self._library):
                raise ValueError(f"Snippet id already exists: {snippet.id}")
            self._library.insert(0, snippet)
        return snippet

    def add_uploaded_document(self, filename: str, text: str) -> ResearchSnippet:
        with self._lock:
            snippet = snippet_from_upload(filename, text, (s.id for s in self._library))
            self._library.insert(0, snippet)
        logger.info(f"[CITE] Added uploaded document '{filename}' as {snippet.id}")
        return snippet

    def merge_snippets(self, incoming: Iterable[ResearchSnippet]) -> List[ResearchSnippet]:
        with self._lock:
            self._library, added = merge_snippets(self._library, incoming)
        return added

    # ─────────────────────────────────────────────
    # Citations
    # ─────────────────────────────────────────────

    def find_citations(self, selection: str) -> List[ResearchSnippet]:
        """
        Resolve up to three citations for a selection, store any generated ones
        in the library and show the result in the live feed.
        """
        result = self.resolver.resolve(selection, self.library)
        with self._lock:
            if result.generated:
                self._library, _ = merge_snippets(self._library, result.generated)
            self._live = list(result.citations)
        return result.citations

    def insert_citation(self, snippet_id: str, position: Optional[int] = None) -> str:
        """Insert the snippet's \\cite{} command into the document at position (default: end)."""
        command = self.get_snippet(snippet_id).cite_command()

        def insert(text):
            at = _clamp(position, len(text))
            return text[:at] + command + text[at:]
        self._edit(insert)
        return command

    # ─────────────────────────────────────────────
    # Style profile
    # ─────────────────────────────────────────────

    def calibrate(self, text: Optional[str] = None) -> StyleProfile:
        """
        Replace the active profile with one analyzed from text (default: the document).
        Raises CalibrationError before any oracle call when the text is too short.
        """
        sample = self.content if text is None else text
        if len(sample) < MIN_CALIBRATION_LENGTH:
            raise CalibrationError(
                f"Please write at least {MIN_CALIBRATION_LENGTH} characters before calibrating."
            )

        logger.info(f"[STYLE] Calibrating from {len(sample)} characters...")
        profile = analyze_profile(self.oracle.analyze_style, sample)
        with self._lock:
            self._profile = profile
        return profile.copy()

    def replace_profile(self, raw: Dict[str, Any]) -> StyleProfile:
        profile = merge_with_defaults(raw)
        with self._lock:
            self._profile = profile
        return profile.copy()

    def open_settings(self) -> StyleProfile:
        with self._lock:
            self._draft = self._profile.copy()
            return self._draft.copy()

    def update_draft(self, changes: Dict[str, Any]) -> StyleProfile:
        with self._lock:
            self._draft = apply_patch(self._draft, changes)
            return self._draft.copy()

    def apply_preset(self, name: str) -> StyleProfile:
        with self._lock:
            self._draft = apply_preset(self._draft, name)
            return self._draft.copy()

    def toggle_punctuation(self, mark: str) -> StyleProfile:
        if not isinstance(mark, str) or not mark.strip():
            raise ValueError("punctuation mark must be a non-empty string")
        with self._lock:
            current = list(self._draft.allowed_punctuation)
            if mark in current:
                current.remove(mark)
            else:
                current.append(mark)
            self._draft.allowed_punctuation = current
            return self._draft.copy()

    def _draft_with_banned(self, banned_words_input: Optional[str]) -> StyleProfile:
        draft = self._draft.copy()
        if banned_words_input is not None:
            if not isinstance(banned_words_input, str):
                raise ValueError("banned words must be a comma-separated string")
            draft.banned_words = split_csv_words(banned_words_input)
        return draft

    def save_settings(self, banned_words_input: Optional[str] = None) -> StyleProfile:
        with self._lock:
            self._draft = self._draft_with_banned(banned_words_input)
            self._profile = self._draft.copy()
            logger.info("[STYLE] Settings saved")
            return self._profile.copy()

    def generate_style_sample(self, banned_words_input: Optional[str] = None) -> str:
        with self._lock:
            draft = self._draft_with_banned(banned_words_input)
        try:
            return self.oracle.generate_style_sample(draft)
        except Exception as e:
            logger.warning(f"[STYLE] Sample oracle failed: {e}")
            return SAMPLE_ERROR_TEXT

    # ─────────────────────────────────────────────
    # Ghost writing
    # ─────────────────────────────────────────────

    def ghost_write(self) -> str:
        """
        Append an AI paragraph to the document and file its new references.
        Raises GenerationInProgress if a ghost write is already running and
        GenerationError (state untouched) if generation fails.
        """
        with self._lock:
            if self._ghost_busy:
                raise GenerationInProgress("Ghost writing already in progress")
            self._ghost_busy = True
            content = strip_trigger(self._content)
            profile = self._profile.copy()
            library = list(self._library)
            mode = self._mode

        try:
            response = self.writer.ghost_write(content, profile, library, mode)
            with self._lock:
                if response.new_references:
                    self._library, added = merge_snippets(self._library, response.new_references)
                    self._live = (added + self._live)[:MAX_CITATIONS]
            return self._edit(lambda text: strip_trigger(text) + "\n\n" + response.paragraph)
        finally:
            with self._lock:
                self._ghost_busy = False

    def rewrite(self, selection: str, start: Optional[int] = None, end: Optional[int] = None) -> str:
        """Rewrite selection in the active style; splice it into [start, end) when given."""
        rewritten = self.writer.rewrite(selection, self.profile, self.mode)
        if start is not None and end is not None:
            def splice(text):
                lo, hi = _clamp(start, len(text)), _clamp(end, len(text))
                return text[:lo] + rewritten + text[max(lo, hi):]
            self._edit(splice)
        return rewritten

    def continue_text(self, selection: str, end: Optional[int] = None) -> str:
        """Continue after selection; insert the continuation at end when given."""
        continuation = self.writer.continue_text(selection, self.profile, self.mode)
        if end is not None and continuation:
            def insert(text):
                at = _clamp(end, len(text))
                return text[:at] + " " + continuation + text[at:]
            self._edit(insert)
        return continuation
