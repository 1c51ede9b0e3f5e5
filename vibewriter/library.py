"""
Research Library
Seed bibliography, uploaded-document conversion, id-based merging and BibTeX export.
"""

import re
from datetime import datetime
from io import BytesIO
from typing import Iterable, List, Tuple

import PyPDF2

from vibewriter.config import UPLOAD_PREVIEW_CHARS
from vibewriter.models import ResearchSnippet
from vibewriter.utils import setup_logger, new_snippet_id

logger = setup_logger(__name__)


SEED_LIBRARY = [
    {
        "id": "1",
        "source": "Solar Cell Efficiency Limits",
        "year": 2024,
        "author": "Smith et al.",
        "content": (
            "The Shockley-Queisser limit places a maximum theoretical efficiency of 33.7% for "
            "single-junction solar cells. Recent perovskite developments suggest pathways to "
            "bypass this via tandem structures."
        ),
        "tags": ["solar", "efficiency", "quantum", "energy"],
    },
    {
        "id": "2",
        "source": "Quantum Decoherence in Warm Systems",
        "year": 2023,
        "author": "Rodriguez & Chen",
        "content": (
            "Observing quantum effects at room temperature remains a challenge due to rapid "
            "decoherence. Our table 3 shows that biological systems may utilize vibronic "
            "coupling to sustain coherence longer than expected."
        ),
        "tags": ["quantum", "decoherence", "physics"],
    },
    {
        "id": "3",
        "source": "Narrative Structures in Modern AI",
        "year": 2025,
        "author": "Doe, J.",
        "content": (
            'Large Language Models tend to converge on "mean" prose. To counteract this, '
            "injection of specific stylistic tokens is required during the inference pass."
        ),
        "tags": ["ai", "llm", "writing"],
    },
    {
        "id": "4",
        "source": "The Future of Interface Design",
        "year": 2022,
        "author": "Nielsen",
        "content": (
            "Split-brain interfaces allowing simultaneous creation and consumption reduce "
            "cognitive load by 15% compared to tab-switching workflows."
        ),
        "tags": ["ux", "interface", "productivity"],
    },
]


def seed_library() -> List[ResearchSnippet]:
    return [ResearchSnippet.from_dict(entry) for entry in SEED_LIBRARY]


def snippet_from_upload(filename: str, text: str, existing_ids: Iterable[str] = ()) -> ResearchSnippet:
    """Turn an uploaded text document into a library entry holding a short preview."""
    return ResearchSnippet(
        id=new_snippet_id(existing_ids, prefix="upload"),
        source=filename,
        year=datetime.now().year,
        author="Uploaded Doc",
        content=text[:UPLOAD_PREVIEW_CHARS] + "...",
        tags=["user-upload"],
    )


def read_upload(filename: str, data: bytes) -> str:
    """
    Decode an uploaded file to text. PDFs go through PyPDF2 page by page;
    anything else is read as UTF-8.
    Raises ValueError when a PDF cannot be parsed.
    """
    if not filename.lower().endswith(".pdf"):
        return data.decode("utf-8", errors="replace")

    try:
        reader = PyPDF2.PdfReader(BytesIO(data))
        text_parts = [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        logger.warning(f"[CITE] PDF extraction failed for {filename}: {e}")
        raise ValueError(f"Could not read PDF '{filename}'") from e
    return "\n".join(text_parts)


def merge_snippets(
    library: List[ResearchSnippet], incoming: Iterable[ResearchSnippet]
) -> Tuple[List[ResearchSnippet], List[ResearchSnippet]]:
    """
    Prepend incoming entries whose id is not already in the library.
    Entries are never merged on content; only the id decides.

    Returns:
        (new library list, entries that were actually added)
    """
    known = {s.id for s in library}
    added = []
    for snippet in incoming:
        if snippet.id in known:
            continue
        known.add(snippet.id)
        added.append(snippet)
    return added + list(library), added


# ─────────────────────────────────────────────
# BibTeX
# ─────────────────────────────────────────────

def to_bibtex(snippets: Iterable[ResearchSnippet]) -> str:
    """Generate BibTeX entries keyed like the \\cite{} commands inserted in the editor."""
    entries = []
    used_keys = set()
    for snippet in snippets:
        title = snippet.source.replace("&", "\\&")
        author = snippet.author.replace("&", "and")

        base_key = re.sub(r'[^A-Za-z0-9]', '', snippet.cite_key) or f"unknown{snippet.year}"
        key = base_key
        suffix = 1
        while key in used_keys:
            key = f"{base_key}{chr(96 + suffix)}"
            suffix += 1
        used_keys.add(key)

        entry = f"@article{{{key},\n"
        entry += f"  author   = {{{author}}},\n"
        entry += f"  title    = {{{title}}},\n"
        entry += f"  year     = {{{snippet.year}}}"
        if snippet.tags:
            entry += f",\n  keywords = {{{', '.join(snippet.tags)}}}"
        entry += "\n}"
        entries.append(entry)

    return "\n\n".join(entries)
