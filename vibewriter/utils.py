import json
import logging
import re
import sys
import time
from typing import Any, Iterable, Optional
from uuid import uuid4


def setup_logger(name: str):
    """Set up a standard logger."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(handler)
    return logger


def new_snippet_id(existing: Iterable[str] = (), prefix: str = "gen") -> str:
    """
    Create a snippet id that collides with none of the given ids.

    Args:
        existing: ids already present in the library
        prefix:   leading tag, "gen" for AI citations, "upload" for documents

    Returns:
        A string like "gen_1718000000000_3f9a1c2be"
    """
    taken = set(existing)
    while True:
        candidate = f"{prefix}_{int(time.time() * 1000)}_{uuid4().hex[:9]}"
        if candidate not in taken:
            return candidate


def parse_json_response(text: Optional[str]) -> Any:
    """
    Parse JSON returned by an LLM, tolerating ```json fences and leading chatter.
    Raises ValueError when nothing parseable is found.
    """
    if not text or not text.strip():
        raise ValueError("Empty response")

    cleaned = text.replace("```json", "").replace("```", "").strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Fall back to the outermost array or object in the text
    match = re.search(r'(\[[\s\S]*\]|\{[\s\S]*\})', cleaned)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError as e:
            raise ValueError(f"Malformed JSON: {e}") from e
    raise ValueError("No JSON found in response")


def split_csv_words(raw: str) -> list:
    """Split a comma-separated input box value, trimming and dropping blanks."""
    return [s.strip() for s in (raw or "").split(",") if s.strip()]
