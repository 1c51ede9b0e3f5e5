"""
Style Profile Reconciliation
Turns partial or untrusted style records into fully populated StyleProfiles.

Features:
  - Field-by-field coalesce with static per-field defaults (flat, not a deep merge)
  - Error sentinel profile when analysis fails; never raises to the caller
  - Static presets applied as partial patches over an editing draft
"""

from typing import Any, Callable, Dict, Optional

from vibewriter.models import (
    StyleProfile,
    DIALECTS,
    SENTENCE_STRUCTURES,
    SENTENCE_LENGTH_BIASES,
    VOCABULARY_STYLES,
    FREQUENCIES,
    WRITING_DOMAINS,
    STRUCTURAL_BIASES,
    to_snake,
)
from vibewriter.utils import setup_logger

logger = setup_logger(__name__)


class UnknownPresetError(KeyError):
    pass


# ── Defaults ──────────────────────────────────────────────
FIELD_DEFAULTS: Dict[str, Any] = {
    "tone": "Neutral",
    "avg_sentence_length": "Medium",
    "jargon_level": "Medium",
    "transition_words": [],
    "raw_summary": "",
    "formality_level": 50,
    "sentence_variance": 50,
    "active_voice": 50,
    "dialect": "American",
    "sentence_structure": "Natural",
    "sentence_length_bias": "Varied",
    "vocabulary_style": "Literal",
    "modifier_frequency": "Medium",
    "connective_frequency": "Medium",
    "writing_domain": "General",
    "structural_bias": "Default",
    "use_metaphors": False,
    "use_analogies": False,
    "use_anecdotes": False,
    "allow_contractions": True,
    "allow_split_infinitives": True,
    "allow_ending_prepositions": True,
    "use_idioms": False,
    "use_rhetorical_devices": False,
    "prefer_concrete_nouns": True,
    "allowed_punctuation": [",", "."],
    "banned_words": [],
}

ENUM_FIELDS = {
    "dialect": DIALECTS,
    "sentence_structure": SENTENCE_STRUCTURES,
    "sentence_length_bias": SENTENCE_LENGTH_BIASES,
    "vocabulary_style": VOCABULARY_STYLES,
    "modifier_frequency": FREQUENCIES,
    "connective_frequency": FREQUENCIES,
    "writing_domain": WRITING_DOMAINS,
    "structural_bias": STRUCTURAL_BIASES,
}

PERCENT_FIELDS = ("formality_level", "sentence_variance", "active_voice")
LIST_FIELDS = ("transition_words", "allowed_punctuation", "banned_words")
BOOL_FIELDS = tuple(
    name for name, value in FIELD_DEFAULTS.items() if isinstance(value, bool)
)

# Starting profile of a new session: scientific academic prose.
DEFAULT_STYLE_PROFILE: Dict[str, Any] = {
    "tone": "Objective",
    "avg_sentence_length": "Medium-Long",
    "jargon_level": "High",
    "transition_words": [],
    "raw_summary": "Scientific academic profile.",
    "formality_level": 85,
    "sentence_variance": 40,
    "active_voice": 60,
    "dialect": "American",
    "sentence_structure": "Balanced",
    "sentence_length_bias": "Varied",
    "vocabulary_style": "Literal",
    "modifier_frequency": "Low",
    "connective_frequency": "Low",
    "writing_domain": "Scientific",
    "structural_bias": "Coupling (2s)",
    "use_metaphors": False,
    "use_analogies": True,
    "use_anecdotes": False,
    "allow_contractions": False,
    "allow_split_infinitives": False,
    "allow_ending_prepositions": False,
    "use_idioms": False,
    "use_rhetorical_devices": False,
    "prefer_concrete_nouns": True,
    "allowed_punctuation": [";", ":", "—", "()", "!", ",", "."],
    "banned_words": [
        "delve", "tapestry", "landscape", "testament", "underscore",
        "seamless", "game-changer", "transformative", "leverage",
        "unleash", "realm", "foster", "robust", "revolutionize", "cutting-edge",
    ],
}

PRESETS: Dict[str, Dict[str, Any]] = {
    "scientific": {
        "writing_domain": "Scientific",
        "structural_bias": "Coupling (2s)",
        "vocabulary_style": "Literal",
        "modifier_frequency": "Low",
        "connective_frequency": "Low",
        "formality_level": 90,
        "active_voice": 60,  # scientific passive conventions
        "use_metaphors": False,
        "use_analogies": True,
        "use_anecdotes": False,
        "allow_contractions": False,
        "allow_split_infinitives": False,
        "allow_ending_prepositions": False,
        "prefer_concrete_nouns": True,
        "sentence_structure": "Balanced",
    },
}

PUNCTUATION_OPTIONS = [";", ":", "—", "()", "!", "?", "...", "–"]


# ── Field coercion ────────────────────────────────────────

def _coerce_percent(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    number = float(value)
    if number != number:  # NaN
        raise ValueError("expected a number")
    return max(0, min(100, int(round(number))))


def _coerce_list(value: Any) -> list:
    if not isinstance(value, (list, tuple)):
        raise ValueError("expected a list")
    return [str(item).strip() for item in value if isinstance(item, str) and item.strip()]


def coerce_field(name: str, value: Any) -> Any:
    """
    Validate one profile value and return it in canonical form.
    Raises ValueError for unknown fields or values outside the field's domain.
    """
    if name not in FIELD_DEFAULTS:
        raise ValueError(f"Unknown style field: {name}")
    if value is None:
        raise ValueError(f"{name} must not be null")

    if name in ENUM_FIELDS:
        if value not in ENUM_FIELDS[name]:
            raise ValueError(f"{name} must be one of {', '.join(ENUM_FIELDS[name])}")
        return value
    if name in PERCENT_FIELDS:
        try:
            return _coerce_percent(value)
        except (TypeError, ValueError, OverflowError) as e:
            raise ValueError(f"{name}: {e}") from e
    if name in BOOL_FIELDS:
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be true or false")
        return value
    if name in LIST_FIELDS:
        return _coerce_list(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")
    return value.strip()


def _field_key(key: str) -> str:
    """Accept wire (camelCase) or attribute (snake_case) names."""
    return key if key in FIELD_DEFAULTS else to_snake(key)


# ── Merge-with-fallback ───────────────────────────────────

def merge_with_defaults(raw: Optional[Dict[str, Any]]) -> StyleProfile:
    """
    Coalesce a possibly partial analyzer record into a complete StyleProfile.

    A record that is not a dict counts as empty. Each field prefers the
    supplied value; a missing, null, mistyped or out-of-domain value is
    replaced by that field's entry in FIELD_DEFAULTS.
    """
    if not isinstance(raw, dict):
        raw = {}
    supplied = {_field_key(str(k)): v for k, v in raw.items()}
    values = {}
    defaulted = []
    for name, default in FIELD_DEFAULTS.items():
        try:
            values[name] = coerce_field(name, supplied.get(name))
        except ValueError:
            values[name] = list(default) if isinstance(default, list) else default
            defaulted.append(name)
    if defaulted:
        logger.info(f"[STYLE] Defaulted {len(defaulted)} field(s): {', '.join(defaulted)}")
    return StyleProfile(**values)


def error_profile() -> StyleProfile:
    """Sentinel profile returned when style analysis fails."""
    profile = merge_with_defaults({})
    profile.tone = "Error"
    profile.avg_sentence_length = "Error"
    profile.jargon_level = "Error"
    profile.raw_summary = "Failed to analyze style."
    for name in PERCENT_FIELDS:
        setattr(profile, name, 50)
    for name in LIST_FIELDS:
        setattr(profile, name, [])
    return profile


def analyze_profile(analyze: Callable[[str], Any], sample_text: str) -> StyleProfile:
    """
    Run an analysis call and reconcile its output. Always returns a usable
    profile: analysis failures yield error_profile() instead of raising.
    """
    try:
        raw = analyze(sample_text)
    except Exception as e:
        logger.warning(f"[STYLE] Style analysis failed ({type(e).__name__}): {str(e)[:100]}")
        return error_profile()

    if not isinstance(raw, dict):
        logger.warning(f"[STYLE] Style analysis returned {type(raw).__name__}, expected an object")
        return error_profile()
    return merge_with_defaults(raw)


def default_profile() -> StyleProfile:
    return StyleProfile(**{k: (list(v) if isinstance(v, list) else v) for k, v in DEFAULT_STYLE_PROFILE.items()})


# ── Presets & manual edits ────────────────────────────────

def apply_patch(profile: StyleProfile, patch: Dict[str, Any]) -> StyleProfile:
    """
    Return a copy of profile with the patch's fields overridden.
    Fields the patch does not mention are left untouched.
    """
    if not isinstance(patch, dict):
        raise ValueError("style changes must be an object of field: value pairs")
    updated = profile.copy()
    for key, value in patch.items():
        name = _field_key(key)
        setattr(updated, name, coerce_field(name, value))
    return updated


def apply_preset(profile: StyleProfile, preset_name: str) -> StyleProfile:
    key = preset_name.strip().lower()
    if key not in PRESETS:
        raise UnknownPresetError(preset_name)
    logger.info(f"[STYLE] Applying preset '{key}'")
    return apply_patch(profile, PRESETS[key])
