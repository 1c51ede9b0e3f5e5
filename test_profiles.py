#!/usr/bin/env python3
"""Style profile reconciliation, error sentinel and preset tests."""

import unittest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent))

from vibewriter.models import StyleProfile, to_camel
from vibewriter.profiles import (
    FIELD_DEFAULTS,
    PRESETS,
    UnknownPresetError,
    analyze_profile,
    apply_patch,
    apply_preset,
    coerce_field,
    default_profile,
    error_profile,
    merge_with_defaults,
)


class TestMergeWithDefaults(unittest.TestCase):

    def test_empty_record_yields_all_defaults(self):
        profile = merge_with_defaults({})
        for name, default in FIELD_DEFAULTS.items():
            self.assertEqual(getattr(profile, name), default, name)

    def test_none_record_yields_all_defaults(self):
        self.assertEqual(merge_with_defaults(None), merge_with_defaults({}))

    def test_each_missing_field_takes_its_default(self):
        full = default_profile().to_dict()
        for name, default in FIELD_DEFAULTS.items():
            wire_key = to_camel(name)
            partial = {k: v for k, v in full.items() if k != wire_key}
            profile = merge_with_defaults(partial)
            self.assertEqual(getattr(profile, name), default, wire_key)

    def test_supplied_camel_case_values_are_kept(self):
        profile = merge_with_defaults({
            "tone": "Wry",
            "formalityLevel": 72,
            "dialect": "British",
            "useMetaphors": True,
            "bannedWords": ["synergy"],
        })
        self.assertEqual(profile.tone, "Wry")
        self.assertEqual(profile.formality_level, 72)
        self.assertEqual(profile.dialect, "British")
        self.assertTrue(profile.use_metaphors)
        self.assertEqual(profile.banned_words, ["synergy"])
        self.assertEqual(profile.jargon_level, "Medium")

    def test_invalid_values_are_defaulted(self):
        profile = merge_with_defaults({
            "dialect": "Martian",
            "useMetaphors": "yes",
            "tone": None,
            "allowedPunctuation": "; :",
        })
        self.assertEqual(profile.dialect, "American")
        self.assertFalse(profile.use_metaphors)
        self.assertEqual(profile.tone, "Neutral")
        self.assertEqual(profile.allowed_punctuation, [",", "."])

    def test_non_object_record_yields_all_defaults(self):
        for raw in ([1], "tone", 42):
            self.assertEqual(merge_with_defaults(raw), merge_with_defaults({}))

    def test_default_lists_are_not_shared(self):
        first = merge_with_defaults({})
        first.allowed_punctuation.append("!")
        self.assertEqual(merge_with_defaults({}).allowed_punctuation, [",", "."])


class TestCoerceField(unittest.TestCase):

    def test_percent_is_clamped_and_rounded(self):
        self.assertEqual(coerce_field("formality_level", 140), 100)
        self.assertEqual(coerce_field("formality_level", -3), 0)
        self.assertEqual(coerce_field("active_voice", "64.6%"), 65)

    def test_percent_rejects_garbage(self):
        for value in ("high", True, float("nan"), float("inf"), [50]):
            with self.assertRaises(ValueError):
                coerce_field("sentence_variance", value)

    def test_unknown_field(self):
        with self.assertRaises(ValueError):
            coerce_field("font_size", 12)

    def test_list_drops_blank_and_non_string_items(self):
        self.assertEqual(coerce_field("banned_words", [" delve ", "", 3, "realm"]), ["delve", "realm"])


class TestErrorProfile(unittest.TestCase):

    def test_error_profile_markers(self):
        profile = error_profile()
        self.assertEqual(profile.tone, "Error")
        self.assertEqual(profile.avg_sentence_length, "Error")
        self.assertEqual(profile.jargon_level, "Error")
        self.assertEqual(profile.raw_summary, "Failed to analyze style.")
        self.assertEqual((profile.formality_level, profile.sentence_variance, profile.active_voice),
                         (50, 50, 50))
        self.assertEqual(profile.allowed_punctuation, [])
        self.assertEqual(profile.banned_words, [])
        self.assertEqual(profile.transition_words, [])

    def test_analysis_exception_yields_error_profile(self):
        def broken(text):
            raise RuntimeError("provider down")
        self.assertEqual(analyze_profile(broken, "x" * 60), error_profile())

    def test_non_object_analysis_yields_error_profile(self):
        self.assertEqual(analyze_profile(lambda text: ["tone"], "x" * 60).tone, "Error")

    def test_partial_analysis_is_merged(self):
        profile = analyze_profile(lambda text: {"tone": "Playful"}, "x" * 60)
        self.assertEqual(profile.tone, "Playful")
        self.assertEqual(profile.writing_domain, "General")


class TestPresets(unittest.TestCase):

    def test_scientific_preset_overrides_only_its_fields(self):
        base = merge_with_defaults({"tone": "Chatty", "dialect": "British", "bannedWords": ["very"]})
        result = apply_preset(base, "scientific")

        self.assertEqual(result.writing_domain, "Scientific")
        self.assertEqual(result.formality_level, 90)
        self.assertEqual(result.active_voice, 60)
        self.assertEqual(result.structural_bias, "Coupling (2s)")
        self.assertFalse(result.allow_contractions)
        # untouched
        self.assertEqual(result.tone, "Chatty")
        self.assertEqual(result.dialect, "British")
        self.assertEqual(result.banned_words, ["very"])
        self.assertEqual(result.sentence_variance, base.sentence_variance)

    def test_preset_name_is_case_insensitive(self):
        result = apply_preset(default_profile(), " Scientific ")
        self.assertEqual(result.formality_level, PRESETS["scientific"]["formality_level"])

    def test_unknown_preset(self):
        with self.assertRaises(UnknownPresetError):
            apply_preset(default_profile(), "poetic")

    def test_apply_patch_returns_copy(self):
        base = default_profile()
        patched = apply_patch(base, {"tone": "Warm"})
        self.assertEqual(patched.tone, "Warm")
        self.assertEqual(base.tone, "Objective")

    def test_apply_patch_rejects_invalid_values(self):
        with self.assertRaises(ValueError):
            apply_patch(default_profile(), {"sentenceStructure": "Zigzag"})

    def test_apply_patch_rejects_non_object(self):
        with self.assertRaises(ValueError):
            apply_patch(default_profile(), [("tone", "Warm")])


class TestDefaultProfile(unittest.TestCase):

    def test_session_default_is_scientific(self):
        profile = default_profile()
        self.assertIsInstance(profile, StyleProfile)
        self.assertEqual(profile.writing_domain, "Scientific")
        self.assertIn("delve", profile.banned_words)
        self.assertIn(";", profile.allowed_punctuation)

    def test_wire_format_is_camel_case(self):
        data = default_profile().to_dict()
        self.assertIn("avgSentenceLength", data)
        self.assertIn("allowEndingPrepositions", data)
        self.assertNotIn("avg_sentence_length", data)
        self.assertEqual(merge_with_defaults(data), default_profile())


if __name__ == "__main__":
    unittest.main(verbosity=2)
