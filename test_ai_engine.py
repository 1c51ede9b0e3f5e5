#!/usr/bin/env python3
"""AI engine fallback, oracle parsing and ghost-writer prompt tests (no network)."""

import json
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest import mock
import sys

sys.path.insert(0, str(Path(__file__).parent))

from vibewriter.ai_engine import AIEngine
from vibewriter.library import seed_library
from vibewriter.oracle import LLMOracle, OracleError, SAMPLE_ERROR_TEXT
from vibewriter.profiles import default_profile, merge_with_defaults
from vibewriter.writing import GhostWriter, GenerationError, build_system_prompt, strip_trigger


class FakeEngine:
    """Replays canned safe_generate results and records prompts."""

    def __init__(self, *texts, ready=True):
        self.texts = list(texts)
        self.ready = ready
        self.prompts = []

    def is_ready(self):
        return self.ready

    def safe_generate(self, prompt, system_prompt="", max_tokens=1000, json_output=False):
        self.prompts.append((prompt, system_prompt, json_output))
        if not self.texts:
            return {"text": "", "status": "failed", "provider": "None", "error": "exhausted"}
        return {"text": self.texts.pop(0), "status": "success", "provider": "Fake", "error": None}


def _bare_engine():
    engine = AIEngine.__new__(AIEngine)
    engine.gemini_ready = False
    engine.cohere_client = None
    engine.openai_client = None
    engine.provider = "None"
    return engine


class TestAIEngine(unittest.TestCase):

    def test_no_providers(self):
        engine = _bare_engine()
        self.assertFalse(engine.is_ready())
        result = engine.safe_generate("hello")
        self.assertEqual(result["status"], "failed")
        self.assertEqual(result["error"], "No AI providers configured")

    def test_falls_through_once_per_provider(self):
        engine = _bare_engine()
        engine.cohere_client = mock.Mock()
        engine.cohere_client.chat.side_effect = RuntimeError("rate limited")
        engine.openai_client = mock.Mock()
        engine.openai_client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="from openai"))]
        )

        with mock.patch("vibewriter.ai_engine.OPENAI_API_KEY", "sk-test"):
            result = engine.generate("prompt", system_prompt="system")

        self.assertEqual(result["status"], "success")
        self.assertEqual(result["text"], "from openai")
        self.assertEqual(result["provider"], "OpenAI/HF")
        self.assertEqual(engine.cohere_client.chat.call_count, 1)

    def test_all_failures_are_reported(self):
        engine = _bare_engine()
        engine.cohere_client = mock.Mock()
        engine.cohere_client.chat.side_effect = RuntimeError("down")
        result = engine.generate("prompt")
        self.assertEqual(result["status"], "failed")
        self.assertIn("Cohere: down", result["error"])


class TestLLMOracle(unittest.TestCase):

    def test_keywords_parsed_and_normalized(self):
        oracle = LLMOracle(FakeEngine('```json\n["Quantum", " Solar ", 7, "a", "b", "c", "d"]\n```'))
        self.assertEqual(oracle.extract_keywords("x" * 80), ["quantum", "solar", "a", "b", "c"])

    def test_keywords_skip_short_text_and_unready_engine(self):
        engine = FakeEngine('["quantum"]')
        self.assertEqual(LLMOracle(engine).extract_keywords("short"), [])
        self.assertEqual(LLMOracle(FakeEngine('["q"]', ready=False)).extract_keywords("x" * 80), [])
        self.assertEqual(engine.prompts, [])

    def test_keywords_use_document_tail(self):
        engine = FakeEngine('["tail"]')
        LLMOracle(engine).extract_keywords("HEAD" + "y" * 600)
        self.assertNotIn("HEAD", engine.prompts[0][0])

    def test_keyword_failure_is_empty(self):
        self.assertEqual(LLMOracle(FakeEngine()).extract_keywords("x" * 80), [])
        self.assertEqual(LLMOracle(FakeEngine("not json")).extract_keywords("x" * 80), [])

    def test_generate_citations(self):
        records = [{"source": "S", "year": 2020, "author": "A", "content": "C", "tags": []}]
        oracle = LLMOracle(FakeEngine(json.dumps(records)))
        self.assertEqual(oracle.generate_citations("excerpt", 1), records)

    def test_generate_citations_rejects_object(self):
        with self.assertRaises(OracleError):
            LLMOracle(FakeEngine('{"source": "S"}')).generate_citations("excerpt", 1)
        with self.assertRaises(OracleError):
            LLMOracle(FakeEngine()).generate_citations("excerpt", 1)

    def test_analyze_style(self):
        oracle = LLMOracle(FakeEngine('{"tone": "Dry"}'))
        self.assertEqual(oracle.analyze_style("text " * 20), {"tone": "Dry"})
        with self.assertRaises(OracleError):
            LLMOracle(FakeEngine('["tone"]')).analyze_style("text " * 20)

    def test_style_sample_never_raises(self):
        self.assertEqual(LLMOracle(FakeEngine()).generate_style_sample(default_profile()), SAMPLE_ERROR_TEXT)
        self.assertEqual(LLMOracle(FakeEngine("Prose.")).generate_style_sample(default_profile()), "Prose.")


class TestGhostWriter(unittest.TestCase):

    def test_ghost_write_parses_paragraph_and_references(self):
        payload = {
            "paragraph": "  Next paragraph.  ",
            "newReferences": [
                {"id": "1", "source": "New", "year": 2021, "author": "Kim", "content": "c", "tags": ["t"]},
                {"source": "Bad year", "year": "soon"},
                "junk",
            ],
        }
        engine = FakeEngine(json.dumps(payload))
        response = GhostWriter(engine).ghost_write("Draft text", default_profile(), seed_library(), "markdown")

        self.assertEqual(response.paragraph, "Next paragraph.")
        self.assertEqual(len(response.new_references), 1)
        self.assertTrue(response.new_references[0].id.startswith("gen_"))
        self.assertTrue(engine.prompts[0][2])
        self.assertIn("[Existing Source ID: 1]", engine.prompts[0][1])

    def test_ghost_write_reference_with_string_tags(self):
        payload = {
            "paragraph": "Text.",
            "newReferences": [{"source": "S", "year": 2020, "author": "Kim", "content": "c", "tags": "quantum"}],
        }
        response = GhostWriter(FakeEngine(json.dumps(payload))).ghost_write(
            "Draft", default_profile(), [], "markdown")
        self.assertEqual(response.new_references[0].tags, [])

    def test_ghost_write_uses_last_300_words(self):
        engine = FakeEngine('{"paragraph": "p"}')
        content = "first " + " ".join(["w"] * 400)
        GhostWriter(engine).ghost_write(content, default_profile(), [], "markdown")
        self.assertNotIn("first", engine.prompts[0][0])

    def test_ghost_write_errors(self):
        with self.assertRaises(GenerationError):
            GhostWriter(FakeEngine()).ghost_write("Draft", default_profile(), [], "markdown")
        with self.assertRaises(GenerationError):
            GhostWriter(FakeEngine('{"text": "no paragraph"}')).ghost_write("Draft", default_profile(), [], "markdown")

    def test_rewrite_and_continue_fallbacks(self):
        writer = GhostWriter(FakeEngine())
        self.assertEqual(writer.rewrite("keep me", default_profile(), "latex"), "keep me")
        self.assertEqual(writer.continue_text("keep me", default_profile(), "latex"), "")

    def test_system_prompt_rules(self):
        american = build_system_prompt(merge_with_defaults({"dialect": "American"}), "latex", "")
        british = build_system_prompt(merge_with_defaults({"dialect": "British", "allowContractions": False}),
                                      "docx", "")
        self.assertIn("Use the Oxford Comma? Yes", american)
        self.assertIn("EDITOR MODE: LATEX", american)
        self.assertIn("Use the Oxford Comma? No", british)
        self.assertIn("Do NOT use 'can't'", british)

    def test_strip_trigger(self):
        self.assertEqual(strip_trigger("text+++"), "text")
        self.assertEqual(strip_trigger("a+++b"), "a+++b")


if __name__ == "__main__":
    unittest.main(verbosity=2)
