from __future__ import annotations

from types import SimpleNamespace
import unittest

from coloriai.analysis import ColorAnalyzer, build_prompt, prompt_age, prompt_style
from coloriai.errors import AnalysisError
from tests.support import SAMPLE_REPORT, chat_response, make_settings


class FakeCompletions:
    def __init__(self, replies: list) -> None:
        self.replies = list(replies)
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return chat_response(reply)


def fake_client(*replies) -> tuple[SimpleNamespace, FakeCompletions]:
    completions = FakeCompletions(list(replies))
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class PromptTestCase(unittest.TestCase):
    def test_age_defaults(self) -> None:
        self.assertEqual(prompt_age(None), "35")
        self.assertEqual(prompt_age("Prefer not to say"), "35")
        self.assertEqual(prompt_age("20-29"), "20-29")

    def test_style_default(self) -> None:
        self.assertEqual(prompt_style(None), "Daily")
        self.assertEqual(prompt_style("Formal"), "Formal")

    def test_prompt_mentions_age_style_and_headers(self) -> None:
        prompt = build_prompt("30-39", "Streetwear")
        self.assertIn("**30-39 years old**", prompt)
        self.assertIn("**Streetwear** style", prompt)
        for header in ("**Seasonal Color Type:**", "**Color Extraction:**", "**Korean Cushion:**", "**Image Prompt:**"):
            self.assertIn(header, prompt)


class ColorAnalyzerTestCase(unittest.TestCase):
    def test_sends_image_and_returns_text(self) -> None:
        client, completions = fake_client(SAMPLE_REPORT)
        analyzer = ColorAnalyzer(make_settings(), client=client)

        text = analyzer.analyze("data:image/jpeg;base64,AAAA", "20-29", "Girly")

        self.assertEqual(text, SAMPLE_REPORT)
        call = completions.calls[0]
        self.assertEqual(call["model"], "gpt-5-mini")
        self.assertNotIn("temperature", call)
        parts = call["messages"][1]["content"]
        self.assertEqual(parts[1]["image_url"]["url"], "data:image/jpeg;base64,AAAA")

    def test_falls_back_when_model_missing(self) -> None:
        client, completions = fake_client(
            RuntimeError("The model `gpt-5-mini` does not exist"),
            SAMPLE_REPORT,
        )
        analyzer = ColorAnalyzer(make_settings(), client=client)

        analyzer.analyze("data:image/jpeg;base64,AAAA")

        self.assertEqual([c["model"] for c in completions.calls], ["gpt-5-mini", "gpt-4o-mini"])
        self.assertIn("temperature", completions.calls[1])

    def test_other_errors_are_not_retried(self) -> None:
        client, completions = fake_client(RuntimeError("rate limited"), SAMPLE_REPORT)
        analyzer = ColorAnalyzer(make_settings(), client=client)

        with self.assertRaises(AnalysisError):
            analyzer.analyze("data:image/jpeg;base64,AAAA")
        self.assertEqual(len(completions.calls), 1)

    def test_all_models_unavailable(self) -> None:
        client, _ = fake_client(
            RuntimeError("model does not exist"),
            RuntimeError("model: you do not have access"),
        )
        analyzer = ColorAnalyzer(make_settings(), client=client)
        with self.assertRaises(AnalysisError):
            analyzer.analyze("data:image/jpeg;base64,AAAA")

    def test_reply_without_season_section_is_rejected(self) -> None:
        client, _ = fake_client("I can't analyze people in photos.")
        analyzer = ColorAnalyzer(make_settings(), client=client)
        with self.assertRaises(AnalysisError) as ctx:
            analyzer.analyze("data:image/jpeg;base64,AAAA")
        self.assertIn("Missing required color analysis sections", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
