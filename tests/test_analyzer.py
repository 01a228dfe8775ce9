import unittest
from unittest.mock import MagicMock, patch

from video_summarizer.analyzer.exceptions import (
    AIProviderError,
    GeminiAPIError,
    GroqAPIError,
    MalformedResponseError,
)
from video_summarizer.analyzer.fallback import FallbackOrchestrator, FallbackStage, basic_summary
from video_summarizer.analyzer.formatting import (
    convert_transcript_to_paragraphs,
    format_summary,
    split_paragraphs,
    truncate_text,
)
from video_summarizer.analyzer.provider import get_providers, reset_providers
from video_summarizer.analyzer.summarizer import SummaryGenerator, build_summary_prompt
from video_summarizer.config import settings
from video_summarizer.interfaces import TranscriptSegment, VideoMetadata

from .support import VIDEO_ID, FakeProvider, make_metadata

TRANSCRIPT = (
    "All right, so here we are in front of the elephants. The cool thing about these guys is "
    "that they have really long trunks! And that's cool? And that's pretty much all there is to say."
)


class TestPrompt(unittest.TestCase):
    def test_short_prompt_includes_context_and_task(self):
        prompt = build_summary_prompt("line one\nline two", make_metadata(), "short")
        self.assertIn("Title: Me at the zoo", prompt)
        self.assertIn("Channel: jawed", prompt)
        self.assertIn("Duration: PT19S", prompt)
        self.assertIn("3-5 bullet points", prompt)
        self.assertIn("line one line two", prompt)

    def test_missing_fields_are_omitted(self):
        metadata = make_metadata()
        metadata.channel_title = None
        metadata.duration_iso = None
        prompt = build_summary_prompt(TRANSCRIPT, metadata, "comprehensive")
        self.assertNotIn("Channel:", prompt)
        self.assertNotIn("None", prompt)
        self.assertIn("sections", prompt)

    def test_placeholder_metadata_adds_no_context(self):
        prompt = build_summary_prompt(TRANSCRIPT, VideoMetadata.placeholder(VIDEO_ID), "short")
        self.assertNotIn("CONTEXT", prompt)
        self.assertNotIn("Video Title Unavailable", prompt)

    def test_prompt_is_deterministic(self):
        self.assertEqual(
            build_summary_prompt(TRANSCRIPT, make_metadata(), "short"),
            build_summary_prompt(TRANSCRIPT, make_metadata(), "short"),
        )

    def test_unknown_summary_type(self):
        with self.assertRaises(ValueError):
            build_summary_prompt(TRANSCRIPT, make_metadata(), "haiku")


class TestSummaryGenerator(unittest.TestCase):
    def test_returns_provider_text(self):
        provider = FakeProvider("gemini", response="- one\n- two")
        text = SummaryGenerator().generate(TRANSCRIPT, make_metadata(), "short", provider)
        self.assertEqual(text, "- one\n- two")
        self.assertEqual(len(provider.calls), 1)

    def test_unexpected_errors_become_provider_errors(self):
        provider = FakeProvider("gemini", error=ConnectionResetError("reset by peer"))
        with self.assertRaises(AIProviderError):
            SummaryGenerator().generate(TRANSCRIPT, make_metadata(), "short", provider)

    def test_empty_response_is_malformed(self):
        provider = FakeProvider("groq", response="   ")
        with self.assertRaises(MalformedResponseError):
            SummaryGenerator().generate(TRANSCRIPT, make_metadata(), "short", provider)


class TestFallbackOrchestrator(unittest.TestCase):
    def _run(self, *providers, preferred="gemini"):
        orchestrator = FallbackOrchestrator(providers={p.name: p for p in providers})
        return orchestrator.generate_with_fallback(TRANSCRIPT, make_metadata(), "short", preferred)

    def test_primary_success(self):
        gemini, groq = FakeProvider("gemini"), FakeProvider("groq")
        result = self._run(gemini, groq)
        self.assertEqual((result.provider_role, result.provider_name), ("primary", "gemini"))
        self.assertFalse(result.degraded)
        self.assertEqual(len(groq.calls), 0)

    def test_secondary_after_primary_failure(self):
        gemini = FakeProvider("gemini", error=GeminiAPIError("quota exhausted"))
        groq = FakeProvider("groq", response="- from groq")
        with self.assertLogs("video_summarizer.analyzer.fallback", level="WARNING"):
            result = self._run(gemini, groq)
        self.assertEqual((result.provider_role, result.provider_name), ("secondary", "groq"))
        self.assertEqual(result.text, "- from groq")
        self.assertFalse(result.degraded)
        self.assertIn("quota exhausted", result.errors[0])

    def test_preferred_provider_goes_first(self):
        gemini, groq = FakeProvider("gemini"), FakeProvider("groq")
        result = self._run(gemini, groq, preferred="groq")
        self.assertEqual((result.provider_role, result.provider_name), ("primary", "groq"))
        self.assertEqual(len(gemini.calls), 0)

    def test_all_failures_end_in_basic_summary(self):
        gemini = FakeProvider("gemini", error=GeminiAPIError("401"))
        groq = FakeProvider("groq", error=GroqAPIError("503"))
        result = self._run(gemini, groq)
        self.assertEqual((result.provider_role, result.provider_name), ("basic", "basic"))
        self.assertTrue(result.degraded)
        self.assertEqual(len(result.errors), 2)
        self.assertTrue(result.text.startswith("# Me at the zoo"))

    def test_no_secondary_configured(self):
        gemini = FakeProvider("gemini", error=GeminiAPIError("boom"))
        result = self._run(gemini)
        self.assertEqual(result.provider_role, FallbackStage.BASIC.value)

    def test_no_providers_configured(self):
        result = self._run()
        self.assertTrue(result.degraded)
        self.assertIn("Content Preview", result.text)

    def test_never_raises(self):
        generator = MagicMock()
        generator.generate.side_effect = KeyError("unexpected")
        orchestrator = FallbackOrchestrator(providers={"gemini": FakeProvider("gemini")}, generator=generator)
        result = orchestrator.generate_with_fallback(TRANSCRIPT, make_metadata(), "short", "gemini")
        self.assertTrue(result.degraded)


class TestBasicSummary(unittest.TestCase):
    def test_title_and_first_sentences(self):
        text = basic_summary(TRANSCRIPT, make_metadata(), sentences=2)
        self.assertIn("# Me at the zoo", text)
        self.assertIn("in front of the elephants. The cool thing", text)
        self.assertIn("really long trunks!", text)
        self.assertNotIn("And that's cool?", text)
        self.assertIn(f"approximately {len(TRANSCRIPT)} characters", text)

    def test_placeholder_metadata_uses_generic_title(self):
        text = basic_summary(TRANSCRIPT, VideoMetadata.placeholder(VIDEO_ID))
        self.assertTrue(text.startswith("# Video Summary"))

    def test_deterministic(self):
        self.assertEqual(basic_summary(TRANSCRIPT, make_metadata()), basic_summary(TRANSCRIPT, make_metadata()))


class TestFormatting(unittest.TestCase):
    SAMPLES = [
        "Here's a summary:\n\n- one\n- two",
        "Here is a summary: Summary: text",
        "summary: key points: - a",
        "Here are the key points:\r\n- a   \r\n\r\n\r\n\r\n- b",
        "Line<br>Next<br/>Last",
        "Plain text with &amp; entity",
        "   ",
        "Summary:",
    ]

    def test_strips_preambles(self):
        self.assertEqual(format_summary("Here's a summary:\n\n- one\n- two"), "- one\n- two")
        self.assertEqual(format_summary("Here is a summary: Summary: text"), "text")
        self.assertEqual(format_summary("KEY POINTS: - a"), "- a")

    def test_preamble_only_stripped_at_start(self):
        text = "- Summary: the video covers elephants"
        self.assertEqual(format_summary(text), text)

    def test_normalizes_whitespace(self):
        self.assertEqual(format_summary("Here are the key points:\r\n- a   \r\n\r\n\r\n\r\n- b"), "- a\n\n- b")
        self.assertEqual(format_summary("Line<br>Next<br/>Last"), "Line\nNext\nLast")

    def test_idempotent(self):
        for sample in self.SAMPLES:
            with self.subTest(sample=sample):
                once = format_summary(sample)
                self.assertEqual(format_summary(once), once)

    def test_split_paragraphs(self):
        self.assertEqual(split_paragraphs("**A**\n- one\n\n**B**\n- two\n"), ["**A**\n- one", "**B**\n- two"])


class TestTranscriptUtilities(unittest.TestCase):
    def test_short_paragraphs_are_merged(self):
        segments = [TranscriptSegment("Hi there.", 0.0), TranscriptSegment("Welcome back.", 1.0)]
        self.assertEqual(convert_transcript_to_paragraphs(segments), ["Hi there. Welcome back."])

    def test_pause_starts_new_paragraph(self):
        first = "so this is a long thought " * 5
        second = "and this one continues after a pause " * 4
        segments = [
            TranscriptSegment(first.strip(), 0.0),
            TranscriptSegment(second.strip(), 10.0),
        ]
        paragraphs = convert_transcript_to_paragraphs(segments)
        self.assertEqual(paragraphs, [first.strip(), second.strip()])

    def test_truncate_at_sentence_boundary(self):
        text = "First sentence. Second sentence is longer. Third."
        self.assertEqual(truncate_text(text, 30), "First sentence.")
        self.assertEqual(truncate_text(text, 200), text)
        self.assertEqual(truncate_text("no punctuation here at all", 10), "no punctua...")


class TestProviders(unittest.TestCase):
    def tearDown(self):
        reset_providers()

    def test_unconfigured_providers_are_skipped(self):
        reset_providers()
        with patch.object(settings, "gemini_api_key", ""), patch.object(settings, "groq_api_key", ""):
            self.assertEqual(get_providers(), {})

    @patch("video_summarizer.analyzer.gemini.genai.Client")
    def test_gemini_generate(self, mock_client_cls):
        from video_summarizer.analyzer.gemini import GeminiProvider

        mock_client = mock_client_cls.return_value
        mock_client.models.generate_content.return_value = MagicMock(text="- gemini says")
        with patch.object(settings, "gemini_api_key", "test-key"):
            provider = GeminiProvider()

        self.assertEqual(provider.generate("prompt", system="sys", max_tokens=100), "- gemini says")
        config = mock_client.models.generate_content.call_args.kwargs["config"]
        self.assertEqual(config.system_instruction, "sys")
        self.assertEqual(config.max_output_tokens, 100)

    @patch("video_summarizer.analyzer.gemini.genai.Client")
    def test_gemini_auth_error_not_retried(self, mock_client_cls):
        from video_summarizer.analyzer.gemini import GeminiProvider

        mock_client = mock_client_cls.return_value
        mock_client.models.generate_content.side_effect = Exception("API_KEY_INVALID")
        with patch.object(settings, "gemini_api_key", "test-key"):
            provider = GeminiProvider()

        with self.assertRaises(GeminiAPIError):
            provider.generate("prompt")
        self.assertEqual(mock_client.models.generate_content.call_count, 1)

    @patch("video_summarizer.analyzer.groq.Groq")
    def test_groq_generate(self, mock_groq_cls):
        from video_summarizer.analyzer.groq import GroqProvider

        mock_client = mock_groq_cls.return_value
        mock_client.chat.completions.create.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content="- groq says"))]
        )
        with patch.object(settings, "groq_api_key", "test-key"):
            provider = GroqProvider()

        self.assertEqual(provider.generate("prompt", system="sys"), "- groq says")
        messages = mock_client.chat.completions.create.call_args.kwargs["messages"]
        self.assertEqual(messages[0], {"role": "system", "content": "sys"})

    @patch("video_summarizer.analyzer.groq.Groq")
    def test_groq_empty_response(self, mock_groq_cls):
        from video_summarizer.analyzer.groq import GroqProvider

        mock_groq_cls.return_value.chat.completions.create.return_value = MagicMock(choices=[])
        with patch.object(settings, "groq_api_key", "test-key"):
            provider = GroqProvider()

        with self.assertRaises(MalformedResponseError):
            provider.generate("prompt")


if __name__ == "__main__":
    unittest.main()
