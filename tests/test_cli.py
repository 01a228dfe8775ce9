import unittest
from unittest.mock import patch

from typer.testing import CliRunner

from video_summarizer.cli import app
from video_summarizer.ingestion.exceptions import NoTranscriptAvailable
from video_summarizer.storage.accounts import UserTierStore

from .support import VIDEO_ID, VIDEO_URL, Pipeline

runner = CliRunner()


class TestCli(unittest.TestCase):
    def setUp(self):
        self.pipeline_kwargs = {}
        self.pipeline = Pipeline()
        self.addCleanup(self.pipeline.close)
        self.tiers = UserTierStore(self.pipeline.engine)
        patchers = [
            patch("video_summarizer.cli.init_db"),
            patch("video_summarizer.cli._create_service", side_effect=self._fresh_service),
            patch("video_summarizer.cli._tier_store", return_value=self.tiers),
        ]
        for p in patchers:
            p.start()
            self.addCleanup(p.stop)

    def _fresh_service(self):
        # Each command closes its service; hand out a new one on the same database
        pipeline = Pipeline(engine=self.pipeline.engine, clock=self.pipeline.clock, **self.pipeline_kwargs)
        return pipeline.service

    def test_summarize(self):
        result = runner.invoke(app, ["summarize", VIDEO_URL, "--user", "user-1"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Me at the zoo", result.output)
        self.assertIn("gemini (primary)", result.output)
        self.assertIn("Remaining today: 2", result.output)
        self.assertEqual(self.pipeline.usage_count(), 1)

    def test_summarize_invalid_url(self):
        result = runner.invoke(app, ["summarize", "https://example.com"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("invalid_url", result.output)

    def test_check_cache(self):
        result = runner.invoke(app, ["check-cache", VIDEO_URL])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("No cached summary", result.output)

        runner.invoke(app, ["summarize", VIDEO_URL])
        result = runner.invoke(app, ["check-cache", VIDEO_URL])
        self.assertIn("Me at the zoo", result.output)

    def test_quota_and_reset(self):
        runner.invoke(app, ["summarize", VIDEO_URL, "--user", "user-1"])

        result = runner.invoke(app, ["quota", "--user", "user-1"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Today: 1 / 3", result.output)

        result = runner.invoke(app, ["reset-usage", "user-1"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Reset 1 usage events", result.output)
        self.assertEqual(self.pipeline.usage_count(), 0)

    def test_usage(self):
        runner.invoke(app, ["summarize", VIDEO_URL, "--user", "user-1"])
        result = runner.invoke(app, ["usage", "--user", "user-1"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(VIDEO_ID, result.output)

    def test_set_tier(self):
        result = runner.invoke(app, ["set-tier", "user-1", "pro"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.tiers.tier_for("user-1"), "pro")

        result = runner.invoke(app, ["set-tier", "user-1", "gold"])
        self.assertEqual(result.exit_code, 1)

    def test_transcript(self):
        result = runner.invoke(app, ["transcript", VIDEO_ID])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("in front of the elephants", result.output)

    def test_transcript_unavailable(self):
        self.pipeline_kwargs = {"transcript_results": [NoTranscriptAvailable("disabled")]}
        result = runner.invoke(app, ["transcript", VIDEO_ID])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Transcript unavailable", result.output)

    def test_cleanup(self):
        result = runner.invoke(app, ["cleanup"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("usage_events", result.output)

    def test_config(self):
        result = runner.invoke(app, ["config"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Primary Provider", result.output)
        self.assertIn("free: 3/day", result.output)


if __name__ == "__main__":
    unittest.main()
