import unittest

from video_summarizer.ingestion.video_id import extract_video_id, resolve

VIDEO_ID = "jNQXAC9IVRw"


class TestResolve(unittest.TestCase):
    def test_supported_formats_resolve_to_same_id(self):
        urls = [
            f"https://www.youtube.com/watch?v={VIDEO_ID}",
            f"https://youtube.com/watch?feature=share&v={VIDEO_ID}&t=10s",
            f"http://m.youtube.com/watch?v={VIDEO_ID}",
            f"https://youtu.be/{VIDEO_ID}",
            f"https://youtu.be/{VIDEO_ID}?si=abc123",
            f"https://www.youtube.com/embed/{VIDEO_ID}",
            f"https://www.youtube-nocookie.com/embed/{VIDEO_ID}",
            f"https://www.youtube.com/shorts/{VIDEO_ID}",
            f"https://www.youtube.com/live/{VIDEO_ID}",
            f"  {VIDEO_ID}  ",
        ]
        for url in urls:
            with self.subTest(url=url):
                self.assertEqual(resolve(url).video_id, VIDEO_ID)

    def test_resolving_is_idempotent(self):
        first = resolve(f"https://youtu.be/{VIDEO_ID}")
        self.assertEqual(resolve(first.video_id), first)

    def test_unrecognized_input_is_an_error_not_a_wrong_id(self):
        for value in [
            "https://vimeo.com/12345678901",
            "https://www.youtube.com/watch?v=short",
            f"https://www.youtube.com/watch?v={VIDEO_ID}X",
            "not a url",
            "abc",
        ]:
            with self.subTest(value=value):
                result = resolve(value)
                self.assertFalse(result.ok)
                self.assertIsNone(result.video_id)
                self.assertIn("Invalid YouTube URL", result.error)

    def test_empty_and_non_string_input(self):
        for value in ["", "   ", None, 42]:
            with self.subTest(value=value):
                result = resolve(value)
                self.assertFalse(result.ok)
                self.assertEqual(result.error, "YouTube URL is required")

    def test_extract_video_id(self):
        self.assertEqual(extract_video_id(f"https://youtu.be/{VIDEO_ID}"), VIDEO_ID)
        self.assertIsNone(extract_video_id("https://example.com"))


if __name__ == "__main__":
    unittest.main()
