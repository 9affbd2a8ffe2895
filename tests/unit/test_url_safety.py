from __future__ import annotations

import pytest

from cooked.services.errors import InputError, UnsafeURLError
from cooked.services.ids import (
    detect_caption_platform,
    generate_id,
    is_youtube_url,
    youtube_video_id,
)
from cooked.services.url_safety import redact_url, validate_public_url


class TestValidatePublicUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "http://example.com/recipe",
            "https://8.8.8.8/video.mp4",
            "https://cafe.be/menu",
            "http://134744072/video.mp4",
        ],
    )
    def test_public_urls_pass(self, url: str) -> None:
        assert validate_public_url(f"  {url} ") == url

    @pytest.mark.parametrize(
        "url,message",
        [
            ("", "A valid video URL is required."),
            ("   ", "A valid video URL is required."),
            ("ftp://example.com/file", "Only http and https URLs are supported."),
            ("file:///etc/passwd", "Only http and https URLs are supported."),
            ("not a url", "Only http and https URLs are supported."),
            ("http://", "Invalid URL format."),
            ("http://[::1", "Invalid URL format."),
        ],
    )
    def test_malformed_urls(self, url: str, message: str) -> None:
        with pytest.raises(UnsafeURLError) as exc_info:
            validate_public_url(url)
        assert str(exc_info.value) == message

    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost:8080/",
            "http://LOCALHOST/",
            "http://printer.local/",
            "http://api.localhost/",
            "http://127.0.0.1/",
            "http://10.1.2.3/",
            "http://172.16.0.1/",
            "http://192.168.1.10/",
            "http://169.254.169.254/latest/meta-data",
            "http://0.0.0.0/",
            "http://[::1]/",
            "http://[fe80::1]/",
            "http://[::ffff:192.168.0.1]/",
            "http://224.0.0.1/",
            "http://127.1/admin",
            "http://2130706433/admin",
            "http://0x7f000001/admin",
            "http://0177.0.0.1/admin",
            "http://10.1/",
        ],
    )
    def test_internal_hosts_are_rejected(self, url: str) -> None:
        with pytest.raises(UnsafeURLError, match="internal or private"):
            validate_public_url(url)

    def test_unsafe_url_is_an_input_error(self) -> None:
        with pytest.raises(InputError):
            validate_public_url("http://127.0.0.1/")

    def test_non_string(self) -> None:
        with pytest.raises(UnsafeURLError):
            validate_public_url(None)  # type: ignore[arg-type]


class TestRedactUrl:
    def test_strips_query_and_fragment(self) -> None:
        assert redact_url("https://x.com/v?token=secret#t=10") == "https://x.com/v"


class TestYoutubeIds:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ?t=3",
            "https://www.youtube.com/shorts/dQw4w9WgXcQ",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://m.youtube.com/live/dQw4w9WgXcQ",
        ],
    )
    def test_video_id_forms(self, url: str) -> None:
        assert youtube_video_id(url) == "dQw4w9WgXcQ"
        assert is_youtube_url(url)
        assert detect_caption_platform(url) == "youtube"

    def test_non_youtube_urls(self) -> None:
        url = "https://vimeo.com/12345"
        assert youtube_video_id(url) is None
        assert not is_youtube_url(url)
        assert detect_caption_platform(url) is None

    def test_lookalike_host_is_not_youtube(self) -> None:
        assert not is_youtube_url("https://notyoutube.com.evil.net/watch?v=dQw4w9WgXcQ")


class TestGenerateId:
    def test_ids_are_unique(self) -> None:
        ids = {generate_id() for _ in range(200)}
        assert len(ids) == 200
