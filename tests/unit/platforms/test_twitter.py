"""Unit tests for X/Twitter media extraction."""

import httpx
import pytest

from pageshot.models.capture import MediaKind, VideoQuality
from pageshot.platforms.twitter import (
    SYNDICATION_API_BASE,
    TwitterExtractor,
    VideoVariant,
    build_status_url,
    extract_tweet_id,
    is_tweet_url,
    pick_best,
    process_video_variants,
    select_best_video,
)
from pageshot.platforms.twitter.quality import get_video_quality_stats, quality_for_rank
from pageshot.platforms.twitter.urls import extract_username, is_twitter_domain

TWEET_ID = "1790000000000000001"

SYNDICATION_PAYLOAD = {
    "__typename": "Tweet",
    "id_str": TWEET_ID,
    "text": "Look at this",
    "user": {"name": "Jane Doe", "screen_name": "jane"},
    "mediaDetails": [
        {
            "type": "photo",
            "media_url_https": "https://pbs.twimg.com/media/photo1.jpg",
            "ext_alt_text": "A cat",
        },
        {
            "type": "video",
            "media_url_https": "https://pbs.twimg.com/ext_tw_video_thumb/1/pu/img/poster.jpg",
            "video_info": {"variants": [
                {"content_type": "application/x-mpegURL", "url": "https://video.twimg.com/pl/1.m3u8"},
                {"bitrate": 288000, "content_type": "video/mp4", "url": "https://video.twimg.com/vid/320x180/low.mp4"},
                {"bitrate": 2176000, "content_type": "video/mp4", "url": "https://video.twimg.com/vid/1280x720/high.mp4"},
            ]},
        },
        {"type": "poll", "media_url_https": "https://pbs.twimg.com/poll.jpg"},
    ],
}


def variant(bitrate, name, content_type="video/mp4"):
    return VideoVariant(bitrate=bitrate, content_type=content_type, url=f"https://video.twimg.com/{name}.mp4")


class TestTweetUrls:
    """Tests for tweet URL parsing."""

    @pytest.mark.parametrize("url", [
        f"https://twitter.com/jane/status/{TWEET_ID}",
        f"https://x.com/jane/status/{TWEET_ID}?s=20",
        f"https://mobile.twitter.com/jane/status/{TWEET_ID}",
        f"https://twitter.com/i/web/status/{TWEET_ID}",
    ])
    def test_extract_tweet_id(self, url):
        assert extract_tweet_id(url) == TWEET_ID
        assert is_tweet_url(url)

    @pytest.mark.parametrize("url", [
        f"http://x.com/jane/status/{TWEET_ID}",
        f"https://example.com/jane/status/{TWEET_ID}",
        "https://x.com/jane/status/123",
        "https://x.com/jane",
        "not a url",
    ])
    def test_rejected_urls(self, url):
        assert extract_tweet_id(url) is None

    def test_build_status_url_round_trip(self):
        """Test that building then parsing a status URL yields the same id."""
        for domain in ("x.com", "twitter.com"):
            assert extract_tweet_id(build_status_url(TWEET_ID, domain, "jane")) == TWEET_ID
            assert extract_tweet_id(build_status_url(TWEET_ID, domain)) == TWEET_ID

    def test_build_status_url_rejects_unknown_domain(self):
        with pytest.raises(ValueError):
            build_status_url(TWEET_ID, "example.com")

    def test_username_and_domain(self):
        assert extract_username(f"https://x.com/jane/status/{TWEET_ID}") == "jane"
        assert extract_username(f"https://x.com/i/web/status/{TWEET_ID}") is None
        assert is_twitter_domain("https://www.x.com/home")
        assert not is_twitter_domain("https://notx.com/home")


class TestVideoQuality:
    """Tests for variant filtering and quality labelling."""

    def test_two_variants(self):
        videos = process_video_variants([variant(288000, "low"), variant(2176000, "high")])

        assert [(v.bitrate, v.quality) for v in videos] == [
            (2176000, VideoQuality.HIGH),
            (288000, VideoQuality.LOW),
        ]
        assert pick_best(videos, "high").bitrate == 2176000

    def test_buckets_for_four_variants(self):
        assert [quality_for_rank(rank, 4) for rank in range(4)] == [
            VideoQuality.HIGH, VideoQuality.MEDIUM, VideoQuality.LOW, VideoQuality.LOW,
        ]
        assert quality_for_rank(0, 1) == VideoQuality.HIGH

    def test_invalid_variants_dropped(self):
        videos = process_video_variants([
            variant(None, "nobitrate"),
            variant(832000, "stream", content_type="application/x-mpegURL"),
            variant(832000, "ok"),
        ])
        assert [v.url for v in videos] == ["https://video.twimg.com/ok.mp4"]
        assert videos[0].quality == VideoQuality.HIGH

    def test_pick_best_falls_back_to_highest(self):
        videos = process_video_variants([variant(2176000, "high"), variant(288000, "low")])
        assert pick_best(videos, VideoQuality.MEDIUM).bitrate == 2176000
        assert pick_best([], VideoQuality.HIGH) is None

    def test_select_best_and_stats(self):
        variants = [variant(2176000, "a"), variant(832000, "b"), variant(288000, "c")]
        assert select_best_video(variants, "medium").bitrate == 832000

        stats = get_video_quality_stats(variants)
        assert stats['valid_variants'] == 3
        assert (stats['high'], stats['medium'], stats['low']) == (1, 1, 1)
        assert stats['max_bitrate'] == 2176000


class TestTwitterExtractor:
    """Tests for TwitterExtractor against a mocked syndication endpoint."""

    @staticmethod
    def client_for(status=200, payload=None):
        def handler(request):
            assert str(request.url).startswith(SYNDICATION_API_BASE)
            assert request.url.params["id"] == TWEET_ID
            assert request.url.params["token"]
            return httpx.Response(status, json=payload if payload is not None else {})

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_extract_media(self):
        async with self.client_for(payload=SYNDICATION_PAYLOAD) as client:
            media = await TwitterExtractor(client).extract_media(f"https://x.com/jane/status/{TWEET_ID}")

        assert media.tweet.text == "Look at this"
        assert media.tweet.handle == "jane"
        assert [i.url for i in media.images] == ["https://pbs.twimg.com/media/photo1.jpg"]
        assert media.images[0].alt_text == "A cat"
        assert [v.bitrate for v in media.videos] == [2176000, 288000]
        assert all(v.kind == MediaKind.VIDEO for v in media.videos)
        assert media.videos[0].thumbnail.endswith("poster.jpg")
        assert len(media.all_items) == 3

    @pytest.mark.asyncio
    async def test_animated_gif(self):
        payload = dict(SYNDICATION_PAYLOAD, mediaDetails=[{
            "type": "animated_gif",
            "media_url_https": "https://pbs.twimg.com/tweet_video_thumb/g.jpg",
            "video_info": {"variants": [
                {"bitrate": 0, "content_type": "video/mp4", "url": "https://video.twimg.com/tweet_video/g.mp4"},
            ]},
        }])
        async with self.client_for(payload=payload) as client:
            media = await TwitterExtractor(client).extract_media(f"https://x.com/jane/status/{TWEET_ID}")

        assert [g.kind for g in media.gifs] == [MediaKind.GIF]
        assert media.gifs[0].url == "https://video.twimg.com/tweet_video/g.mp4"

    @pytest.mark.asyncio
    async def test_http_error_reported(self):
        async with self.client_for(status=404) as client:
            outcome = await TwitterExtractor(client).extract(f"https://x.com/jane/status/{TWEET_ID}")

        assert not outcome.success
        assert "404" in outcome.error

    @pytest.mark.asyncio
    async def test_tweet_without_media(self):
        payload = dict(SYNDICATION_PAYLOAD, mediaDetails=[])
        async with self.client_for(payload=payload) as client:
            outcome = await TwitterExtractor(client).extract(f"https://x.com/jane/status/{TWEET_ID}")

        assert not outcome.success
        assert "No media" in outcome.error

    @pytest.mark.asyncio
    async def test_invalid_url(self):
        outcome = await TwitterExtractor().extract("https://x.com/jane")
        assert not outcome.success

    @pytest.mark.asyncio
    async def test_best_video_url(self):
        async with self.client_for(payload=SYNDICATION_PAYLOAD) as client:
            best = await TwitterExtractor(client).extract_best_video_url(f"https://x.com/jane/status/{TWEET_ID}")

        assert best.url == "https://video.twimg.com/vid/1280x720/high.mp4"

    @pytest.mark.asyncio
    async def test_variants_stay_grouped_per_video(self):
        """Test that a second, sharper video never supplies the first video's variant."""
        second_video = {
            "type": "video",
            "media_url_https": "https://pbs.twimg.com/ext_tw_video_thumb/2/pu/img/poster2.jpg",
            "video_info": {"variants": [
                {"bitrate": 832000, "content_type": "video/mp4", "url": "https://video.twimg.com/vid2/mid.mp4"},
                {"bitrate": 10368000, "content_type": "video/mp4", "url": "https://video.twimg.com/vid2/4k.mp4"},
            ]},
        }
        payload = dict(SYNDICATION_PAYLOAD, mediaDetails=[*SYNDICATION_PAYLOAD["mediaDetails"], second_video])

        async with self.client_for(payload=payload) as client:
            extractor = TwitterExtractor(client)
            media = await extractor.extract_media(f"https://x.com/jane/status/{TWEET_ID}")
            best = await extractor.extract_best_video_url(f"https://x.com/jane/status/{TWEET_ID}")

        assert [[v.bitrate for v in group] for group in media.video_groups] == [
            [2176000, 288000],
            [10368000, 832000],
        ]
        assert [v.bitrate for v in media.videos] == [2176000, 288000, 10368000, 832000]
        assert media.video_groups[1][0].thumbnail.endswith("poster2.jpg")
        assert best.url == "https://video.twimg.com/vid/1280x720/high.mp4"
