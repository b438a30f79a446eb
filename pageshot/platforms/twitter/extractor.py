"""X/Twitter media extraction through the public syndication endpoint.

The endpoint backs embedded tweets and needs no authentication. The
``token`` query parameter must be present but its value is not checked.
"""

import logging
from typing import List, Optional, Union

import httpx
from pydantic import ValidationError

from ...capture.fetch import http_client
from ...errors import ExtractionError
from ...models.capture import MediaItem, MediaKind, VideoQuality
from ..base import ExtractionOutcome
from .models import SyndicationTweet, TweetInfo, TweetMedia
from .quality import pick_best, process_video_variants, select_best_video
from .urls import extract_tweet_id, is_valid_tweet_id

logger = logging.getLogger(__name__)

SYNDICATION_API_BASE = "https://cdn.syndication.twimg.com/tweet-result"
SYNDICATION_TIMEOUT = 5.0
PLATFORM = "twitter"

SYNDICATION_HEADERS = {
    "Accept": "application/json",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
}


class TwitterExtractor:
    """Extracts images, videos and gifs from a tweet."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None,
                 timeout: float = SYNDICATION_TIMEOUT):
        """Initialize extractor.

        Args:
            client: Shared HTTP client (a temporary client per call if None)
            timeout: Request timeout in seconds
        """
        self.client = client
        self.timeout = timeout

    async def fetch_tweet(self, tweet_id: str) -> SyndicationTweet:
        """Fetch and validate the syndication envelope for a tweet.

        Raises:
            ExtractionError: On network failures, HTTP errors or malformed envelopes
        """
        url = f"{SYNDICATION_API_BASE}?id={tweet_id}&token=a"
        logger.debug(f"Fetching tweet {tweet_id} from syndication API")

        try:
            async with http_client(self.client, self.timeout) as http:
                response = await http.get(url, headers=SYNDICATION_HEADERS, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise ExtractionError(f"Syndication request failed: {e}", platform=PLATFORM) from e

        if response.status_code != 200:
            raise ExtractionError(
                f"Syndication API returned {response.status_code} for tweet {tweet_id}",
                platform=PLATFORM,
                recoverable=response.status_code == 404,
            )

        try:
            tweet = SyndicationTweet.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ExtractionError(f"Unexpected syndication payload: {e}", platform=PLATFORM,
                                  recoverable=True) from e

        logger.info(f"Fetched tweet {tweet_id} ({len(tweet.media_details)} media items)")
        return tweet

    def process_media(self, tweet: SyndicationTweet,
                      preferred_quality: Union[VideoQuality, str] = VideoQuality.HIGH) -> TweetMedia:
        """Turn the envelope's media descriptors into media items."""
        images: List[MediaItem] = []
        video_groups: List[List[MediaItem]] = []
        gifs: List[MediaItem] = []

        for media in tweet.media_details:
            if media.type == "photo":
                images.append(MediaItem(kind=MediaKind.IMAGE, url=media.media_url_https,
                                        alt_text=media.ext_alt_text))

            elif media.type == "video" and media.video_info:
                variants = process_video_variants(media.video_info.variants)
                for item in variants:
                    item.thumbnail = media.media_url_https
                if variants:
                    video_groups.append(variants)
                best = pick_best(variants, preferred_quality)
                logger.debug(
                    f"Found video with qualities {[v.quality.value for v in variants]} "
                    f"(best={best.quality.value if best else None})"
                )

            elif media.type == "animated_gif" and media.video_info:
                best = select_best_video(media.video_info.variants, VideoQuality.HIGH)
                if best:
                    gifs.append(MediaItem(kind=MediaKind.GIF, url=best.url,
                                          thumbnail=media.media_url_https,
                                          bitrate=best.bitrate, content_type=best.content_type))

        # Flattened in media order; each video keeps its own bitrate ordering
        videos = [item for group in video_groups for item in group]

        logger.info(f"Processed tweet media: {len(images)} images, {len(videos)} video variants, {len(gifs)} gifs")
        return TweetMedia(
            tweet=TweetInfo(id=tweet.id_str, text=tweet.text,
                            author=tweet.user.name, handle=tweet.user.screen_name),
            images=images,
            videos=videos,
            video_groups=video_groups,
            gifs=gifs,
        )

    async def extract_media(self, url: str,
                            preferred_quality: Union[VideoQuality, str] = VideoQuality.HIGH) -> TweetMedia:
        """Extract all media from a tweet URL.

        Raises:
            ExtractionError: If the URL is not a tweet, the fetch fails or the tweet has no media
        """
        logger.info(f"Starting Twitter media extraction for {url}")

        tweet_id = extract_tweet_id(url)
        if not tweet_id or not is_valid_tweet_id(tweet_id):
            raise ExtractionError("Invalid Twitter URL - could not extract tweet ID",
                                  platform=PLATFORM, recoverable=True)

        tweet = await self.fetch_tweet(tweet_id)
        media = self.process_media(tweet, preferred_quality)

        if not media.has_media:
            raise ExtractionError(f"No media found in tweet {tweet_id}", platform=PLATFORM,
                                  recoverable=True)
        return media

    async def extract(self, url: str,
                      preferred_quality: Union[VideoQuality, str] = VideoQuality.HIGH) -> ExtractionOutcome[TweetMedia]:
        """Like :meth:`extract_media` but reports failure instead of raising."""
        try:
            return ExtractionOutcome.ok(await self.extract_media(url, preferred_quality), method="syndication")
        except ExtractionError as e:
            logger.warning(f"Twitter extraction failed: {e}")
            return ExtractionOutcome.fail(str(e), method="syndication")

    async def extract_video_urls(self, url: str) -> List[MediaItem]:
        outcome = await self.extract(url)
        return outcome.data.videos if outcome.success else []

    async def extract_image_urls(self, url: str) -> List[MediaItem]:
        outcome = await self.extract(url)
        return outcome.data.images if outcome.success else []

    async def extract_best_video_url(self, url: str,
                                     preferred_quality: Union[VideoQuality, str] = VideoQuality.HIGH) -> Optional[MediaItem]:
        """Best variant of the tweet's first video for the preferred quality.

        Falls back to that video's highest bitrate; variants of other videos
        in the same tweet are never mixed in.
        """
        outcome = await self.extract(url)
        if not outcome.success or not outcome.data.video_groups:
            return None
        return pick_best(outcome.data.video_groups[0], preferred_quality)
