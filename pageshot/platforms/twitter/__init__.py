"""X/Twitter media extraction."""

from .extractor import TwitterExtractor, SYNDICATION_API_BASE
from .models import SyndicationTweet, TweetMedia, TweetInfo, VideoVariant
from .quality import process_video_variants, select_best_video, pick_best
from .urls import extract_tweet_id, is_tweet_url, is_valid_tweet_id, build_status_url

__all__ = [
    'TwitterExtractor',
    'SYNDICATION_API_BASE',
    'SyndicationTweet',
    'TweetMedia',
    'TweetInfo',
    'VideoVariant',
    'process_video_variants',
    'select_best_video',
    'pick_best',
    'extract_tweet_id',
    'is_tweet_url',
    'is_valid_tweet_id',
    'build_status_url',
]
