"""Video variant filtering, quality labelling and best-variant selection.

Labels are relative to the variants available on a post: the highest
bitrate is always "high", the lowest (when there is more than one) is always
"low", and the runner-up between them is "medium".
"""

from typing import Dict, List, Optional, Sequence, Union

from ...models.capture import MediaItem, MediaKind, VideoQuality
from .models import VideoVariant

MP4_CONTENT_TYPE = "video/mp4"


def filter_valid_variants(variants: Sequence[VideoVariant]) -> List[VideoVariant]:
    """Keep only MP4 encodings that declare a bitrate and have a URL."""
    return [
        v for v in variants
        if v.content_type == MP4_CONTENT_TYPE and v.bitrate is not None and v.url
    ]


def quality_for_rank(rank: int, total: int) -> VideoQuality:
    """Quality label for a zero-based position in a bitrate-descending list."""
    if rank == 0:
        return VideoQuality.HIGH
    if rank == total - 1:
        return VideoQuality.LOW
    if rank == 1:
        return VideoQuality.MEDIUM
    return VideoQuality.LOW


def process_video_variants(variants: Sequence[VideoVariant],
                           kind: MediaKind = MediaKind.VIDEO) -> List[MediaItem]:
    """Filter, sort (stable, bitrate descending) and label video variants."""
    valid = sorted(filter_valid_variants(variants), key=lambda v: v.bitrate, reverse=True)
    return [
        MediaItem(
            kind=kind,
            url=variant.url,
            bitrate=variant.bitrate,
            quality=quality_for_rank(rank, len(valid)),
            content_type=variant.content_type,
        )
        for rank, variant in enumerate(valid)
    ]


def pick_best(videos: Sequence[MediaItem],
              preferred: Union[VideoQuality, str] = VideoQuality.HIGH) -> Optional[MediaItem]:
    """Exact label match first, otherwise the highest bitrate item.

    ``videos`` must already be ordered highest bitrate first.
    """
    if not videos:
        return None
    preferred = VideoQuality(preferred)
    for video in videos:
        if video.quality == preferred:
            return video
    return videos[0]


def select_best_video(variants: Sequence[VideoVariant],
                      preferred: Union[VideoQuality, str] = VideoQuality.HIGH) -> Optional[MediaItem]:
    return pick_best(process_video_variants(variants), preferred)


def get_video_quality_stats(variants: Sequence[VideoVariant]) -> Dict[str, int]:
    """Counts per bucket plus bitrate range, used for debug logging."""
    processed = process_video_variants(variants)
    return {
        'total_variants': len(variants),
        'valid_variants': len(processed),
        'high': sum(1 for v in processed if v.quality == VideoQuality.HIGH),
        'medium': sum(1 for v in processed if v.quality == VideoQuality.MEDIUM),
        'low': sum(1 for v in processed if v.quality == VideoQuality.LOW),
        'max_bitrate': processed[0].bitrate if processed else 0,
        'min_bitrate': processed[-1].bitrate if processed else 0,
    }
