"""Pydantic models for the X/Twitter syndication envelope and extracted media."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...models.capture import MediaItem

SUPPORTED_MEDIA_TYPES = {"photo", "video", "animated_gif"}


class VideoVariant(BaseModel):
    """A single encoding of a video or animated gif."""

    bitrate: Optional[int] = Field(default=None, description="Bitrate in bits per second")
    content_type: str = Field(description="MIME type, e.g. video/mp4 or application/x-mpegURL")
    url: str = Field(description="Direct URL to the encoding")


class VideoInfo(BaseModel):
    variants: List[VideoVariant] = Field(default_factory=list)


class MediaDetail(BaseModel):
    """Media descriptor attached to a tweet."""

    type: Literal["photo", "video", "animated_gif"] = Field(description="Media type")
    media_url_https: str = Field(description="Image URL (poster frame for videos)")
    ext_alt_text: Optional[str] = Field(default=None, description="Accessibility text")
    video_info: Optional[VideoInfo] = Field(default=None, description="Variants for videos and gifs")


class TweetUser(BaseModel):
    name: str
    screen_name: str
    profile_image_url_https: Optional[str] = None


class SyndicationTweet(BaseModel):
    """Response body of the public tweet-result endpoint."""

    model_config = {"populate_by_name": True}

    typename: Literal["Tweet"] = Field(alias="__typename")
    id_str: str
    text: str = ""
    user: TweetUser
    media_details: List[MediaDetail] = Field(default_factory=list, alias="mediaDetails")
    created_at: Optional[str] = None
    lang: Optional[str] = None

    @field_validator('media_details', mode='before')
    @classmethod
    def drop_unsupported_media(cls, v):
        """Ignore media kinds this extractor does not understand."""
        if not v:
            return []
        return [item for item in v if isinstance(item, dict) and item.get('type') in SUPPORTED_MEDIA_TYPES]


class TweetInfo(BaseModel):
    id: str
    text: str
    author: str
    handle: str


class TweetMedia(BaseModel):
    """Media extracted from one tweet."""

    tweet: TweetInfo
    images: List[MediaItem] = Field(default_factory=list)
    videos: List[MediaItem] = Field(default_factory=list, description="All variants, video by video")
    video_groups: List[List[MediaItem]] = Field(
        default_factory=list,
        description="Variants per video in media order, highest bitrate first within each"
    )
    gifs: List[MediaItem] = Field(default_factory=list)

    @property
    def has_media(self) -> bool:
        return bool(self.images or self.videos or self.gifs)

    @property
    def all_items(self) -> List[MediaItem]:
        return [*self.images, *self.videos, *self.gifs]
