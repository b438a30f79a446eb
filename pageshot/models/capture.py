"""Pydantic models for capture requests and results.

This module defines the data exchanged between the capture engine and its
callers: the immutable request, the page metadata scraped alongside the
screenshot, the media items found by platform extractors, and the final
result with its JSON rendering.
"""

import base64
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..errors import InvalidRequestError
from ..utils.url_normalizer import URLNormalizationError, get_query_param, normalize


class SiteKind(str, Enum):
    """Classification of a target URL; selects the handler chain."""
    VIDEO = "video"
    IMAGE = "image"
    PLATFORM_A = "platform_a"
    PLATFORM_B = "platform_b"
    GENERIC = "generic"


class MediaKind(str, Enum):
    """Kind of media item found on a post."""
    IMAGE = "image"
    VIDEO = "video"
    GIF = "gif"


class VideoQuality(str, Enum):
    """Relative quality bucket assigned to a video variant."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CaptureRequest(BaseModel):
    """A single, immutable capture request."""

    model_config = {"frozen": True}

    url: str = Field(description="Absolute http(s) URL to capture")
    full_page: bool = Field(default=False, description="Capture the full scrollable page")
    headless: bool = Field(default=True, description="Run the browser headless")
    verbose: bool = Field(default=False, description="Enable debug logging and page metrics")
    image_index: Optional[int] = Field(
        default=None,
        ge=1,
        description="1-based index of the carousel item to use as the primary image"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Normalize the URL, adding a scheme when missing."""
        try:
            return normalize(v)
        except URLNormalizationError as e:
            raise ValueError(str(e))

    @property
    def should_get_page_metrics(self) -> bool:
        """Page metrics are only collected in verbose mode."""
        return self.verbose

    @classmethod
    def from_raw(
        cls,
        url: Optional[str],
        full_page: bool = False,
        headless: bool = True,
        verbose: bool = False,
        image_index: Optional[Any] = None,
    ) -> 'CaptureRequest':
        """Build a request from loosely typed caller input.

        When no explicit image index is given, the ``img_index`` query
        parameter of the target URL is used.

        Raises:
            InvalidRequestError: If the URL or the image index is malformed
        """
        if not url or not str(url).strip():
            raise InvalidRequestError("No URL parameter provided")

        if image_index is None:
            image_index = get_query_param(normalize_or_raw(url), 'img_index')

        index: Optional[int] = None
        if image_index is not None and str(image_index).strip() != '':
            try:
                index = int(str(image_index).strip())
            except ValueError:
                raise InvalidRequestError(f"Invalid image index: {image_index!r}")
            if index < 1:
                raise InvalidRequestError(f"Image index must be 1 or greater, got {index}")

        try:
            return cls(
                url=url,
                full_page=full_page,
                headless=headless,
                verbose=verbose,
                image_index=index,
            )
        except ValueError as e:
            raise InvalidRequestError(f"Invalid URL: {url} ({e})")


def normalize_or_raw(url: str) -> str:
    """Best-effort normalization used when only reading query parameters."""
    try:
        return normalize(url)
    except URLNormalizationError:
        return url


class PageMetadata(BaseModel):
    """Descriptive metadata read from the rendered page."""

    title: Optional[str] = Field(default=None, description="og:title or document title")
    description: Optional[str] = Field(default=None, description="og:description or meta description")
    og_image: Optional[str] = Field(default=None, description="og:image or image_src link")
    favicon: Optional[str] = Field(default=None, description="Icon link href")

    @property
    def is_empty(self) -> bool:
        return not any((self.title, self.description, self.og_image, self.favicon))


class MediaItem(BaseModel):
    """A single media resource discovered on a post."""

    kind: MediaKind = Field(description="Image, video or animated gif")
    url: str = Field(description="Direct media URL")
    thumbnail: Optional[str] = Field(default=None, description="Poster/thumbnail image URL")
    quality: Optional[VideoQuality] = Field(default=None, description="Quality bucket for videos")
    bitrate: Optional[int] = Field(default=None, description="Video bitrate in bits per second")
    alt_text: Optional[str] = Field(default=None, description="Accessibility text")
    content_type: Optional[str] = Field(default=None, description="MIME type if known")


class CaptureResult(BaseModel):
    """Outcome of a successful capture."""

    image: bytes = Field(description="Primary raster image bytes")
    content_type: str = Field(default="image/jpeg", description="MIME type of the primary image")
    handler: SiteKind = Field(default=SiteKind.GENERIC, description="Handler branch that produced the image")
    metadata: Optional[PageMetadata] = Field(default=None, description="Page metadata, if extracted")
    media: List[MediaItem] = Field(default_factory=list, description="Media items found on the target")
    all_images: List[bytes] = Field(default_factory=list, description="Side-fetched gallery image bytes")
    caption: Optional[str] = Field(default=None, description="Post caption or text, if any")

    @field_validator('image')
    @classmethod
    def validate_image(cls, v):
        if not v:
            raise ValueError("Capture result image cannot be empty")
        return v

    @property
    def image_size(self) -> int:
        return len(self.image)

    def to_response(self) -> Dict[str, Any]:
        """Render a JSON-safe response body.

        Image bytes are base64 encoded so the result can cross a JSON boundary.
        """
        return {
            'image': base64.b64encode(self.image).decode('ascii'),
            'contentType': self.content_type,
            'handler': self.handler.value,
            'metadata': self.metadata.model_dump() if self.metadata else None,
            'caption': self.caption,
            'media': [item.model_dump(mode='json', exclude_none=True) for item in self.media],
            'allImages': [base64.b64encode(img).decode('ascii') for img in self.all_images],
        }


class RetryState(BaseModel):
    """Per-call state of the retry controller."""

    model_config = {"arbitrary_types_allowed": True}

    attempt: int = Field(default=0, description="Zero-based index of the current attempt")
    max_attempts: int = Field(default=2, description="Total attempt budget")
    last_error: Optional[BaseException] = Field(default=None, description="Most recent failure")
    delay_seconds: float = Field(default=0.0, description="Delay before the next attempt")

    @property
    def exhausted(self) -> bool:
        return self.attempt + 1 >= self.max_attempts
