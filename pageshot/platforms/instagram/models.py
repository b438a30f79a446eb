"""Models for Instagram embed data.

Embed payloads describe a post as a GraphQL node that may hold child nodes
(carousel). Raw nodes are validated one level at a time and assembled into a
tagged tree of :class:`MediaLeaf` and :class:`Carousel` values.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from ...models.capture import MediaItem


class RawNode(BaseModel):
    """One GraphQL media node; children are kept as raw dicts."""

    model_config = {"populate_by_name": True}

    typename: str = Field(alias="__typename")
    display_url: Optional[str] = None
    video_url: Optional[str] = None
    edge_sidecar_to_children: Optional[Dict[str, Any]] = None
    edge_media_to_caption: Optional[Dict[str, Any]] = None

    def child_nodes(self) -> List[Dict[str, Any]]:
        edges = (self.edge_sidecar_to_children or {}).get('edges') or []
        return [edge['node'] for edge in edges if isinstance(edge, dict) and isinstance(edge.get('node'), dict)]

    def caption(self) -> Optional[str]:
        edges = (self.edge_media_to_caption or {}).get('edges') or []
        if edges and isinstance(edges[0], dict):
            text = (edges[0].get('node') or {}).get('text')
            return text or None
        return None


class MediaLeaf(BaseModel):
    """A single image or video."""

    typename: str
    display_url: Optional[str] = None
    video_url: Optional[str] = None

    @property
    def is_video(self) -> bool:
        return self.typename.endswith("GraphVideo")


class Carousel(BaseModel):
    """A multi-item post; children keep their on-post order."""

    typename: str
    display_url: Optional[str] = None
    children: List['MediaNode'] = Field(default_factory=list)


MediaNode = Union[MediaLeaf, Carousel]
Carousel.model_rebuild()


class InstagramPost(BaseModel):
    """Media and caption extracted from one post."""

    shortcode: Optional[str] = None
    caption: Optional[str] = None
    media: List[MediaItem] = Field(default_factory=list)

    @property
    def has_media(self) -> bool:
        return bool(self.media)
