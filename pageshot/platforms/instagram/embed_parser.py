"""Structured extraction from the JSON blob embedded in Instagram embed pages."""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ...models.capture import MediaItem, MediaKind
from .models import Carousel, InstagramPost, MediaLeaf, MediaNode, RawNode

logger = logging.getLogger(__name__)

EMBED_DATA_RE = re.compile(r'"init",\s*\[\],\s*\[(.*?)\]\],', re.DOTALL)

# Carousels do not nest in practice; anything deeper is malformed
MAX_TREE_DEPTH = 3


class EmbedParseError(ValueError):
    """Raised when the embed page carries no usable JSON payload."""
    pass


def extract_context_json(html: str) -> str:
    """Pull the ``contextJSON`` string out of the embed page bootstrap call."""
    match = EMBED_DATA_RE.search(html)
    if not match or not match.group(1):
        raise EmbedParseError("Could not find embed data in HTML")

    try:
        raw = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise EmbedParseError(f"Invalid embed data JSON: {e}")

    context_json = raw.get('contextJSON') if isinstance(raw, dict) else None
    if not isinstance(context_json, str) or not context_json:
        raise EmbedParseError("Missing contextJSON in embed data")
    return context_json


def parse_embed_context(context_json: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Return the raw shortcode media node and its caption."""
    try:
        context = json.loads(context_json)
    except json.JSONDecodeError as e:
        raise EmbedParseError(f"Invalid contextJSON: {e}")

    gql_data = context.get('gql_data') if isinstance(context, dict) else None
    if not isinstance(gql_data, dict):
        return None, None

    node = gql_data.get('xdt_shortcode_media') or gql_data.get('shortcode_media')
    if not isinstance(node, dict):
        return None, None

    try:
        caption = RawNode.model_validate(node).caption()
    except ValidationError:
        caption = None
    return node, caption


def _tree_node(raw: RawNode) -> MediaNode:
    if raw.child_nodes():
        return Carousel(typename=raw.typename, display_url=raw.display_url)
    return MediaLeaf(typename=raw.typename, display_url=raw.display_url, video_url=raw.video_url)


def build_media_tree(raw: Dict[str, Any], max_depth: int = MAX_TREE_DEPTH) -> MediaNode:
    """Build the tagged media tree for a raw node without recursion.

    Raises:
        EmbedParseError: If the root node itself is malformed
    """
    try:
        root_raw = RawNode.model_validate(raw)
    except ValidationError as e:
        raise EmbedParseError(f"Invalid shortcode media node: {e}")

    root = _tree_node(root_raw)
    worklist: List[Tuple[MediaNode, RawNode, int]] = [(root, root_raw, 0)]

    while worklist:
        node, node_raw, depth = worklist.pop()
        if not isinstance(node, Carousel):
            continue
        if depth >= max_depth:
            logger.debug(f"Ignoring carousel children beyond depth {max_depth}")
            continue

        for child in node_raw.child_nodes():
            try:
                child_raw = RawNode.model_validate(child)
            except ValidationError as e:
                logger.debug(f"Skipping malformed carousel child: {e}")
                continue
            child_node = _tree_node(child_raw)
            node.children.append(child_node)
            worklist.append((child_node, child_raw, depth + 1))

    return root


def iter_leaves(tree: MediaNode) -> List[MediaLeaf]:
    """Leaves of the tree in on-post order."""
    leaves: List[MediaLeaf] = []
    stack: List[MediaNode] = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, MediaLeaf):
            leaves.append(node)
        else:
            stack.extend(reversed(node.children))
    return leaves


def leaf_to_media_item(leaf: MediaLeaf) -> Optional[MediaItem]:
    if leaf.is_video:
        if not leaf.video_url:
            return None
        return MediaItem(kind=MediaKind.VIDEO, url=leaf.video_url, thumbnail=leaf.display_url)
    if not leaf.display_url:
        return None
    return MediaItem(kind=MediaKind.IMAGE, url=leaf.display_url, thumbnail=leaf.display_url)


def media_items_from_tree(tree: MediaNode) -> List[MediaItem]:
    """Convert a media tree to items; carousel children replace the cover node."""
    items = []
    for leaf in iter_leaves(tree):
        item = leaf_to_media_item(leaf)
        if item is None:
            logger.debug(f"Skipping {leaf.typename} node without a usable URL")
            continue
        items.append(item)

    kind = "Carousel" if isinstance(tree, Carousel) else "Single media"
    logger.debug(f"{kind} detected with {len(items)} usable items")
    return items


def parse_embed_json(html: str) -> InstagramPost:
    """Extract media and caption from the embed page's JSON payload.

    Raises:
        EmbedParseError: If the payload is missing or malformed
    """
    node, caption = parse_embed_context(extract_context_json(html))
    if node is None:
        return InstagramPost(caption=caption)
    return InstagramPost(caption=caption, media=media_items_from_tree(build_media_tree(node)))
