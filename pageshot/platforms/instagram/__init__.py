"""Instagram media extraction."""

from .carousel import collect_carousel_image_urls, extract_all_carousel_images, resolve_image_index
from .embed_parser import EmbedParseError, build_media_tree, parse_embed_json
from .extractor import InstagramExtractor, clean_caption, is_critical_error
from .html_parser import extract_media_from_html, widest_srcset_url
from .models import Carousel, InstagramPost, MediaLeaf
from .urls import build_embed_url, extract_shortcode, is_instagram_post_url, truncate_title

__all__ = [
    'InstagramExtractor',
    'InstagramPost',
    'MediaLeaf',
    'Carousel',
    'EmbedParseError',
    'build_media_tree',
    'parse_embed_json',
    'extract_media_from_html',
    'widest_srcset_url',
    'clean_caption',
    'is_critical_error',
    'collect_carousel_image_urls',
    'extract_all_carousel_images',
    'resolve_image_index',
    'build_embed_url',
    'extract_shortcode',
    'is_instagram_post_url',
    'truncate_title',
]
