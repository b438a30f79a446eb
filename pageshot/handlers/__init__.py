"""Site handlers and the dispatcher that chains them."""

from .base import BaseHandler, HandlerContext
from .dispatcher import HandlerDispatcher, classify, default_chains
from .generic import GenericPageHandler
from .image import ImageHandler
from .instagram import InstagramHandler
from .twitter import TwitterHandler
from .video import VideoHandler

__all__ = [
    'BaseHandler',
    'HandlerContext',
    'HandlerDispatcher',
    'classify',
    'default_chains',
    'GenericPageHandler',
    'ImageHandler',
    'InstagramHandler',
    'TwitterHandler',
    'VideoHandler',
]
