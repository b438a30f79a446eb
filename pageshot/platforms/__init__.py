"""Platform-specific media extractors."""

from .base import ExtractionOutcome, run_strategies

__all__ = ['ExtractionOutcome', 'run_strategies']
