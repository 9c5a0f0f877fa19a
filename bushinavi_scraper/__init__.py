"""
Bushi Navi Scraper Package
Tournament deck collection for Bushi Navi event results and Decklog deck lists
"""

from .core import (
    ScraperConfig,
    DeckRecord,
    Card,
    ResultSink,
    ListingTimeoutError,
    ConfigurationError,
)
from .interceptor import ResponseInterceptor, InterceptedResponse
from .deck import DeckStage, DeckOutcome
from .events import EventListStage, EventDetailStage
from .pipeline import DeckPipeline, PipelineResult, run_pipeline

__version__ = "1.0.0"
__all__ = [
    'ScraperConfig',
    'DeckRecord',
    'Card',
    'ResultSink',
    'ListingTimeoutError',
    'ConfigurationError',
    'ResponseInterceptor',
    'InterceptedResponse',
    'DeckStage',
    'DeckOutcome',
    'EventListStage',
    'EventDetailStage',
    'DeckPipeline',
    'PipelineResult',
    'run_pipeline',
]
