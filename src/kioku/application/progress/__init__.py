# Application Progress Package
from .aggregator import DeckProgressAggregator, SectionAggregator
from .engine import ProgressEngine
from .scheduler import ReviewScheduler
from .service import ProgressService
from .tracker import record_attempt

__all__ = [
    "DeckProgressAggregator",
    "ProgressEngine",
    "ProgressService",
    "ReviewScheduler",
    "SectionAggregator",
    "record_attempt",
]
