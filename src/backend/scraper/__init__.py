from .base import FailurePolicy, SourceAdapter
from .e621_api import E621ApiAdapter
from .furaffinity_scrape import FurAffinityScrapeAdapter
from .models import Candidate, CategorizedTags, ListingPage, MediaDetail

__all__ = [
    "FailurePolicy",
    "SourceAdapter",
    "E621ApiAdapter",
    "FurAffinityScrapeAdapter",
    "Candidate",
    "CategorizedTags",
    "ListingPage",
    "MediaDetail",
]
