from src.models.fingerprint import Fingerprint
from src.models.review import BusinessSummary, ReviewRecord, ScrapeResult

__all__ = ["BusinessSummary", "Fingerprint", "ReviewRecord", "ScrapeResult"]
