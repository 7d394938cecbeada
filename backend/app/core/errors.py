"""Pipeline error taxonomy"""


class PipelineError(Exception):
    """Base class for errors raised by the price-tracking pipeline."""


class StoreError(PipelineError):
    """Transient read/write failure against the store. Safe to retry."""


class SearchNotFoundError(PipelineError):
    def __init__(self, search_id: str):
        super().__init__(f"Search {search_id} not found")
        self.search_id = search_id


class ConfigurationError(PipelineError):
    """Required configuration is missing or unusable. Not retried."""
