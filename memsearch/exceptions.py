"""Exception classes for memorial search."""


class SearchError(Exception):
    """Base exception for search-related errors."""

    pass


class FilterError(SearchError, ValueError):
    """Raised when search filter input cannot be decoded."""

    def __init__(self, message: str):
        """Initialize with the decoding error message."""
        super().__init__(f"Invalid search filters: {message}")


class StoreError(SearchError):
    """Raised when the document store fails to execute a query."""

    pass


class RecordNotFoundError(StoreError):
    """Raised when a record is not found in a collection."""

    def __init__(self, collection: str, record_id: str):
        """Initialize with collection and record ID."""
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Record not found in {collection}: {record_id}")
