"""
Listing error taxonomy.

Services raise these; ``main.py`` maps them to HTTP responses with the same
``{"detail": ...}`` body FastAPI uses for ``HTTPException``.
"""


class ListingError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ListingValidationError(ListingError):
    """Missing or malformed input: media, form fields, duplicate ids."""

    status_code = 400


class ListingNotFound(ListingError):
    status_code = 404

    def __init__(self, listing_id: str):
        super().__init__("Property not found")
        self.listing_id = listing_id


class StorageError(ListingError):
    """Disk or database failure while reading or writing listings."""

    status_code = 500
