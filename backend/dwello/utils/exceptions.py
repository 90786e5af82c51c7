"""Domain exceptions. Each carries the HTTP status the API answers with."""


class DwelloError(Exception):
    """Base exception for the Dwello backend."""

    status_code: int = 500


class ValidationError(DwelloError):
    """Missing or malformed input."""

    status_code = 400


class NotFoundError(DwelloError):
    """Unknown listing or blob ID."""

    status_code = 404


class ListingNotFoundError(NotFoundError):
    pass


class BlobStoreError(DwelloError):
    """Failure at the Walrus boundary."""

    pass


class UploadError(BlobStoreError):
    """The publisher rejected an upload or returned no usable blob ID."""

    pass


class RetrievalError(BlobStoreError):
    """The aggregator could not serve a blob."""

    pass


class BlobNotFoundError(RetrievalError):
    status_code = 404


class LedgerQueryError(DwelloError):
    """The ledger RPC failed; the answer is unknown, not negative."""

    pass


class InternalError(DwelloError):
    pass
