"""
Error taxonomy for statement ingestion.

File-level errors (UnsupportedFormatError, MalformedInputError) finalize the
upload batch as failed. Row-level errors (TransactionProcessingError) are
recorded on the batch and the loop moves on. DuplicateCheckFailure is logged
and the record is treated as not-a-duplicate.
"""

from typing import Optional


class IngestionError(Exception):
    """Base error for the ingestion pipeline."""

    error_code = "ERR_INGESTION"

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        if error_code:
            self.error_code = error_code
        super().__init__(message)


class UnsupportedFormatError(IngestionError):
    """No adapter matches the file extension and no fallback is configured."""

    error_code = "ERR_UNSUPPORTED_FORMAT"


class MalformedInputError(IngestionError):
    """The chosen adapter could not extract a single usable transaction."""

    error_code = "ERR_MALFORMED_INPUT"


class TransactionProcessingError(IngestionError):
    """Failure while normalizing, checking, categorizing or persisting one record."""

    error_code = "ERR_TRANSACTION"

    def __init__(self, description: str, cause: BaseException):
        self.description = description
        self.cause = cause
        super().__init__(f"Failed to process transaction: {description} - {cause}")


class DuplicateCheckFailure(IngestionError):
    """History lookup failed during the duplicate check."""

    error_code = "ERR_DUPLICATE_CHECK"


class StoreError(IngestionError):
    """A document store call failed."""

    error_code = "ERR_STORE"


class BatchFinalizedError(StoreError):
    """An attempt was made to modify an upload batch after it reached a terminal status."""

    error_code = "ERR_BATCH_FINALIZED"
