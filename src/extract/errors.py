"""Exceptions raised during extraction."""


class ExtractionError(Exception):
    """Base exception for extraction errors."""

    pass


class BatchProcessingError(ExtractionError):
    """A batch failed on every attempt.

    Attributes:
        batch_number: 1-based number of the failed batch
        attempts: Attempts made before giving up
        last_error: Exception raised by the final attempt
    """

    def __init__(self, batch_number: int, attempts: int, last_error: Exception):
        self.batch_number = batch_number
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Maximum retries ({attempts}) exceeded for batch {batch_number}. "
            f"Last error: {last_error}"
        )
