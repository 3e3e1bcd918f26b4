"""Error types for the access-log transcoder."""


class RecordValidationError(ValueError):
    """A JSON access-log record is missing or has an invalid field.

    Conversion of the whole batch stops at the first such record.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        index: int | None = None,
    ) -> None:
        """Initialize the validation error.

        Args:
            message: Human-readable error message.
            field: Dotted name of the offending field.
            index: Position of the record in the batch.
        """
        super().__init__(message)
        self.message = message
        self.field = field
        self.index = index

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert error to dictionary for logging."""
        return {
            "message": self.message,
            "field": self.field,
            "index": self.index,
        }
