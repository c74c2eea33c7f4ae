"""
Custom exceptions for block generation.

Every stage of the pipeline raises these exceptions so callers can
tell a bad configuration apart from an inconsistent chunk size or a
failed write.
"""


class BlockGenError(Exception):
    """Base exception for all block generation errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(BlockGenError):
    """Raised when generator options are invalid (e.g., start not before end)."""

    def __init__(self, message: str, field: str | None = None):
        details = {}
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class SizingError(BlockGenError):
    """Raised when an encoded chunk exceeds the maximum allowed size.

    Signals that the sample interval and samples-per-chunk combination
    cannot be stored in the target format.
    """

    def __init__(self, size_bytes: int, max_bytes: int, series: str | None = None):
        details: dict = {"size_bytes": size_bytes, "max_bytes": max_bytes}
        if series:
            details["series"] = series
        super().__init__(
            f"Chunk too big, calculated size {size_bytes} > {max_bytes} bytes",
            details,
        )
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        self.series = series


class StorageIOError(BlockGenError):
    """Raised when writing a segment, index or metadata file fails."""

    def __init__(
        self,
        stage: str,
        path: str | None = None,
        cause: Exception | None = None,
        block_id: str | None = None,
    ):
        details = {"stage": stage}
        if path:
            details["path"] = path
        if block_id:
            details["block_id"] = block_id
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {stage}"
        if block_id:
            message += f" of block {block_id}"
        if path:
            message += f": {path}"
        if cause:
            message += f" ({cause})"
        super().__init__(message, details)
        self.stage = stage
        self.path = path
        self.cause = cause
        self.block_id = block_id


class IndexFormatError(BlockGenError):
    """Raised when index writer invariants are violated.

    Examples are series added out of label order, a label that was not
    registered in the symbol table, or a section written after a later one.
    """

    def __init__(self, reason: str, path: str | None = None):
        details = {"reason": reason}
        if path:
            details["path"] = path
        super().__init__(f"Invalid index write: {reason}", details)
        self.reason = reason
        self.path = path


class ChunkLayoutError(BlockGenError):
    """Raised when a chunk reference cannot be written where it points.

    Examples are a reference that skips a segment, one that overlaps the
    previous record, or a record that would run past the segment end.
    """

    def __init__(self, reason: str, ref: int | None = None):
        details: dict = {"reason": reason}
        if ref is not None:
            details["ref"] = f"{ref:#x}"
        super().__init__(f"Invalid chunk layout: {reason}", details)
        self.reason = reason
        self.ref = ref
