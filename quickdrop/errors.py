"""Error taxonomy shared by the registry, blob store and HTTP layer."""


def format_size(size: int) -> str:
    for unit, scale in (("GB", 1024 ** 3), ("MB", 1024 ** 2), ("KB", 1024)):
        if size >= scale:
            value = size / scale
            return f"{value:g}{unit}" if value == int(value) else f"{value:.1f}{unit}"
    return f"{size} bytes"


class QuickDropError(Exception):
    """Base class for all quickdrop errors."""

    status_code: int = 500
    category: str = "error"
    message: str = "Request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        return str(self)


class TransferValidationError(QuickDropError):
    """Upload batch rejected before anything was registered."""

    status_code = 400
    category = "validation"
    message = "Invalid upload"


class TooManyFiles(TransferValidationError):
    def __init__(self, limit: int):
        super().__init__(f"Maximum {limit} files allowed")
        self.limit = limit


class TotalSizeExceeded(TransferValidationError):
    def __init__(self, limit: int):
        super().__init__(f"Total file size exceeds {format_size(limit)} limit")
        self.limit = limit


class EmptyUpload(TransferValidationError):
    message = "No files uploaded"


class TransferNotFound(QuickDropError):
    status_code = 404
    category = "not_found"
    message = "Invalid code. Please check and try again."


class FileNotFound(QuickDropError):
    status_code = 404
    category = "not_found"
    message = "File not found"


class TransferExpired(QuickDropError):
    status_code = 410
    category = "expired"
    message = "This transfer has expired. Files have been deleted."


class StorageError(QuickDropError):
    """Underlying blob read/write/delete failure."""

    category = "storage"
    message = "Storage failure"


class BlobNotFound(StorageError):
    status_code = 404
    message = "File not found on server"


class CapacityExceeded(StorageError):
    """A blob grew past the size limit it was written under."""

    status_code = 400
    message = "Upload exceeds the remaining size allowance"


class ArchiveError(QuickDropError):
    category = "archive"
    message = "Archive creation failed"
