"""Custom exception classes for the application."""


class BrightChoiceException(Exception):
    """Base exception for all Bright Choice errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(BrightChoiceException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ScraperError(BrightChoiceException):
    """Raised when a brand scraper encounters an error."""

    def __init__(self, brand: str, message: str):
        super().__init__(f"Scraper error for {brand}: {message}")


class StorageError(BrightChoiceException):
    """Raised when a read or write against the record store fails."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Storage error during {operation}: {message}")


class VersionConflictError(StorageError):
    """Raised when a (product_id, version_number) pair already exists."""

    def __init__(self, product_id: str, version_number: int):
        self.product_id = product_id
        self.version_number = version_number
        super().__init__(
            "insert_version",
            f"version {version_number} already exists for product {product_id}",
        )
