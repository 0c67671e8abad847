"""Anchor-Engine exception hierarchy."""


class AnchorEngineError(Exception):
    """Base exception for all Anchor-Engine errors."""

    def __init__(self, message: str = "", code: str = "ANCHOR_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AnchorEngineError):
    """Raised when a field is malformed. Always caller-fixable."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, code="VALIDATION_ERROR")


class ForbiddenError(AnchorEngineError):
    """Raised on role or tenant mismatch."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, code="FORBIDDEN")


class NotFoundError(AnchorEngineError):
    """Raised when no matching record exists in the caller's scope."""

    def __init__(self, message: str = "Anchor not found"):
        super().__init__(message, code="NOT_FOUND")


class AlreadyTerminalError(AnchorEngineError):
    """Raised when an anchor is already REVOKED."""

    def __init__(self, message: str = "Anchor is already revoked"):
        super().__init__(message, code="ALREADY_TERMINAL")


class StoreError(AnchorEngineError):
    """Transient persistence failure. Safe to retry."""

    def __init__(self, message: str = "Store operation failed"):
        super().__init__(message, code="STORE_ERROR")


class DuplicateAnchorError(AnchorEngineError):
    """Raised when (tenant_id, fingerprint) is already taken."""

    def __init__(self, message: str = "Anchor with this fingerprint already exists"):
        super().__init__(message, code="DUPLICATE")
