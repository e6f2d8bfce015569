"""Context Forge custom exceptions."""


class ContextForgeError(Exception):
    """Base exception for Context Forge errors."""


class ValidationError(ContextForgeError):
    """Input to a write operation was rejected before anything was persisted."""


class FileReadError(ContextForgeError):
    """A source file could not be read."""


class ParseError(ContextForgeError):
    """Error decoding a source file for symbol extraction."""


class StoreError(ContextForgeError):
    """The underlying database failed or is unavailable."""


class LLMError(ContextForgeError):
    """The local model server rejected or failed a request."""
