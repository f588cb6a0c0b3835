"""Error taxonomy. Every error carries a user-facing message and the HTTP status the API answers with."""
from typing import Optional


class TranslatorError(Exception):
    status_code = 500
    default_message = "Translation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TranslatorError):
    """Bad upload (type, size, missing file). Raised before any network call."""

    status_code = 400
    default_message = "Invalid upload"


class UnsupportedFileTypeError(ValidationError):
    status_code = 415
    default_message = "Unsupported file type. Please upload a PDF file."


class PayloadTooLargeError(ValidationError):
    status_code = 413
    default_message = "File size exceeds the maximum allowed limit (100 MB)."


class AuthError(TranslatorError):
    status_code = 401
    default_message = "Invalid API key. Please check your credentials."


class ConfigurationError(TranslatorError):
    status_code = 503
    default_message = "API key not configured. Please set the OTRANSLATOR_API_KEY environment variable."


class NotFoundError(TranslatorError):
    status_code = 404
    default_message = "Translation task not found. The task ID may be invalid."


class ProviderError(TranslatorError):
    """Provider rejected the request; retrying the same request will not help."""

    status_code = 502
    default_message = "Translation provider rejected the request"


class TransientProviderError(TranslatorError):
    """Network error, timeout, 5xx or unparseable response. Safe to retry."""

    status_code = 502
    default_message = "Network error. Please check your connection and try again."


class TranslationTimeoutError(TranslatorError):
    status_code = 504
    default_message = "Maximum translation wait time exceeded"
