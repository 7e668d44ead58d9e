"""
Typed failures raised by the site content pipeline.

Each error carries the HTTP status and machine code used by the API
exception handler, so callers can render a precise message.
"""


class SiteError(Exception):
    """Base class for all site pipeline failures."""
    status_code = 400
    code = 'SITE_ERROR'
    default_message = 'Site operation failed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class GenerationError(SiteError):
    """Prompt was empty, the backend failed, or the result was malformed."""
    status_code = 502
    code = 'GENERATION_FAILED'
    default_message = 'Failed to generate site. Please try again.'


class EmptyPromptError(GenerationError):
    status_code = 400
    code = 'EMPTY_PROMPT'
    default_message = 'A prompt is required to generate a site.'


class NotFoundError(SiteError):
    status_code = 404
    code = 'NOT_FOUND'
    default_message = 'Site not found. Check the URL and try again.'


class NotPublishedError(SiteError):
    status_code = 403
    code = 'NOT_PUBLISHED'
    default_message = 'This site is not yet published by the author.'


class StorePermissionError(SiteError, PermissionError):
    """The store rejected a read or write outside the caller's namespace."""
    status_code = 403
    code = 'PERMISSION_DENIED'
    default_message = 'Access to this site collection is not permitted.'
