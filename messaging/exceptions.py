"""
Request-level errors raised by the messaging core.

Each carries a stable ``code`` and a ``detail`` that is safe to show to
the client; none of them affects the connection that triggered it.
"""


class MessagingError(Exception):
    code = "error"
    default_detail = "Request failed."

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidContent(MessagingError):
    code = "invalid_content"
    default_detail = "Message content is empty or too long."


class RecipientUnknown(MessagingError):
    code = "recipient_unknown"
    default_detail = "No such recipient."


class StorageError(MessagingError):
    # Storage internals never reach the client; the cause is logged server-side.
    code = "storage_error"
    default_detail = "The message could not be saved. Please try again."


class InvalidRequest(MessagingError):
    code = "bad_request"
    default_detail = "Malformed request."
