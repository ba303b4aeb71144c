"""Validation failures raised by the messaging core.

Every error is raised before the store is touched, so a caller can fix the
input and retry without cleaning anything up.  ``code`` is stable and is
what the HTTP layer reports to clients.
"""


class MessagingError(Exception):
    code = "messaging_error"
    message = "Message could not be processed"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidAddressee(MessagingError):
    code = "message_invalid_addressee"
    message = "A direct message needs a recipient other than the sender"


class InvalidAudience(MessagingError):
    code = "message_invalid_audience"
    message = "Unknown broadcast audience"


class EmptyBody(MessagingError):
    code = "message_empty_body"
    message = "Message body is required"


class MissingAudience(MessagingError):
    code = "message_missing_audience"
    message = "Select broadcast audience"


class MissingRecipient(MessagingError):
    code = "message_missing_recipient"
    message = "Select a recipient"


class NoReplyTarget(MessagingError):
    code = "message_no_reply_target"
    message = "This thread has no one to reply to"


class AudienceNotPermitted(MessagingError):
    code = "message_audience_not_permitted"
    message = "You may not broadcast to this audience"


class NotThreadRoot(MessagingError):
    code = "message_not_thread_root"
    message = "Replies cannot be opened or answered as a thread"
