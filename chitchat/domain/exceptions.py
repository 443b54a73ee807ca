# chitchat/domain/exceptions.py


class ChatError(Exception):
    """Base class for every failure the chat core reports to its callers.

    ``code`` is the stable identifier clients can switch on, ``status_code`` is
    the HTTP status the API layer answers with.
    """

    code = "CHAT_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ChatError):
    code = "NOT_FOUND"
    status_code = 404


class UnauthorizedError(ChatError):
    code = "UNAUTHORIZED"
    status_code = 403


class InvalidArgumentError(ChatError):
    code = "INVALID_ARGUMENT"
    status_code = 400


class ConflictError(ChatError):
    code = "CONFLICT"
    status_code = 409


class AlreadyMemberError(ConflictError):
    code = "ALREADY_MEMBER"


class InvalidStateError(ChatError):
    code = "INVALID_STATE"
    status_code = 409


class EditWindowExpiredError(ChatError):
    code = "EDIT_WINDOW_EXPIRED"
    status_code = 400


class PreconditionFailedError(ChatError):
    code = "PRECONDITION_FAILED"
    status_code = 412


class ProviderError(ChatError):
    code = "PROVIDER_ERROR"
    status_code = 502
