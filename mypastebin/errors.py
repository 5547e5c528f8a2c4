GENERIC_MESSAGE = "Meep! Something went wrong on our side :-("


class PastebinError(Exception):
    status = 500
    public_message = GENERIC_MESSAGE

    def __init__(self, message=None, error=None):
        super().__init__(message or self.public_message)

        self.error = error

    @property
    def user_message(self):
        # Server errors may carry driver or SDK details, never show those.
        if self.status >= 500:
            return self.public_message
        return str(self)


class ValidationError(PastebinError):
    status = 400
    public_message = "Invalid paste"


class BotRejected(PastebinError):
    status = 403
    public_message = "Oop, bot check failed! This site is for humans!"


class Forbidden(PastebinError):
    status = 403
    public_message = "You don't own this paste!"


class NotFound(PastebinError):
    status = 404
    public_message = "Paste not found"


class PayloadTooLarge(PastebinError):
    status = 413
    public_message = "Paste is too large"


class StorageError(PastebinError):
    public_message = "Meep! We couldn't reach the paste storage :-("


class TransactionError(PastebinError):
    public_message = "Meep! We couldn't save that paste :-("


class DuplicatePasteId(TransactionError):
    pass
