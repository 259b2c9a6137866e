class AutoTopupError(Exception):
    pass


class AutoTopupValidationError(AutoTopupError):
    pass
