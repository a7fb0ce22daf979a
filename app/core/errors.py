class NotFoundError(Exception):
    """An item does not exist or is not owned by the caller."""


class UserNotFoundError(NotFoundError):
    pass


class AlertNotFoundError(NotFoundError):
    pass
