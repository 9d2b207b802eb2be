"""Domain exceptions shared by services and API routers."""


class ECardsError(Exception):
    """Base exception for eCards errors"""
    pass


class NotFound(ECardsError):
    """Card, sender or template does not exist"""
    pass


class StorageFailure(ECardsError):
    """Database read or write failed"""
    pass


class DeliveryFailure(ECardsError):
    """Notification could not be delivered"""
    pass


class ArtworkDeleteFailure(ECardsError):
    """Artwork file could not be removed (non-fatal)"""
    pass


class InvalidCardRequest(ECardsError):
    """Card creation parameters were rejected"""
    pass


class PermissionDenied(ECardsError):
    """Caller does not own the card"""
    pass


class TemplateRenderError(ECardsError):
    """Email template missing or failed to render"""
    pass
