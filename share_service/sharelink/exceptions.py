from typing import Optional


class ShareLinkError(Exception):
    """Базовая ошибка подсистемы публичных ссылок"""
    status_code: int = 400
    code: str = "ShareLinkError"
    message: str = "Ошибка обработки ссылки"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class InvalidExpiryError(ShareLinkError):
    status_code = 400
    code = "InvalidExpiry"
    message = "Недопустимый срок действия ссылки"


class InvalidPasswordError(ShareLinkError):
    status_code = 401
    code = "InvalidPassword"
    message = "Неверный пароль"


class PlanRestrictedError(ShareLinkError):
    status_code = 403
    code = "PlanRestricted"
    message = "Публичные ссылки недоступны на текущем тарифе"


class ForbiddenError(ShareLinkError):
    status_code = 403
    code = "Forbidden"
    message = "Нет доступа к этой ссылке"


class LinkNotAvailableError(ShareLinkError):
    """Неизвестный, истекший и отозванный код неразличимы для вызывающего"""
    status_code = 404
    code = "LinkNotAvailable"
    message = "Ссылка недоступна"


class SharedFileNotFoundError(ShareLinkError):
    status_code = 404
    code = "FileNotFound"
    message = "Файл не найден"


class RateLimitedError(ShareLinkError):
    status_code = 429
    code = "TooManyAttempts"
    message = "Слишком много неудачных попыток, повторите позже"

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = max(int(retry_after), 1)
        super().__init__(message)


class InternalError(ShareLinkError):
    status_code = 503
    code = "InternalError"
    message = "Сервис временно недоступен, повторите попытку позже"


class GenerationExhausted(InternalError):
    """Пространство коротких кодов насыщено: нужно увеличить длину кода"""
    code = "InternalError"


class StorageUnavailableError(InternalError):
    pass


class BillingUnavailableError(InternalError):
    pass


class NotificationUnavailableError(InternalError):
    pass
