# app/core/exceptions.py

class BaseAppException(Exception):
    """Базовый класс для всех кастомных исключений приложения."""
    def __init__(self, message: str = "App exception"):
        super().__init__(message)

# ==== Валидация ====

class ValidationError(BaseAppException):
    """Общая ошибка валидации (в т.ч. битые составные id)."""
    def __init__(self, message: str = "Validation error"):
        super().__init__(message)

class ProjectValidationError(ValidationError):
    """Ошибка валидации проекта."""
    def __init__(self, message: str = "Project validation error"):
        super().__init__(message)

# ==== NotFound ====

class NotFoundError(BaseAppException):
    """Ошибка отсутствия ресурса."""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)

class TeamNotFound(NotFoundError):
    """Ошибка: команда не найдена."""
    def __init__(self, message: str = "Team not found"):
        super().__init__(message)

class TeamMemberNotFound(NotFoundError):
    """Ошибка: участник команды не найден."""
    def __init__(self, message: str = "Team member not found"):
        super().__init__(message)

class ProjectNotFound(NotFoundError):
    """Ошибка: проект не найден."""
    def __init__(self, message: str = "Project not found"):
        super().__init__(message)

class UserNotFound(NotFoundError):
    """Ошибка: пользователь не найден."""
    def __init__(self, message: str = "User not found"):
        super().__init__(message)

# ==== Состояние / транзакции ====

class AlreadyRemovedError(BaseAppException):
    """Ошибка: участник уже удалён из команды (в т.ч. параллельным запросом)."""
    def __init__(self, message: str = "Team member already removed"):
        super().__init__(message)

class TransactionConflictError(BaseAppException):
    """Версионированное обновление проиграло гонку. Можно повторить запрос."""
    def __init__(self, message: str = "Concurrent update conflict, please retry"):
        super().__init__(message)

class StoreError(BaseAppException):
    """Хранилище недоступно или транзакция не применилась. Изменения откатены."""
    def __init__(self, message: str = "Store error"):
        super().__init__(message)

# ==== Интеграции ====

class IntegrationCleanupError(BaseAppException):
    """Ошибка best-effort очистки интеграций (не откатывает членство)."""
    def __init__(self, message: str = "Integration cleanup failed"):
        super().__init__(message)

class GitHubIntegrationError(BaseAppException):
    """Ошибка GitHub. Поле error содержит разобранный вариант ответа API (если есть)."""
    def __init__(self, message: str = "GitHub error", error=None):
        super().__init__(message)
        self.error = error

# ==== Авторизация ====

class AuthError(BaseAppException):
    """Ошибка аутентификации."""
    def __init__(self, message: str = "Authentication error"):
        super().__init__(message)

class PermissionDeniedError(AuthError):
    """Ошибка авторизации: недостаточно прав."""
    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)
