"""
Исключения HTTP-слоя сервиса.

Ядро анализа не бросает исключений на данных: нехватка данных и
некорректные сегменты возвращаются как значения-сентинелы.
"""
from fastapi import status


class BiomarkerServiceException(Exception):
    """Базовое исключение сервиса"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, status_code: int = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class RequestTooLargeError(BiomarkerServiceException):
    """Слишком много записей в одном запросе"""

    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


class BaselineNotFoundError(BiomarkerServiceException):
    """Для пользователя еще не создан baseline"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, user_id: str):
        super().__init__(f"No baseline established for user '{user_id}'")
        self.user_id = user_id
