"""
Конфигурация логирования сервиса биомаркеров.

Консоль: цветной вывод coloredlogs. Файл: JSON с ротацией.
Request ID текущего HTTP-запроса добавляется к каждой записи фильтром.
"""
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

import coloredlogs

# Request ID выставляется middleware в app.main
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


def get_request_id() -> str:
    """Request ID текущего запроса (пустая строка вне запроса)"""
    return request_id_var.get()


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """JSON-строка на запись; user_id и request_id добавляются, если заданы"""

    def format(self, record):
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "name": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }

        for field in ("request_id", "user_id"):
            value = getattr(record, field, None)
            if value:
                log_obj[field] = value

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, ensure_ascii=False)


def setup_logging(
    log_level: str = "INFO",
    log_file: str = None,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    json_logs: bool = True,
):
    """
    Настраивает корневой логгер.

    Args:
        log_level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Файл логов; без него пишется только консоль
        max_file_size: Размер файла до ротации, байты
        backup_count: Количество резервных копий
        json_logs: JSON вместо текста в файле
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    request_filter = RequestIdFilter()

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        coloredlogs.ColoredFormatter(
            CONSOLE_FORMAT,
            datefmt="%H:%M:%S",
            field_styles={
                "asctime": {"color": "green"},
                "name": {"color": "blue"},
                "levelname": {"color": "magenta", "bold": True},
            },
        )
    )
    console_handler.setLevel(numeric_level)
    console_handler.addFilter(request_filter)
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding="utf-8",
        )
        if json_logs:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
            )
        file_handler.setLevel(numeric_level)
        file_handler.addFilter(request_filter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging configured with level: {log_level}")
    if log_file:
        root_logger.info(f"Logs will be written to: {log_file} (max {max_file_size // 1024 // 1024}MB)")
