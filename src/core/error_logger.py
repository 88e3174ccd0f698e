"""
Отчеты об ошибках релея: отдельный логгер error_reports пишет их в errors.log и errors.json.
"""

import logging
import json
import traceback
from typing import Any, Dict, Optional
from datetime import datetime


class ErrorReporter:
    """Структурированные отчеты об ошибках upstream, стриминга и транскодирования"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @staticmethod
    def describe(error: BaseException, include_traceback: bool) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "error_type": type(error).__name__,
            "error_message": getattr(error, "message", None) or str(error),
            "status_code": getattr(error, "status_code", None),
            "timestamp": datetime.now().isoformat(),
        }
        if include_traceback and error.__traceback__ is not None:
            info["traceback"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        return info

    def log_error(
        self,
        error: BaseException,
        context: Optional[Dict[str, Any]] = None,
        message: str = "",
        include_traceback: bool = True
    ) -> None:
        """
        Записать отчет об ошибке

        Args:
            error: исключение
            context: url, range, bytes_sent и т.п.
            message: заголовок отчета
            include_traceback: добавить traceback (для ошибок upstream он бесполезен)
        """
        error_info = self.describe(error, include_traceback)
        error_info["context"] = context or {}
        error_info["custom_message"] = message

        parts = [f"{error_info['error_type']}: {error_info['error_message']}"]
        if message:
            parts.insert(0, message)
        if context:
            parts.append(json.dumps(context, ensure_ascii=False, default=str))

        self.logger.error(" | ".join(parts), extra={"error_info": error_info})

    def log_upstream_error(
        self,
        error: Exception,
        url: str,
        status_code: Optional[int] = None,
        range_header: Optional[str] = None
    ) -> None:
        """Логирует ошибки обращения к upstream-хранилищу"""
        context = {
            "url": url,
            "status_code": status_code,
            "range": range_header,
        }
        self.log_error(error, context, "Upstream error", include_traceback=False)

    def log_streaming_error(
        self,
        error: Exception,
        url: str,
        bytes_sent: int
    ) -> None:
        """Логирует обрыв передачи после отправки заголовков"""
        context = {
            "url": url,
            "bytes_sent": bytes_sent,
        }
        self.log_error(error, context, "Streaming error after headers were sent")

    def log_transcode_error(
        self,
        error: Exception,
        url: str,
        diagnostics: Optional[str] = None
    ) -> None:
        """Логирует ошибки внешнего процесса транскодирования"""
        context = {
            "url": url,
            "diagnostics": (diagnostics or "")[-2000:],
        }
        self.log_error(error, context, "Transcode error", include_traceback=False)


# Глобальный экземпляр ErrorReporter (будет инициализирован в main.py)
error_reporter: Optional[ErrorReporter] = None


def get_error_reporter() -> ErrorReporter:
    """Получить глобальный экземпляр ErrorReporter"""
    if error_reporter is None:
        raise RuntimeError("Error reporter not initialized. Call setup_error_reporting() first.")
    return error_reporter


def setup_error_reporting(error_logger: logging.Logger) -> None:
    """Инициализировать глобальный ErrorReporter"""
    global error_reporter
    error_reporter = ErrorReporter(error_logger)


def report(method: str, *args: Any, **kwargs: Any) -> None:
    """Вызвать метод ErrorReporter, если он инициализирован; сбой отчета не влияет на ответ"""
    try:
        getattr(get_error_reporter(), method)(*args, **kwargs)
    except Exception as report_error:
        logging.getLogger("relay").debug("Не удалось создать отчет об ошибке: %s", report_error)
