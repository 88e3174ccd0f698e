import json
import logging
import logging.handlers
from pathlib import Path
from typing import Dict

from core.config import AppSettings
from core.error_logger import setup_error_reporting


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

REPORT_FORMAT = """%(asctime)s - RELAY ERROR REPORT
=====================================
Logger: %(name)s
Message: %(message)s
Location: %(module)s.%(funcName)s:%(lineno)d
Process: %(process)d
--- END ERROR REPORT ---
"""

# Уровни компонентов релея; httpx слишком шумный на DEBUG
COMPONENT_LEVELS: Dict[str, int] = {
	"relay": logging.DEBUG,
	"relay.upstream": logging.DEBUG,
	"relay.transcode": logging.DEBUG,
	"relay.preview": logging.DEBUG,
	"request_logger": logging.INFO,
	"httpx": logging.WARNING,
	"httpcore": logging.WARNING,
}


class JsonErrorFormatter(logging.Formatter):
	"""Одна JSON-строка на отчет; error_info приходит из ErrorReporter через extra"""

	def format(self, record: logging.LogRecord) -> str:
		payload = {
			"timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
			"level": record.levelname,
			"logger": record.name,
			"message": record.getMessage(),
			"location": f"{record.module}.{record.funcName}:{record.lineno}",
		}
		error_info = getattr(record, "error_info", None)
		if error_info:
			payload["error"] = error_info
		elif record.exc_info:
			payload["exception"] = self.formatException(record.exc_info)
		return json.dumps(payload, ensure_ascii=False, default=str)


def _size_rotating(path: Path, max_mb: int, backups: int) -> logging.Handler:
	return logging.handlers.RotatingFileHandler(
		path,
		maxBytes=max_mb * 1024 * 1024,
		backupCount=backups,
		encoding="utf-8",
	)


def setup_logging(app_settings: AppSettings) -> Path:
	"""Настроить консоль, app.log и отдельный логгер отчетов об ошибках (errors.log, errors.json)"""
	logs_dir = Path(app_settings.logs_dir)
	logs_dir.mkdir(parents=True, exist_ok=True)

	console_handler = logging.StreamHandler()
	console_handler.setLevel(logging.DEBUG)

	file_handler = _size_rotating(logs_dir / "app.log", max_mb=10, backups=5)
	file_handler.setLevel(logging.WARNING)

	logging.basicConfig(
		level=app_settings.log_level.upper(),
		format=LOG_FORMAT,
		handlers=[console_handler, file_handler],
	)

	# Ротация по дням, храним месяц
	report_handler = logging.handlers.TimedRotatingFileHandler(
		logs_dir / "errors.log",
		when="midnight",
		backupCount=30,
		encoding="utf-8",
	)
	report_handler.setFormatter(logging.Formatter(fmt=REPORT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

	json_handler = _size_rotating(logs_dir / "errors.json", max_mb=50, backups=10)
	json_handler.setFormatter(JsonErrorFormatter())

	error_logger = logging.getLogger("error_reports")
	error_logger.setLevel(logging.ERROR)
	for handler in (report_handler, json_handler):
		handler.setLevel(logging.ERROR)
		error_logger.addHandler(handler)
	# отчеты не дублируются в app.log
	error_logger.propagate = False

	for name, level in COMPONENT_LEVELS.items():
		logging.getLogger(name).setLevel(level)

	setup_error_reporting(error_logger)
	return logs_dir
