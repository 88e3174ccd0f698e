import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from presentation.routers.health import router as health_router
from presentation.routers.media_relay import router as media_relay_router, container
from presentation.middleware.logging import log_request_middleware
from presentation.errors import register_error_handlers
from core.config import settings
from core.logging_config import setup_logging
import uvicorn

logs_dir = setup_logging(settings.app)


@asynccontextmanager
async def lifespan(app: FastAPI):
	logger = logging.getLogger("startup")
	logger.info(
		"Media relay запущен: allowed_hosts=%s suffixes=%s default_mode=%s",
		settings.relay.allowed_hosts,
		settings.relay.allowed_host_suffixes,
		settings.relay.default_mode,
	)

	yield

	await container.aclose()
	logger.info("Media relay остановлен")

print(f"Логирование настроено. Логи сохраняются в директорию: {logs_dir.absolute()}")

app = FastAPI(title="media-relay", lifespan=lifespan)

app.middleware("http")(log_request_middleware)
register_error_handlers(app)

app.include_router(health_router)
app.include_router(media_relay_router)

if __name__ == "__main__":
	# Исключаем директорию logs из отслеживания изменений для предотвращения бесконечных перезапусков
	uvicorn.run(
		"main:app",
		host=settings.app.host,
		port=settings.app.port,
		reload_excludes=["logs/*", "logs/**/*", "*.log"],
		log_level=settings.app.log_level,
	)
