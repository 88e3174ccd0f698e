from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv, find_dotenv

# Ensure .env is loaded regardless of current working directory
load_dotenv(find_dotenv(), override=False)


class RelaySettings(BaseSettings):
	model_config = SettingsConfigDict(env_prefix="RELAY_")
	allowed_hosts: list[str] = [
		"firebasestorage.googleapis.com",
		"storage.googleapis.com",
	]
	allowed_host_suffixes: list[str] = [
		".firebasestorage.app",
		".appspot.com",
	]
	media_extensions: list[str] = [".mov", ".qt"]
	forced_media_type: str = "video/mp4"
	default_mode: str = "media"
	stream_bodies: bool = True
	chunk_size: int = 64 * 1024

	upstream_timeout: float = 60.0
	upstream_connect_timeout: float = 10.0
	# как часто долгие операции (ремукс, предпросмотр) проверяют, не ушел ли клиент
	disconnect_poll_interval: float = 0.5

	# Браузер кеширует коротко, CDN дольше и с stale-while-revalidate
	browser_max_age: int = 3600
	cdn_max_age: int = 86400
	cdn_stale_while_revalidate: int = 604800
	cdn_cache_header: str = "CDN-Cache-Control"


class TranscodeSettings(BaseSettings):
	model_config = SettingsConfigDict(env_prefix="TRANSCODE_")
	ffmpeg_bin: str = "ffmpeg"
	timeout: float = 600.0
	temp_dir: Optional[str] = None  # None -> системная временная директория
	output_format: str = "mp4"
	output_media_type: str = "video/mp4"


class PreviewSettings(BaseSettings):
	model_config = SettingsConfigDict(env_prefix="PREVIEW_")
	enabled: bool = True
	ffmpeg_bin: str = "ffmpeg"
	video_codec: str = "libx264"
	audio_codec: str = "aac"
	preset: str = "fast"
	crf: int = 23
	timeout: float = 300.0
	max_source_bytes: int = 200 * 1024 * 1024


class AppSettings(BaseSettings):
	model_config = SettingsConfigDict(env_prefix="APP_")
	logs_dir: str = "logs"
	host: str = "0.0.0.0"
	port: int = 8080
	log_level: str = "debug"


class Settings(BaseSettings):
	relay: RelaySettings = RelaySettings()
	transcode: TranscodeSettings = TranscodeSettings()
	preview: PreviewSettings = PreviewSettings()
	app: AppSettings = AppSettings()


settings = Settings()
