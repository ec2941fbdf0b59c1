"""
설정 로더

settings.yaml 로드 및 DB/원장/Web/로깅 설정 생성
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.constants import Defaults, Paths


@dataclass(frozen=True)
class DatabaseConfig:
    """DB 설정"""

    path: Path = Paths.DEFAULT_DB
    busy_timeout_ms: int = 5000


@dataclass(frozen=True)
class LedgerConfig:
    """원장 서비스 설정 (충돌 재시도)"""

    max_conflict_retries: int = Defaults.MAX_CONFLICT_RETRIES
    retry_delay_sec: float = Defaults.RETRY_DELAY_SEC


@dataclass(frozen=True)
class WebConfig:
    """Web 서버 설정"""

    host: str = Defaults.WEB_HOST
    port: int = Defaults.WEB_PORT


@dataclass(frozen=True)
class LoggingConfig:
    level: str = Defaults.LOG_LEVEL


@dataclass(frozen=True)
class AppConfig:
    """애플리케이션 설정 (settings.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class SettingsLoadError(Exception):
    """Settings 로드 실패 예외"""

    pass


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise SettingsLoadError(f"settings.yaml의 '{name}' 섹션은 매핑이어야 합니다")
    return value


def _parse(data: dict[str, Any], base_dir: Path) -> AppConfig:
    """YAML 데이터를 AppConfig로 변환

    상대 DB 경로는 프로젝트 루트 기준으로 해석.
    """
    db = _section(data, "database")
    ledger = _section(data, "ledger")
    web = _section(data, "web")
    log = _section(data, "logging")

    try:
        db_path = Path(db.get("path", Paths.DEFAULT_DB))
        if not db_path.is_absolute():
            db_path = base_dir / db_path

        config = AppConfig(
            database=DatabaseConfig(
                path=db_path,
                busy_timeout_ms=int(db.get("busy_timeout_ms", 5000)),
            ),
            ledger=LedgerConfig(
                max_conflict_retries=int(
                    ledger.get("max_conflict_retries", Defaults.MAX_CONFLICT_RETRIES)
                ),
                retry_delay_sec=float(ledger.get("retry_delay_sec", Defaults.RETRY_DELAY_SEC)),
            ),
            web=WebConfig(
                host=str(web.get("host", Defaults.WEB_HOST)),
                port=int(web.get("port", Defaults.WEB_PORT)),
            ),
            logging=LoggingConfig(level=str(log.get("level", Defaults.LOG_LEVEL)).upper()),
        )
    except (TypeError, ValueError) as e:
        raise SettingsLoadError(f"settings.yaml 값이 올바르지 않습니다: {e}") from e

    if config.ledger.max_conflict_retries < 1:
        raise SettingsLoadError(
            f"ledger.max_conflict_retries는 1 이상이어야 합니다: {config.ledger.max_conflict_retries}"
        )
    if config.ledger.retry_delay_sec < 0:
        raise SettingsLoadError(
            f"ledger.retry_delay_sec는 0 이상이어야 합니다: {config.ledger.retry_delay_sec}"
        )

    return config


def load_settings(path: Path | None = None) -> AppConfig:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로, 파일이 없으면 기본값)

    Returns:
        AppConfig 인스턴스

    Raises:
        SettingsLoadError: 지정한 파일이 없거나 형식/값이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE
        if not path.exists():
            return AppConfig()
    elif not path.exists():
        raise SettingsLoadError(f"settings.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        return AppConfig()
    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml 최상위는 매핑이어야 합니다")

    return _parse(data, Paths.CONFIG_DIR.parent)


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: AppConfig | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._config is None:
            type(self)._config = load_settings(settings_path)

    @property
    def config(self) -> AppConfig:
        assert self._config is not None
        return self._config

    @property
    def db_path(self) -> Path:
        """DB 경로"""
        return self.config.database.path

    @property
    def ledger(self) -> LedgerConfig:
        return self.config.ledger

    @property
    def web(self) -> WebConfig:
        return self.config.web

    @property
    def log_level(self) -> str:
        return self.config.logging.level

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
