from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    output_dir: Path = Field(default=Path("./out"), alias="SCHEMA_AGENT_OUTPUT_DIR")
    store_path: Path = Field(default=Path("./.cache/snapshots.json"), alias="SCHEMA_AGENT_STORE_PATH")
    log_level: str = Field(default="INFO", alias="SCHEMA_AGENT_LOG_LEVEL")

    # 인터페이스 스캔 대상 확장자 (콤마 구분)
    source_exts: str = Field(default=".ts,.tsx", alias="SCHEMA_AGENT_SOURCE_EXTS")
    max_archive_bytes: int = Field(default=20 * 1024 * 1024, alias="SCHEMA_AGENT_MAX_ARCHIVE_BYTES")

    github_token: str | None = Field(default=None, alias="GITHUB_TOKEN")

    @property
    def source_ext_set(self) -> frozenset[str]:
        exts = (p.strip().lower() for p in self.source_exts.split(","))
        return frozenset(e if e.startswith(".") else f".{e}" for e in exts if e)

settings = Settings()
