# 读取 .env 配置
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DB_SERVER: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "rag_user"
    DB_PASSWORD: str = "rag_password"
    DB_NAME: str = "rag_data"
    # 非空时优先使用（如 sqlite:///./autophrase.db）
    DATABASE_URL: str = ""

    # Runtime
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Auto phrasing
    AUTOPHRASE_PHRASE_FILES: str = ""  # 逗号分隔的词表文件路径
    AUTOPHRASE_IGNORE_CASE: bool = True
    AUTOPHRASE_REPLACE_WHITESPACE_WITH: str = "_"  # 为空表示直接拼接
    AUTOPHRASE_EMIT_SINGLE_TOKENS: bool = False
    AUTOPHRASE_DOWNSTREAM_PARSER: str = "query_string"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore" # 忽略多余的环境变量
    )

    @field_validator("AUTOPHRASE_REPLACE_WHITESPACE_WITH")
    @classmethod
    def _single_char_separator(cls, value: str) -> str:
        if len(value) > 1:
            raise ValueError("AUTOPHRASE_REPLACE_WHITESPACE_WITH 只能是单个字符或为空")
        return value

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        # 格式: mysql+pymysql://用户名:密码@地址:端口/数据库名
        return (
            f"mysql+pymysql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_SERVER}:{self.DB_PORT}/{self.DB_NAME}"
        )


settings = Settings()
