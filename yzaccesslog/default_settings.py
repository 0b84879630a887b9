#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
"""
@date: 2024-03-11
@desc: 默认配置，可通过环境变量或 .env 覆盖
"""
import re
from typing import Annotated, List, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from yzaccesslog.logger import ACCESS_LOGGER_NAME


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # 逗号分隔的正则，命中的 path 不写访问日志
    ACCESS_LOG_IGNORE_PATTERNS: Annotated[List[str], NoDecode] = Field(default_factory=list)
    # 不记录 utils.health_views 的探活请求
    ACCESS_LOG_IGNORE_HEALTH: bool = True
    ACCESS_LOG_TRACE_HEADER: str = "X-Cloud-Trace-Context"
    ACCESS_LOG_LOGGER: str = ACCESS_LOGGER_NAME
    LOG_LEVEL: str = "INFO"

    @field_validator("ACCESS_LOG_IGNORE_PATTERNS", mode="before")
    @classmethod
    def parse_ignore_patterns(cls, v: Union[str, List[str], None]) -> List[str]:
        """Split a comma-separated env value and reject invalid regexes early."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [p.strip() for p in v.split(",") if p.strip()]
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f'invalid ignore pattern "{pattern}": {exc}') from exc
        return list(v)

    @field_validator("LOG_LEVEL", mode="after")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper()


default_setting = Settings()
