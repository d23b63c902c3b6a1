# ==============================
# Config Schemas (Pydantic)
# ==============================
"""
Pydantic settings models for pict_template/.

Notes:
- No env reads here. No file IO here. Pure types + defaults.
- loader.py builds a single Settings object with precedence merging.

Precedence (implemented in loader.py):
env > .env > configs/*.yaml > defaults
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


# ==============================
# App Settings
# ==============================


class PathsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    repo_root: str = Field(default=".", description="Repo root (relative or absolute)")
    configs_dir: str = Field(default="configs", description="Configs directory")


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product: str = Field(default="Pict", description="Product label attached to log lines")
    env: str = Field(default="local", description="Environment name (local/stage/prod)")
    paths: PathsConfig = Field(default_factory=PathsConfig)


# ==============================
# Host Settings
# ==============================


class HostConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Seed data exposed to templates as AppData / Bundle
    app_data: Dict[str, Any] = Field(default_factory=dict)
    bundle: Dict[str, Any] = Field(default_factory=dict)


# ==============================
# Template Provider Settings
# ==============================


class TemplatesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    providers: List[str] = Field(
        default_factory=list,
        description="Provider classes registered at host startup ('package.module:ClassName').",
    )


# ==============================
# Logging Settings
# ==============================


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    level: str = Field(default="INFO")
    console: bool = Field(default=True)
    json_lines: bool = Field(default=True, description="Emit one JSON object per log line")


# ==============================
# Top-Level Settings
# ==============================


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app: AppConfig = Field(default_factory=AppConfig)
    host: HostConfig = Field(default_factory=HostConfig)
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
