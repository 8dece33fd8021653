# === FILE: hyphen_edit/config.py ===
"""
Модуль для загрузки и валидации конфигурации редактора веб-сущностей.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
    model_validator,
)

DEFAULT_STATUSES: tuple[str, ...] = ("UNDECIDED", "IN", "OUT", "DISCOVERED")


class EditorConfig(BaseModel):
    """Конфигурация одной сессии редактирования."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    api_url: HttpUrl = Field(..., description="Базовый URL API хранилища веб-сущностей.")
    timeout: float = Field(10.0, gt=0, description="Таймаут на один запрос (секунд).")
    user_agent: str = Field("HyphenEdit/1.0", min_length=1, description="Заголовок User-Agent.")
    retry_times: int = Field(2, ge=0, description="Число повторных попыток загрузки при 5xx.")
    statuses: List[str] = Field(
        default_factory=lambda: list(DEFAULT_STATUSES),
        min_length=1,
        description="Словарь статусов, если сервер его не отдаёт.",
    )
    default_status: str = Field("DISCOVERED", description="Статус для неизвестных значений.")
    editable_namespace: str = Field("USER", min_length=1, description="Пространство имён пользовательских тегов.")
    readonly_category: str = Field("Other", min_length=1, description="Категория технических тегов.")
    tag_categories: List[str] = Field(
        default_factory=list, description="Редактируемые категории, доступные всегда."
    )
    template_dir: Optional[Path] = Field(None, description="Папка с Jinja2-шаблонами.")

    @field_validator("api_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("statuses", mode="after")
    def _upper_statuses(cls, v: List[str]) -> List[str]:
        return [s.strip().upper() for s in v if s.strip()]

    @field_validator("default_status", mode="after")
    def _upper_default(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def _check_default_status(self) -> EditorConfig:
        if self.default_status not in self.statuses:
            raise ValueError(f"default_status {self.default_status!r} is not one of {self.statuses}")
        if self.readonly_category in self.tag_categories:
            raise ValueError(f"{self.readonly_category!r} cannot be an editable category")
        return self

    @property
    def base_url(self) -> str:
        return str(self.api_url).rstrip("/")


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> EditorConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект EditorConfig.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return EditorConfig(**data)
