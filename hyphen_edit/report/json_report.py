# hyphen_edit/report/json_report.py

"""
Выгрузка веб-сущности в JSON.

Сериализует сущность в ту же форму, что принимает backend.
"""
import json
from pathlib import Path

from hyphen_edit.config import EditorConfig
from hyphen_edit.model.entity import WebEntity
from hyphen_edit.model.serialize import entity_to_payload


def entity_json(entity: WebEntity, config: EditorConfig, *, indent: int | None = 2) -> str:
    """Строка JSON для entity (форма payload backend)."""
    return json.dumps(entity_to_payload(entity, config), ensure_ascii=False, indent=indent)


def render_json(entity: WebEntity, config: EditorConfig, output_path: Path | str) -> Path:
    """
    Сохраняет entity в формате JSON по указанному пути.

    :param entity: веб-сущность из хранилища
    :param config: конфигурация (нужна для пространства имён тегов)
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(entity_json(entity, config), encoding="utf-8")
    return output
