# File: hyphen_edit/view/environment.py
"""hyphen_edit.view.environment: Jinja2-окружение для фрагментов страницы."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PackageLoader, select_autoescape

from hyphen_edit.utils import format_timestamp, lru_to_url


def make_environment(template_dir: Optional[Union[str, Path]] = None) -> Environment:
    """Создаёт Environment; шаблоны из template_dir перекрывают встроенные."""
    loaders = []
    if template_dir is not None:
        loaders.append(FileSystemLoader(str(template_dir)))
    loaders.append(PackageLoader("hyphen_edit", "view/templates"))

    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(["html", "xml", "j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["lru_url"] = lru_to_url
    env.filters["timestamp"] = format_timestamp
    return env
