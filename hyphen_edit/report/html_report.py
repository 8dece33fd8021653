# File: hyphen_edit/report/html_report.py
"""hyphen_edit.report.html_report: сохранение отрисованной страницы в HTML-файл."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Union


class Renderable(Protocol):
    def render(self) -> str: ...


def render_html(page: Renderable, output_path: Union[Path, str]) -> Path:
    """Сохраняет HTML страницы по указанному пути.

    Args:
        page: EditPage (или итог её работы) с методом ``render()``,
            который собирает разметку через Jinja2-окружение страницы.
        output_path: путь к итоговому HTML-файлу.

    Returns:
        Path до сохранённого HTML-файла.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(page.render(), encoding="utf-8")
    return output_path
