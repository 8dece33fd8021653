# File: hyphen_edit/report/__init__.py
"""hyphen_edit.report: выгрузка состояния страницы (JSON и HTML) для CLI и тестов."""

from hyphen_edit.report.html_report import render_html
from hyphen_edit.report.json_report import render_json

__all__ = ["render_json", "render_html"]
