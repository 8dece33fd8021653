# === FILE: hyphen_edit/cli.py ===
#!/usr/bin/env python3
"""
Точка входа редактора веб-сущностей Hyphen через командную строку.

Команды:
  config    Показать текущую конфигурацию
  show      Загрузить сущность, вывести её JSON и/или сохранить страницу
  set       Изменить поле (name, homepage, status)
  tag       Добавить, удалить или переименовать пользовательский тег
  prefix    Добавить или удалить LRU-префикс

Общие опции:
  --config PATH       Путь к YAML-конфигу (default: configs/default.yaml)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --log-format FORMAT Формат логирования

Дополнительно:
  --version, -v       Показать версию Hyphen

Пример:
  hyphen-edit --config configs/default.yaml set 42 status in
"""
import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

import click

from hyphen_edit import __version__
from hyphen_edit.config import EditorConfig, load_config
from hyphen_edit.logger import init_logging
from hyphen_edit.model.entity import EDITABLE_FIELDS, WebEntity
from hyphen_edit.page import EditPage, PageContext
from hyphen_edit.report.html_report import render_html
from hyphen_edit.report.json_report import entity_json, render_json
from hyphen_edit.sync.client import Backend, HttpBackend

CONTEXT_SETTINGS = dict(help_option_names=["--help"])

PageAction = Callable[[EditPage], Awaitable[bool]]


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def make_backend(cfg: EditorConfig) -> Backend:
    return HttpBackend(cfg)


@dataclass
class PageOutcome:
    """Итог работы со страницей, доступный после её закрытия."""
    ok: bool
    error: Optional[str] = None
    entity: Optional[WebEntity] = None
    html: str = ""

    def render(self) -> str:
        return self.html


async def run_page(
    cfg: EditorConfig,
    entity_id: str,
    action: Optional[PageAction] = None,
    *,
    expand: Sequence[str] = (),
) -> PageOutcome:
    """Открывает страницу, выполняет action и закрывает её."""
    async with make_backend(cfg) as backend:
        async with EditPage(PageContext(entity_id), cfg, backend) as page:
            if page.state == "error":
                return PageOutcome(ok=False, error=str(page.error), html=page.render())
            for child_id in expand:
                await page.expand(child_id)
            ok = True if action is None else await action(page)
            return PageOutcome(
                ok=ok,
                error=None if ok else str(page.last_error),
                entity=page.store.focal,
                html=page.render(),
            )


def _execute(cfg: EditorConfig, entity_id: str, action: Optional[PageAction] = None, **kwargs) -> PageOutcome:
    try:
        outcome = asyncio.run(run_page(cfg, entity_id, action, **kwargs))
    except Exception as e:
        print_error(f'Ошибка при работе с сущностью {entity_id}: {e}')
    if not outcome.ok:
        print_error(f'Ошибка: {outcome.error}')
    return outcome


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='Hyphen, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default='configs/default.yaml',
    show_default=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд Hyphen CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


@cli.command('show', context_settings=CONTEXT_SETTINGS)
@click.argument('entity_id')
@click.option(
    '--expand', '-e', 'expand',
    multiple=True,
    help='Раскрыть узел дерева содержимого (можно повторять)'
)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить сущность в JSON-файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить отрисованную страницу в HTML-файл'
)
@click.pass_context
def show(ctx, entity_id, expand, json_output, html_output):
    """Загрузить веб-сущность и вывести/сохранить её."""
    cfg = ctx.obj['config']
    outcome = _execute(cfg, entity_id, expand=expand)

    # Если не сохраняем в файл — печатаем в stdout
    if not json_output and not html_output:
        click.echo(entity_json(outcome.entity, cfg))
        return

    if json_output:
        try:
            saved_json = render_json(outcome.entity, cfg, json_output)
            click.echo(f'JSON: {saved_json}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(outcome, html_output)
            click.echo(f'HTML: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('set', context_settings=CONTEXT_SETTINGS)
@click.argument('entity_id')
@click.argument('field', type=click.Choice(list(EDITABLE_FIELDS)))
@click.argument('value')
@click.pass_context
def set_field(ctx, entity_id, field, value):
    """Изменить поле веб-сущности."""
    cfg = ctx.obj['config']

    async def action(page: EditPage) -> bool:
        return await page.edit_field(field, value)

    outcome = _execute(cfg, entity_id, action)
    click.echo(f'{field}: {outcome.entity.value_of(field) or ""}')


@cli.command('tag', context_settings=CONTEXT_SETTINGS)
@click.argument('entity_id')
@click.argument('action_name', metavar='ACTION', type=click.Choice(['add', 'remove', 'rename']))
@click.argument('category')
@click.argument('value')
@click.option('--to', 'new_value', default=None, help='Новое значение для rename')
@click.pass_context
def tag(ctx, entity_id, action_name, category, value, new_value):
    """Изменить пользовательский тег веб-сущности."""
    cfg = ctx.obj['config']
    if action_name == 'rename' and not new_value:
        print_error('Для rename нужен параметр --to')

    async def action(page: EditPage) -> bool:
        if action_name == 'add':
            return await page.add_tag(category, value)
        if action_name == 'remove':
            return await page.remove_tag(category, value)
        return await page.rename_tag(category, value, new_value)

    outcome = _execute(cfg, entity_id, action)
    values = sorted(outcome.entity.tags.get(category, ()), key=str.casefold)
    click.echo(f'{category}: {", ".join(values)}')


@cli.command('prefix', context_settings=CONTEXT_SETTINGS)
@click.argument('entity_id')
@click.argument('action_name', metavar='ACTION', type=click.Choice(['add', 'remove']))
@click.argument('value')
@click.pass_context
def prefix(ctx, entity_id, action_name, value):
    """Добавить или удалить LRU-префикс (принимается URL или LRU)."""
    cfg = ctx.obj['config']

    async def action(page: EditPage) -> bool:
        if action_name == 'add':
            return await page.add_prefix(value)
        return await page.remove_prefix(value)

    outcome = _execute(cfg, entity_id, action)
    for url in outcome.entity.prefix_urls:
        click.echo(url)


if __name__ == "__main__":
    cli()
