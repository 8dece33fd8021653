"""hyphen_edit.view: Jinja2 rendering of the page mount points."""

from hyphen_edit.view.bindings import MOUNT_POINTS, BindingMap, PageView, build_bindings
from hyphen_edit.view.environment import make_environment

__all__ = ["MOUNT_POINTS", "BindingMap", "PageView", "build_bindings", "make_environment"]
