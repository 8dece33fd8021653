"""hyphen_edit.tree: lazily expandable content tree."""

from hyphen_edit.tree.renderer import ContentTreeRenderer, TreeNode

__all__ = ["ContentTreeRenderer", "TreeNode"]
