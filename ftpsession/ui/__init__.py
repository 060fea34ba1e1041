from .tree import TreePrinter, render_tree

__all__ = ["TreePrinter", "render_tree"]
