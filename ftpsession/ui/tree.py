from typing import List, Optional

from ftpsession.core.session import Session
from ftpsession.core.walker import UNLIMITED


class TreePrinter:
    """
    Walk callback that renders visited files as box-drawing tree lines.

    A directory header is emitted whenever the depth or the parent
    directory differs from the previous file's.
    """

    def __init__(self):
        self.lines: List[str] = []
        self.last_depth = -1
        self.last_dir: Optional[str] = None

    def __call__(self, path: str, mode: int, err: Optional[Exception]):
        depth = path.count('/') - 1
        current_dir, _, name = path.rpartition('/')

        if depth != self.last_depth or current_dir != self.last_dir:
            self.lines.append("|   " * max(depth - 1, 0) + "├───" + (current_dir or "/"))
        self.lines.append("|   " * depth + "├───" + name)

        self.last_depth = depth
        self.last_dir = current_dir


def render_tree(session: Session, root: str = "/", depth_limit: int = UNLIMITED) -> List[str]:
    printer = TreePrinter()
    session.walk(root, printer, depth_limit)
    return printer.lines
