"""Tree-pane client components: reconcile, project, navigate, render."""

from .navigation import KeyboardNavigator, NavigationOutcome, TypeaheadBuffer
from .reconcile import reconcile_snapshot
from .session import TreeSession
from .state import TreeViewState
from .viewport import TreeViewport
from .visible import VisibleNode, flatten_visible

__all__ = [
    "KeyboardNavigator",
    "NavigationOutcome",
    "TypeaheadBuffer",
    "reconcile_snapshot",
    "TreeSession",
    "TreeViewState",
    "TreeViewport",
    "VisibleNode",
    "flatten_visible",
]
