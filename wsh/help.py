"""
wsh help rendering: pure formatting over the registry.

render(registry, path, ...) prints either
- the top-level help (no path): usage, the global -h/--help flag and every root
  context sorted by letter, or
- the help of the context addressed by path: usage line, description, flags,
  sub-contexts sorted by letter and, for plugin contexts, the backing script.

Palette keys
- usage-label, program-name, usage-section, description-section, epilog-section
- group-label, flag-name, metavar, flag-description
- children-title, children-table, children, children-name, children-description
- script-label, script
- panel-title

Customization
- Define a mapping named __styles__ in __main__ to override any palette entry.
- When colorful is False, styling is suppressed.
"""
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import faults
from .utils import *

DESCRIPTION = "A shell wrapper with plugin support"


def _names(flag, styler, text):
    names = Text(", ").join(
        text(name, styler("flag-name")) for name in (
            "-" + flag.short if flag.short is not None else None,
            "--" + flag.long if flag.long is not None else None,
        ) if name
    )
    if flag.valued:
        names.append(" ").append(Text.assemble("<", text(flag.argname, styler("metavar")), ">"))
    return names


def render(registry, path=(), /, *, console=Unset, colorful=False, fancy=False):
    """
    Print help for path (an iterable of letters, empty for the top level).

    Returns
    - True when something was rendered, False for an unknown path (reported on stderr).
    """
    console = coalesce(console, Console())
    path = tuple(path)

    styles = defaultdict(str, {
        # === Head sections ===
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "usage-section": "bold #36C5F0",
        "description-section": "italic #A3A3A3",
        "epilog-section": "#737373",

        # === Flags ===
        "group-label": "bold #FFFFFF",
        "flag-name": "bold #22C55E",
        "metavar": "bold #FFD600",
        "flag-description": "#9CA3AF",

        # === Children table ===
        "children-title": "bold #FFFFFF",
        "children-table": "#4B5563",
        "children": "bold #36C5F0",
        "children-name": "#36C5F0",
        "children-description": "#9CA3AF",

        # === Script ===
        "script-label": "bold #FFFFFF",
        "script": "#737373",

        # === Fancy panel ===
        "panel-title": "bold #FF4D94",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    if path:
        if (context := registry.lookup(path)) is None:
            faults.console.print("wsh: unknown context: -%s" % "".join(path))
            return False
        route = "-" + "".join(context.path)
        descr = context.descr
        flags = context.flags
        children = context.children
        title = "sub-contexts"
    else:
        context = None
        route = "[-<context>...]"
        descr = DESCRIPTION
        flags = ()
        children = {root.letter: root for root in registry.roots()}
        title = "contexts"

    renders = []

    usage = Text()
    usage.append("usage", styler("usage-label")).append(":").append(" ")
    usage.append(text("wsh", styler("program-name"))).append(" ")
    usage.append(text("%s [flags] [args...]" % route, styler("usage-section")))
    renders.append(usage.append("\n"))

    if descr:
        renders.append(text(descr, styler("description-section")).append("\n"))

    grid = Table.grid(padding=(0, 3))
    grid.add_column(no_wrap=True)
    grid.add_column()
    grid.add_row(
        Text("  ").append(Text(", ").join([text("-h", styler("flag-name")), text("--help", styler("flag-name"))])),
        text("show this help message", styler("flag-description")),
    )
    for flag in flags:
        grid.add_row(
            Text("  ").append(_names(flag, styler, text)),
            text(flag.descr or "", styler("flag-description")),
        )
    renders.append(Group(text("flags", styler("group-label")).append(":"), grid, Text("")))

    if children:
        table = Table(
            "context", "name", "help",
            title=text(title, styler("children-title")),
            box=ROUNDED,
            style=styler("children-table"),
            header_style=styler("children-title"),
        )
        for letter, child in sorted(children.items()):
            table.add_row(
                text("-" + "".join(child.path), styler("children")),
                text("--" + child.name, styler("children-name")),
                text(child.descr or "no description", styler("children-description")),
            )
        renders.append(table)

    if context is not None and not context.builtin:
        renders.append(Text.assemble(
            text("script", styler("script-label")), ": ", text(context.script, styler("script"))
        ))

    renders.append(text(
        "use 'wsh -<context>h' or 'wsh --<context> --help' for context-specific help",
        styler("epilog-section"),
    ))

    renderable = Group(*renders)
    if fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[ ", "WSH %s HELP" % route if context is not None else "WSH HELP", " ]", style=styler("panel-title")),
            title_align="left",
        )

    console.print(renderable)
    return True


__all__ = (
    "render",
)
