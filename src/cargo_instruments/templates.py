"""
Instruments template listings.

Two listing formats exist, one per tool generation. `xcrun xctrace list
templates` prints section-delimited plain text:

    == Standard Templates ==
    Activity Monitor
    Allocations
    ...
    Zombies

    == Custom Templates ==
    MyTemplate

The legacy `instruments -s templates` prints a header followed by quoted names,
with user templates listed last as file paths:

    Known Templates:
    "Activity Monitor"
    "Allocations"
    ...
    "~/Library/Application Support/Instruments/Templates/MyTemplate.tracetemplate"

Both are normalized into a `TemplateCatalog`.
"""

from __future__ import annotations

import subprocess
from pathlib import PurePosixPath

from .errors import TemplateListError
from .model import TemplateCatalog, ToolVariant

TEMPLATE_ALIASES: dict[str, str] = {
    "time": "Time Profiler",
    "alloc": "Allocations",
    "io": "File Activity",
    "sys": "System Trace",
}
_ABBREVIATIONS: dict[str, str] = {name: alias for alias, name in TEMPLATE_ALIASES.items()}

_USER_TEMPLATE_PREFIX = "~/Library/"
_CHECK_INSTALL_HINT = "Please check your Xcode Instruments installation."


def resolve_template_name(name: str) -> str:
    """Return the full template name for an abbreviation; other names pass through."""
    return TEMPLATE_ALIASES.get(name, name)


def abbrev_name(template_name: str) -> str | None:
    return _ABBREVIATIONS.get(template_name)


def _is_marker(line: str) -> bool:
    return line.startswith("=")


def _require_standard(standard: list[str]) -> None:
    if not standard:
        raise TemplateListError("No available templates.", hint=_CHECK_INSTALL_HINT)


def parse_xctrace_templates(stdout: str, stderr: str = "") -> TemplateCatalog:
    """Parse `xcrun xctrace list templates` output.

    Older xctrace releases print the listing on stderr, newer ones on stdout.
    """
    text = stdout if stdout.strip() else stderr
    lines = [ln.strip() for ln in text.splitlines()]

    idx = 0
    while idx < len(lines) and not _is_marker(lines[idx]):
        idx += 1
    idx += 1

    standard: list[str] = []
    while idx < len(lines) and lines[idx] and not _is_marker(lines[idx]):
        standard.append(lines[idx])
        idx += 1
    _require_standard(standard)

    custom = [ln for ln in lines[idx:] if ln and not _is_marker(ln)]
    return TemplateCatalog(standard_templates=tuple(standard), custom_templates=tuple(custom))


def parse_instruments_templates(stdout: str) -> TemplateCatalog:
    """Parse legacy `instruments -s templates` output."""
    lines = [ln.strip().strip('"') for ln in stdout.splitlines()[1:]]

    standard: list[str] = []
    idx = 0
    while idx < len(lines) and not lines[idx].startswith(_USER_TEMPLATE_PREFIX):
        if lines[idx]:
            standard.append(lines[idx])
        idx += 1
    _require_standard(standard)

    custom: list[str] = []
    for line in lines[idx:]:
        if not line:
            break
        custom.append(PurePosixPath(line).stem)
    return TemplateCatalog(standard_templates=tuple(standard), custom_templates=tuple(custom))


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TemplateListError(f"Template listing is not valid UTF-8: {e}", hint=_CHECK_INSTALL_HINT) from e


def list_templates(variant: ToolVariant) -> TemplateCatalog:
    """Run the variant's listing command and parse its output."""
    if variant == "xctrace":
        cmd = ["xcrun", "xctrace", "list", "templates"]
    elif variant == "instruments":
        cmd = ["instruments", "-s", "templates"]
    else:
        raise AssertionError(f"Unhandled tool variant: {variant}")

    try:
        proc = subprocess.run(cmd, capture_output=True, check=False)
    except FileNotFoundError as e:
        raise TemplateListError(f"Could not list templates: {cmd[0]} not found.", hint=_CHECK_INSTALL_HINT) from e
    if proc.returncode != 0:
        raise TemplateListError("Could not list templates.", hint=_CHECK_INSTALL_HINT)

    if variant == "xctrace":
        return parse_xctrace_templates(_decode(proc.stdout), _decode(proc.stderr))
    return parse_instruments_templates(_decode(proc.stdout))


def render_template_catalog(catalog: TemplateCatalog) -> str:
    """
    Render the catalog as a two-column listing.

    Example output:

        Xcode Instruments templates:

        built-in            abbrev
        --------------------------
        Activity Monitor
        Allocations         (alloc)
        ...
        Time Profiler       (time)

        custom
        --------------------------
        MyTemplate
    """
    names = [*catalog.standard_templates, *catalog.custom_templates]
    width = max(len(n) for n in names) + 2
    rule = "-" * (width + 6)

    lines = ["Xcode Instruments templates:", "", f"{'built-in':<{width}}abbrev", rule]
    for name in catalog.standard_templates:
        abbrev = abbrev_name(name.strip('"'))
        lines.append(f"{name:<{width}}({abbrev})" if abbrev else name)
    lines += ["", f"{'custom':<{width}}", rule]
    lines += list(catalog.custom_templates)
    return "\n".join(lines) + "\n"
