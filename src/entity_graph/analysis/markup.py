"""Markup helpers: component tag names and event-callback props."""

import re
from typing import Optional

_KEBAB_TAG = re.compile(r"^[a-z][a-z0-9]*(?:-[a-z0-9]+)+$")
_PASCAL_TAG = re.compile(r"^[A-Z][A-Za-z0-9]*(?:\.[A-Z][A-Za-z0-9]*)*$")
_CALLBACK_PROP = re.compile(r"^on([A-Z][A-Za-z0-9]*)$")

EMIT_CALLEES = ("emit", "$emit")


def is_component_tag(tag: str) -> bool:
    """PascalCase (``UserCard``, ``Menu.Item``) or kebab-case (``user-card``)."""
    return bool(_PASCAL_TAG.match(tag) or _KEBAB_TAG.match(tag))


def kebab_to_pascal(tag: str) -> str:
    """``user-card`` -> ``UserCard``; PascalCase tags are returned unchanged."""
    if "-" not in tag:
        return tag
    return "".join(part[:1].upper() + part[1:] for part in tag.split("-") if part)


def callback_event(prop: str) -> Optional[str]:
    """``onSelectItem`` -> ``selectItem``; None for anything else."""
    match = _CALLBACK_PROP.match(prop)
    if match is None:
        return None
    name = match.group(1)
    return name[0].lower() + name[1:]


def is_emit_callee(callee: str) -> bool:
    """``emit``, ``$emit``, ``this.$emit``, ``ctx.emit`` and the like."""
    if callee in EMIT_CALLEES:
        return True
    return callee.endswith(".emit") or callee.endswith(".$emit")
