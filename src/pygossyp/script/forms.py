"""
The orchestration language is written in JSON. Parsing turns a program value
into a tree of forms, decided purely by shape:

    {"$": name}                                 reference
    {"call": name, "input": program}            call ("input" may be left out)
    [program, ...]  or  {"do": [program, ...]}  sequence
    {"let": name, "value": program, "in": program}
    {"define": name, "body": program}           ("parameters": [names] optional)
    {"quote": value}                            the value, uninterpreted

An object is a form only when its keys are exactly those of one shape and its
name fields are strings. Anything else is data: scalars stand for themselves,
and objects and arrays in data position are built member by member, so forms
may appear inside them.

Arrays mean different things by position. Where a program is expected (the
top level, the body of "let", a definition body, the items of a sequence) an
array is a sequence. Where a value is expected ("input", "value", the members
of an object or array being built) an array builds an array.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..value import Value


class Form:
    """Base of all parsed forms."""


@dataclass(frozen=True)
class Literal(Form):
    value: Value


@dataclass(frozen=True)
class Reference(Form):
    name: str


@dataclass(frozen=True)
class Call(Form):
    tool: str
    input: Form


@dataclass(frozen=True)
class Sequence(Form):
    items: tuple[Form, ...]


@dataclass(frozen=True)
class Let(Form):
    name: str
    value: Form
    body: Form


@dataclass(frozen=True)
class Define(Form):
    name: str
    parameters: tuple[str, ...]
    body: Value     # handed to the define tool as data


@dataclass(frozen=True)
class BuildArray(Form):
    items: tuple[Form, ...]


@dataclass(frozen=True)
class BuildObject(Form):
    fields: tuple[tuple[str, Form], ...]


# tag key -> (required keys, optional keys)
SHAPES: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    "$": (frozenset({"$"}), frozenset()),
    "call": (frozenset({"call"}), frozenset({"input"})),
    "do": (frozenset({"do"}), frozenset()),
    "let": (frozenset({"let", "value", "in"}), frozenset()),
    "define": (frozenset({"define", "body"}), frozenset({"parameters"})),
    "quote": (frozenset({"quote"}), frozenset()),
}


def _is_name_list(obj: Any) -> bool:
    return isinstance(obj, list) and all(isinstance(x, str) and x for x in obj)


def form_tag(obj: Any) -> str | None:
    """The form an object's shape selects, or None if it is plain data."""
    if not isinstance(obj, dict):
        return None
    keys = set(obj.keys())
    for tag, (required, optional) in SHAPES.items():
        if tag in keys and required <= keys <= (required | optional):
            break
    else:
        return None

    if tag in ("$", "call", "let", "define") and not (isinstance(obj[tag], str) and obj[tag]):
        return None
    if tag == "do" and not isinstance(obj["do"], list):
        return None
    if tag == "define" and "parameters" in obj and not _is_name_list(obj["parameters"]):
        return None
    return tag


def parse(program: Value) -> Form:
    """Parse a program (an array here is a sequence)."""
    if isinstance(program, list):
        return Sequence(tuple(parse(p) for p in program))
    return parse_data(program)


def parse_data(program: Value) -> Form:
    """Parse in value position (an array here is built, not sequenced)."""
    tag = form_tag(program)
    if tag is not None:
        return _parse_tagged(tag, program)

    if isinstance(program, list):
        items = tuple(parse_data(p) for p in program)
        if all(_is_self(f, p) for f, p in zip(items, program)):
            return Literal(program)
        return BuildArray(items)

    if isinstance(program, dict):
        fields = tuple((k, parse_data(v)) for k, v in program.items())
        if all(_is_self(f, program[k]) for k, f in fields):
            return Literal(program)
        return BuildObject(fields)

    return Literal(program)


def _is_self(form: Form, source: Value) -> bool:
    # a member that parsed to itself; quoted members parse to something else
    return isinstance(form, Literal) and form.value is source


def _parse_tagged(tag: str, obj: dict[str, Any]) -> Form:
    if tag == "$":
        return Reference(obj["$"])
    if tag == "call":
        return Call(obj["call"], parse_data(obj.get("input")))
    if tag == "do":
        return Sequence(tuple(parse(p) for p in obj["do"]))
    if tag == "let":
        return Let(obj["let"], parse_data(obj["value"]), parse(obj["in"]))
    if tag == "define":
        return Define(obj["define"], tuple(obj.get("parameters") or ()), obj["body"])
    if tag == "quote":
        return Literal(obj["quote"])
    raise AssertionError(tag)


def is_literal(program: Value) -> bool:
    """True when the program contains no form shapes and so evaluates to itself."""
    return _is_self(parse(program), program)
