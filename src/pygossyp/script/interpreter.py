"""
Evaluates parsed programs against an environment.

Every form evaluates its parts strictly left to right and depth first; the
input of a call is fully evaluated before the tool is looked up and invoked.
A failure anywhere propagates unchanged: the interpreter never catches a
ToolError. Recovery is the business of tools such as "try".
"""
from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from ..cancellation import check_cancelled
from ..environment import Environment
from ..errors import tool_failure, unbound_name, unknown_tool
from ..tools.base import call_tool
from ..tools.native import ConstantTool
from ..value import Value, copy_value
from . import forms
from .forms import Form

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64
DEFINE_TOOL = "define"

_depth_var: contextvars.ContextVar[int] = contextvars.ContextVar("pygossyp_call_depth", default=0)
_limit_var: contextvars.ContextVar[int] = contextvars.ContextVar("pygossyp_max_depth", default=DEFAULT_MAX_DEPTH)


@contextmanager
def max_depth(limit: int) -> Iterator[None]:
    """Limit nested tool calls made in the current context."""
    if limit < 1:
        raise ValueError("max depth must be at least 1")
    token = _limit_var.set(limit)
    try:
        yield
    finally:
        _limit_var.reset(token)


@contextmanager
def _nested_call() -> Iterator[None]:
    depth = _depth_var.get() + 1
    limit = _limit_var.get()
    if depth > limit:
        raise tool_failure("maximum call depth exceeded", limit=limit)
    token = _depth_var.set(depth)
    try:
        yield
    finally:
        _depth_var.reset(token)


def evaluate(program: Value, env: Environment) -> Value:
    """Parse and evaluate a program."""
    try:
        return run_form(forms.parse(program), env)
    except RecursionError as e:
        raise tool_failure("program nested too deeply") from e


def run_form(form: Form, env: Environment) -> Value:
    try:
        fn = EVALUATE[type(form)]
    except KeyError:
        raise NotImplementedError(type(form), form)
    return fn(form, env)


def _eval_literal(form: forms.Literal, env: Environment) -> Value:
    return copy_value(form.value)


def _eval_reference(form: forms.Reference, env: Environment) -> Value:
    tool = env.lookup(form.name)
    if tool is None:
        raise unbound_name(form.name)
    check_cancelled()
    with _nested_call():
        return call_tool(tool, None, env)


def _eval_call(form: forms.Call, env: Environment) -> Value:
    input = run_form(form.input, env)
    tool = env.lookup(form.tool)
    if tool is None:
        raise unknown_tool(form.tool)
    check_cancelled()
    logger.debug("call %s", form.tool)
    with _nested_call():
        return call_tool(tool, input, env)


def _eval_sequence(form: forms.Sequence, env: Environment) -> Value:
    result: Value = None
    for item in form.items:
        result = run_form(item, env)
    return result


def _eval_let(form: forms.Let, env: Environment) -> Value:
    value = run_form(form.value, env)
    frame = env.child({form.name: ConstantTool(value)})
    return run_form(form.body, frame)


def _eval_define(form: forms.Define, env: Environment) -> Value:
    tool = env.lookup(DEFINE_TOOL)
    if tool is None:
        raise unknown_tool(DEFINE_TOOL)
    check_cancelled()
    request = {"name": form.name, "parameters": list(form.parameters), "body": copy_value(form.body)}
    return call_tool(tool, request, env)


def _eval_build_array(form: forms.BuildArray, env: Environment) -> Value:
    return [run_form(item, env) for item in form.items]


def _eval_build_object(form: forms.BuildObject, env: Environment) -> Value:
    return {key: run_form(item, env) for key, item in form.fields}


EVALUATE: dict[type, Callable[[Form, Environment], Value]] = {
    forms.Literal: _eval_literal,
    forms.Reference: _eval_reference,
    forms.Call: _eval_call,
    forms.Sequence: _eval_sequence,
    forms.Let: _eval_let,
    forms.Define: _eval_define,
    forms.BuildArray: _eval_build_array,
    forms.BuildObject: _eval_build_object,
}
