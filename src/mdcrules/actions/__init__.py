"""Turning matched actions into effect descriptions, and executing them."""

from mdcrules.actions.dispatcher import (
    ActionDispatcher,
    DispatchError,
    DispatchResult,
    TemplateBindingError,
    build_bindings,
    dispatch_matches,
    render_template,
)
from mdcrules.actions.effects import EffectDescription
from mdcrules.actions.executor import EffectExecutor, ExecutionResult, ExecutionStatus

__all__ = [
    "ActionDispatcher",
    "DispatchError",
    "DispatchResult",
    "EffectDescription",
    "EffectExecutor",
    "ExecutionResult",
    "ExecutionStatus",
    "TemplateBindingError",
    "build_bindings",
    "dispatch_matches",
    "render_template",
]
