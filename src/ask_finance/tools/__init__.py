"""Tool integration for ask-finance.

- FinanceTool: base class declaring name, description, schema and input model
- ToolRegistry: name lookup and concurrent dispatch
- builtin: the ten finance tools and ``build_default_registry``
"""

from .base import FinanceTool, format_validation_error
from .builtin import build_default_registry
from .registry import ToolRegistry

__all__ = [
    "FinanceTool",
    "ToolRegistry",
    "build_default_registry",
    "format_validation_error",
]
