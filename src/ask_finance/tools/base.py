"""Base class for ask-finance tools.

Each tool declares its name, a description for the model, a hand-written
JSON-schema ``parameters`` contract, and a pydantic input model that the
arguments are validated against before execution.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from ..errors import ToolInputError
from ..models.outputs import ToolOutputBase


def format_validation_error(error: ValidationError) -> str:
    """Summarize a pydantic error as ``field: message`` pairs."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "input"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class FinanceTool(ABC):
    """A declared capability the reasoning model can invoke.

    Subclasses set ``input_model`` and implement ``run``.
    """

    input_model: ClassVar[type[BaseModel]]

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        pass

    def validate_input(self, arguments: dict[str, Any]) -> BaseModel:
        """Validate raw arguments against the input model.

        Raises:
            ToolInputError: If the arguments violate the contract
        """
        try:
            return self.input_model.model_validate(arguments)
        except ValidationError as e:
            raise ToolInputError(f"Invalid input for {self.name}: {format_validation_error(e)}") from e

    async def execute(self, **kwargs: Any) -> ToolOutputBase:
        """Validate the arguments and run the tool.

        Returns:
            One of the tool output variants
        """
        params = self.validate_input(kwargs)
        return await self.run(params)

    @abstractmethod
    async def run(self, params: Any) -> ToolOutputBase:
        pass
