"""AI image generation tool."""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel

from ...models import ImageData, ImageOutput, WireModel
from ...services.base import ImageGenerator
from ..base import FinanceTool

STYLE_PROMPTS = {
    "chart": (
        "Create a professional financial chart visualization. Clean, corporate style with clear labels, "
        "legends, and a modern color palette. High resolution, suitable for business presentations."
    ),
    "infographic": (
        "Design a modern business infographic with clear visual hierarchy, icons, data visualization "
        "elements, and professional typography. Corporate color scheme."
    ),
    "financial": (
        "Create a professional financial visualization with clean lines, corporate blue/green color "
        "scheme, clear data representation, and suitable for executive presentations."
    ),
}


class ImageMetric(BaseModel):
    name: str
    value: Union[str, float]
    change: Optional[float] = None
    trend: Optional[Literal["up", "down", "neutral"]] = None


class ImageInput(WireModel):
    type: Literal["infographic", "dashboard", "chart", "custom"]
    prompt: str
    title: Optional[str] = None
    metrics: Optional[list[ImageMetric]] = None
    period: Optional[str] = None


def _metric_line(metric: ImageMetric) -> str:
    line = f"- {metric.name}: {metric.value}"
    if metric.change is not None:
        line += f" ({metric.change:+.1f}%)"
    if metric.trend:
        line += f", trend {metric.trend}"
    return line


def build_image_prompt(params: ImageInput) -> str:
    """Expand the request into a style-specific generation prompt."""
    if params.type in ("dashboard", "infographic") and params.metrics and params.title:
        metrics = "\n".join(_metric_line(m) for m in params.metrics)
        if params.type == "dashboard":
            period = f" for {params.period}" if params.period else ""
            return (
                f"{STYLE_PROMPTS['financial']} Create an executive KPI dashboard titled "
                f'"{params.title}"{period} showing these metrics as cards with trend indicators:\n'
                f"{metrics}\n{params.prompt}"
            )
        return (
            f"{STYLE_PROMPTS['infographic']} Title: \"{params.title}\". "
            f"Sections:\n{metrics}\n{params.prompt}"
        )

    style = {"chart": "chart", "infographic": "infographic"}.get(params.type, "financial")
    return f"{STYLE_PROMPTS[style]} {params.prompt}"


class GenerateImageTool(FinanceTool):
    input_model = ImageInput

    def __init__(self, generator: ImageGenerator) -> None:
        self.generator = generator

    @property
    def name(self) -> str:
        return "generate_image"

    @property
    def description(self) -> str:
        return (
            "Generate a professional AI image visualization. Use this for creating infographics, "
            "dashboards, and custom financial visualizations."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "type": {
                    "type": "string",
                    "enum": ["infographic", "dashboard", "chart", "custom"],
                    "description": "Type of image to generate",
                },
                "prompt": {"type": "string", "description": "Description of the image to generate"},
                "title": {"type": "string", "description": "Title for the visualization"},
                "metrics": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string"},
                            "value": {"type": "string"},
                            "change": {"type": "number"},
                            "trend": {"type": "string", "enum": ["up", "down", "neutral"]},
                        },
                    },
                    "description": "Metrics to display (for dashboard/infographic)",
                },
                "period": {"type": "string", "description": "Time period for the data"},
            },
            "required": ["type", "prompt"],
        }

    async def run(self, params: ImageInput) -> ImageOutput:
        image = await self.generator.generate(build_image_prompt(params))
        return ImageOutput(
            data=ImageData(
                title=params.title or "Generated Visualization",
                image_data=image.image_data,
                mime_type=image.mime_type,
                prompt=image.prompt,
            )
        )
