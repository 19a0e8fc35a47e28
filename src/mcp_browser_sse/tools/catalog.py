"""
Tool catalog: the ordered, read-only list of tools a session exposes.

Each ToolSpec carries the tool's wire name, a description for the model, and a
pydantic model describing its arguments. The JSON Schema sent in `tools/list`
is derived from that model, so what is advertised and what is validated can
never drift apart.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Type

from mcp import types
from pydantic import BaseModel, ConfigDict, Field

from ..errors import DuplicateToolError


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------

class NoArguments(BaseModel):
    model_config = ConfigDict(extra="ignore")


class NavigateArgs(BaseModel):
    url: str = Field(description="The URL to navigate to")
    timeout: Optional[int] = Field(
        default=None,
        gt=0,
        description="Navigation timeout in milliseconds (default 60000)",
    )


class ActArgs(BaseModel):
    action: str = Field(
        description=(
            "The action to perform. Should be as atomic and specific as possible, "
            "i.e. 'Click the sign in button' or 'Type 'hello' into the search input'. "
            "AVOID actions that are more than one step."
        )
    )
    variables: Optional[Dict[str, str]] = Field(
        default=None,
        description=(
            "Variables used in the action template. ONLY use variables if you're dealing "
            "with sensitive data or dynamic content. Reference them as %name% in the action."
        ),
    )


class ExtractArgs(BaseModel):
    summary: str = Field(
        description=(
            "A summary of the content of the page. This should be a single sentence that "
            "captures the main objective to extract from the page."
        )
    )


class ObserveArgs(BaseModel):
    instruction: str = Field(
        description=(
            "Instruction for observation (e.g., 'find the login button'). "
            "This instruction must be extremely specific."
        )
    )


class ScreenshotArgs(BaseModel):
    summary: str = Field(
        description="A single sentence that captures the main objective to check from the page."
    )


class CustomEvalArgs(BaseModel):
    script: str = Field(description="The JavaScript code to run in the page context.")


class DetectProductsArgs(BaseModel):
    hints: Optional[List[str]] = Field(
        default=None,
        description="Hints such as 'price', 'product', 'image' that guide the analysis",
    )


# ---------------------------------------------------------------------------
# Specs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel] = NoArguments

    @property
    def input_schema(self) -> dict:
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return schema

    def to_mcp_tool(self) -> types.Tool:
        return types.Tool(name=self.name, description=self.description, inputSchema=self.input_schema)


class ToolCatalog:
    """Ordered, immutable set of ToolSpecs. Names are unique."""

    def __init__(self, specs: Sequence[ToolSpec]):
        by_name: Dict[str, ToolSpec] = {}
        for spec in specs:
            if spec.name in by_name:
                raise DuplicateToolError(spec.name)
            by_name[spec.name] = spec
        self._specs = tuple(specs)
        self._by_name = by_name

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._by_name.get(name)

    def names(self) -> List[str]:
        return [s.name for s in self._specs]

    def as_mcp_tools(self) -> List[types.Tool]:
        return [s.to_mcp_tool() for s in self._specs]

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


CORE_TOOLS = [
    ToolSpec(
        name="browser_navigate",
        description=(
            "Navigate to a URL in the browser. Only use this tool with URLs you're confident "
            "will work and stay up to date. Otherwise use https://google.com as the starting point"
        ),
        input_model=NavigateArgs,
    ),
    ToolSpec(
        name="browser_act",
        description=(
            "Performs an action on a web page element. Act actions should be as atomic and "
            "specific as possible, i.e. \"Click the sign in button\" or \"Type 'hello' into the "
            "search input\". AVOID actions that are more than one step, i.e. \"Order me pizza\" "
            "or \"Send an email to Paul asking him to call me\"."
        ),
        input_model=ActArgs,
    ),
    ToolSpec(
        name="browser_extract",
        description="Extracts all of the text from the current page.",
        input_model=ExtractArgs,
    ),
    ToolSpec(
        name="browser_observe",
        description=(
            "Observes elements on the web page. Use this tool to observe elements that you can "
            "later use in an action. Use observe instead of extract when dealing with actionable "
            "(interactable) elements rather than text. More often than not, you'll want to use "
            "extract instead of observe when dealing with scraping or extracting structured text."
        ),
        input_model=ObserveArgs,
    ),
    ToolSpec(
        name="screenshot",
        description=(
            "Takes a screenshot of the current page. Use this tool to learn where you are on the "
            "page when controlling the browser. Only use this tool when the other tools are not "
            "sufficient to get the information you need."
        ),
        input_model=ScreenshotArgs,
    ),
    ToolSpec(
        name="browser_custom_eval",
        description="Evaluates arbitrary JavaScript in the page and returns the result as JSON.",
        input_model=CustomEvalArgs,
    ),
    ToolSpec(
        name="browser_ping",
        description="Test tool that identifies this server.",
    ),
]

EXTENDED_TOOLS = [
    ToolSpec(
        name="browser_detect_forms",
        description=(
            "Detects every form on the page, including same-origin frames, with their inputs, "
            "selects, textareas and attributes."
        ),
    ),
    ToolSpec(
        name="browser_detect_ctas",
        description=(
            "Detects buttons and calls to action on the page. Includes text, CSS classes, "
            "position and visibility."
        ),
    ),
    ToolSpec(
        name="browser_detect_products",
        description=(
            "Detects e-commerce products with name, price, availability, image and link when "
            "available."
        ),
        input_model=DetectProductsArgs,
    ),
    ToolSpec(
        name="browser_snapshot_dom",
        description="Captures the full page DOM as JSON for structured analysis or version comparison.",
    ),
    ToolSpec(
        name="browser_get_metrics",
        description=(
            "Gets page load metrics: navigation timing, script and image counts, JS heap usage "
            "and loaded resources."
        ),
    ),
    ToolSpec(
        name="browser_detect_scrollers",
        description="Detects scrollable containers on the page with their bounding boxes.",
    ),
    ToolSpec(
        name="browser_inject_event_tracker",
        description=(
            "Starts recording every addEventListener call on the page. Read the results with "
            "browser_get_tracked_events."
        ),
    ),
    ToolSpec(
        name="browser_get_tracked_events",
        description="Returns the events recorded since browser_inject_event_tracker was called.",
    ),
]


def default_catalog() -> ToolCatalog:
    return ToolCatalog([*CORE_TOOLS, *EXTENDED_TOOLS])


__all__ = [
    "ToolSpec",
    "ToolCatalog",
    "CORE_TOOLS",
    "EXTENDED_TOOLS",
    "default_catalog",
    "NoArguments",
    "NavigateArgs",
    "ActArgs",
    "ExtractArgs",
    "ObserveArgs",
    "ScreenshotArgs",
    "CustomEvalArgs",
    "DetectProductsArgs",
]
