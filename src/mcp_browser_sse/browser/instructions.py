"""
Natural-language instructions -> concrete element actions.

The page's interactive elements (see cleaners.interactive_elements) are offered
to an OpenAI chat model, which answers with JSON naming element indices. The
browser session then maps indices back to CSS selectors and performs the step.
"""

import re
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from openai import AsyncOpenAI

from ..errors import AutomationError

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("click", "fill", "press")

VARIABLE_PAT = re.compile(r"%([A-Za-z0-9_]+)%")

ACT_SYSTEM_PROMPT = (
    "You control a web browser. You receive one atomic action described in natural "
    "language and a numbered list of the interactive elements on the current page. "
    "Choose the single element the action refers to and how to operate it.\n"
    "Answer with a JSON object: "
    '{"index": <element index>, "method": "click" | "fill" | "press", '
    '"argument": <text to type or key to press, or null>, "description": <short description>}.\n'
    'If no element matches, answer {"index": null, "reason": <why>}.'
)

OBSERVE_SYSTEM_PROMPT = (
    "You inspect a web page. You receive an instruction and a numbered list of the "
    "interactive elements on the current page. Return the elements that match the "
    "instruction.\n"
    'Answer with a JSON object: {"elements": [{"index": <element index>, '
    '"description": <what the element is and what it does>}]}. '
    "Return an empty list when nothing matches."
)


def substitute_variables(text: str, variables: Optional[Mapping[str, Any]]) -> str:
    """Replace %name% placeholders; unknown placeholders are left as-is."""
    if not variables:
        return text

    def _sub(m):
        key = m.group(1)
        return str(variables[key]) if key in variables else m.group(0)

    return VARIABLE_PAT.sub(_sub, text)


def _describe_elements(elements: List[Dict[str, Any]]) -> str:
    lines = []
    for el in elements:
        attrs = " ".join(f'{k}="{v}"' for k, v in (el.get("attributes") or {}).items())
        text = el.get("text") or ""
        marker = " (button)" if el.get("button_like") else ""
        lines.append(f"[{el['index']}] <{el['tag']} {attrs}>{marker} {text}".rstrip())
    return "\n".join(lines)


class InstructionResolver:
    """
    Args:
        api_key: OpenAI API key (the session's resolved credential)
        model: Chat model name
        client: Optional AsyncOpenAI client, for dependency injection
    """

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini", client: Optional[AsyncOpenAI] = None):
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def _complete_json(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ""
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise AutomationError(f"Model returned invalid JSON: {content[:200]}") from e
        if not isinstance(data, dict):
            raise AutomationError(f"Model returned unexpected JSON: {content[:200]}")
        return data

    async def resolve_action(self, action: str, elements: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Returns:
            {"element": <element dict>, "method": str, "argument": Optional[str], "description": str}

        Raises:
            AutomationError: if the page has no candidates or the model names none.
        """
        if not elements:
            raise AutomationError("No interactive elements found on the page")

        data = await self._complete_json(
            ACT_SYSTEM_PROMPT,
            f"Action: {action}\n\nElements:\n{_describe_elements(elements)}",
        )
        index = data.get("index")
        if index is None:
            raise AutomationError(f"No element matches the action: {data.get('reason') or 'unknown reason'}")

        element = next((el for el in elements if el["index"] == index), None)
        if element is None:
            raise AutomationError(f"Model chose unknown element index {index!r}")

        method = str(data.get("method") or "click").lower()
        if method not in SUPPORTED_METHODS:
            raise AutomationError(f"Unsupported method {method!r}")

        argument = data.get("argument")
        return {
            "element": element,
            "method": method,
            "argument": None if argument is None else str(argument),
            "description": data.get("description") or element.get("text") or element["tag"],
        }

    async def observe(self, instruction: str, elements: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Returns [{"selector", "description", "tag", "text"}] for the matching elements."""
        if not elements:
            return []

        data = await self._complete_json(
            OBSERVE_SYSTEM_PROMPT,
            f"Instruction: {instruction}\n\nElements:\n{_describe_elements(elements)}",
        )
        by_index = {el["index"]: el for el in elements}
        observations = []
        for item in data.get("elements") or []:
            if not isinstance(item, dict):
                continue
            el = by_index.get(item.get("index"))
            if el is None:
                logger.debug(f"Ignoring unknown element index in observation: {item!r}")
                continue
            observations.append({
                "selector": el["selector"],
                "description": item.get("description") or el.get("text") or el["tag"],
                "tag": el["tag"],
                "text": el.get("text"),
            })
        return observations


__all__ = ["InstructionResolver", "substitute_variables", "SUPPORTED_METHODS"]
