"""
Inference collaborator client using open-agent-sdk.

Responses are free text expected to contain exactly one JSON object; the span
from the first "{" to the last "}" is parsed.
"""

import asyncio
import json
from typing import Any, Dict, List

from open_agent import TextBlock  # type: ignore
from open_agent.types import AgentOptions  # type: ignore
from open_agent import client as oa_client  # type: ignore

from src.utils.config import Settings
from src.utils.constants import ContentConstants
from src.utils.logger import logger


# Custom Exceptions
class InferenceError(Exception):
    """Raised when the inference collaborator fails or times out."""

    pass


class InferenceParseError(InferenceError):
    """Raised when the response does not contain a parseable JSON object."""

    pass


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the JSON object embedded in an LLM response.

    Raises:
        InferenceParseError: If there is no object or it is not valid JSON
    """
    match = ContentConstants.JSON_OBJECT_PATTERN.search(text or "")
    if not match:
        raise InferenceParseError("Failed to parse LLM response: no JSON object found")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise InferenceParseError(f"Failed to parse LLM response: {e}") from e

    if not isinstance(data, dict):
        raise InferenceParseError("Failed to parse LLM response: not a JSON object")
    return data


class LLMClient:
    """Thin async wrapper around an OpenAI-compatible model endpoint"""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _options(self, system_prompt: str) -> AgentOptions:
        return AgentOptions(
            system_prompt=system_prompt,
            model=self.settings.llm_model,
            base_url=self.settings.llm_api_url,
            temperature=self.settings.llm_temperature,
            max_tokens=self.settings.llm_max_tokens,
            api_key=self.settings.llm_api_key,
            timeout=self.settings.llm_timeout,
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Run one prompt and return the concatenated text response.

        Raises:
            InferenceError: On timeout or client failure
        """
        text_parts: List[str] = []
        try:
            async with asyncio.timeout(self.settings.llm_timeout):
                async for msg in oa_client.query(user_prompt, self._options(system_prompt)):
                    for block in msg.content:
                        if isinstance(block, TextBlock):
                            text_parts.append(block.text)
        except asyncio.TimeoutError as e:
            logger.warning(f"LLM request timed out after {self.settings.llm_timeout}s")
            raise InferenceError(f"LLM request timed out after {self.settings.llm_timeout}s") from e
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"LLM request failed: {e}") from e

        return "".join(text_parts).strip()

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        """Run one prompt and parse the JSON object in its response."""
        text = await self.complete(system_prompt, user_prompt)
        return extract_json_object(text)
