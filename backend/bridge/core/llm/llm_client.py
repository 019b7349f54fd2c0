# bridge/core/llm/llm_client.py
import asyncio
from typing import Dict, List, Union

import anthropic
from anthropic import Anthropic
from httpx import Timeout
from pydantic import BaseModel, ValidationError

from bridge.enums import PipelineStage
from bridge.errors import MalformedResponseError, PipelineError
from bridge.utils.logging import logger
from bridge.utils.metrics import LLM_REQUESTS_TOTAL, LLM_TOKEN_USAGE

MessageContent = Union[str, List[dict]]


class LLMClient:
    """Anthropic Claude client for schema-constrained generation.

    The SDK client is passed in, so tests and mock mode can substitute it.
    Failed calls are not retried; the caller resubmits.
    """

    def __init__(self, client: Anthropic, model: str, max_tokens: int, max_input_chars: int, temperature: float = 0.3):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.max_input_chars = max_input_chars
        self.temperature = temperature

    def truncate_text(self, text: str) -> str:
        """Keep 80% from the beginning and 20% from the end of over-long text."""
        if len(text) <= self.max_input_chars:
            return text

        original_length = len(text)
        chars_to_cut = original_length - self.max_input_chars
        keep_start = int(self.max_input_chars * 0.8)
        keep_end = int(self.max_input_chars * 0.2)

        logger.warning(
            f"Document truncated: {original_length:,} → {self.max_input_chars:,} chars",
            extra={"original_length": original_length, "chars_removed": chars_to_cut}
        )
        return (text[:keep_start] +
                f"\n\n... [TRUNCATED: {chars_to_cut:,} characters removed from middle section] ...\n\n" +
                text[-keep_end:])

    async def generate_structured(
        self,
        content: MessageContent,
        system_prompt: str,
        pydantic_model: type[BaseModel],
    ) -> Dict:
        """
        One structured-output call; the response is parsed into `pydantic_model`.

        Args:
            content: User message content (a string, or content blocks for images)
            system_prompt: System instructions
            pydantic_model: Output schema

        Returns:
            {
                "data": <dict matching pydantic_model>,
                "usage": {"input_tokens": int, "output_tokens": int, "model": str}
            }

        Raises:
            PipelineError: provider call failed (stage generating)
            MalformedResponseError: response did not match the schema
        """
        if isinstance(content, str):
            content = self.truncate_text(content)

        logger.info(
            "Calling Claude API with structured outputs",
            extra={
                "content_type": "text" if isinstance(content, str) else "blocks",
                "system_prompt_length": len(system_prompt),
                "model": self.model,
            }
        )

        try:
            # Blocking SDK call runs in the thread pool
            message = await asyncio.to_thread(
                self.client.messages.parse,
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": content}],
                output_format=pydantic_model,
            )
        except ValidationError as e:
            logger.error(f"Structured output failed schema validation: {e}")
            raise MalformedResponseError(f"Generation response did not match schema: {e.error_count()} error(s)") from e
        except anthropic.APITimeoutError as e:
            logger.error("Claude API timeout", extra={"error": str(e)})
            raise PipelineError("Translation service timed out. Please try again.", stage=PipelineStage.GENERATING) from e
        except anthropic.APIError as e:
            logger.exception(f"Claude API error: {e}")
            raise PipelineError(f"Translation service error: {e}", stage=PipelineStage.GENERATING) from e

        usage = getattr(message, "usage", None)
        input_tokens = getattr(usage, "input_tokens", None) if usage else None
        output_tokens = getattr(usage, "output_tokens", None) if usage else None
        model_name = getattr(message, "model", self.model)

        # Record Prometheus metrics
        LLM_REQUESTS_TOTAL.labels(model=model_name).inc()
        if input_tokens:
            LLM_TOKEN_USAGE.labels(model=model_name, token_type="input").inc(input_tokens)
        if output_tokens:
            LLM_TOKEN_USAGE.labels(model=model_name, token_type="output").inc(output_tokens)

        if getattr(message, "stop_reason", None) == "max_tokens":
            logger.warning(
                f"⚠️ Response truncated at max_tokens ({self.max_tokens})",
                extra={"output_tokens": output_tokens, "model": model_name}
            )

        parsed_output = getattr(message, "parsed_output", None)
        if parsed_output is None:
            raise MalformedResponseError("Translation service returned no structured output")

        return {
            "data": parsed_output.model_dump(),
            "usage": {
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "model": model_name,
            },
        }


def build_anthropic_client(api_key: str, timeout_seconds: int) -> Anthropic:
    # read timeout is the important one for long-running API calls
    timeout = Timeout(timeout=float(timeout_seconds), read=float(timeout_seconds), write=10.0, connect=5.0)
    return Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
