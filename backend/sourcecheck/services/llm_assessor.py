"""LLM assessor client — prompt in, completion text out, with retry and cost tracking."""

from typing import Optional
import time

import structlog
from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from sourcecheck.config import get_settings
from sourcecheck.models.errors import AssessorError

logger = structlog.get_logger()

# Approximate token costs (USD per 1K tokens)
MODEL_COSTS = {
    "gpt-4o": {"input": 0.0025, "output": 0.01},
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
}


class LLMAssessor:
    """Completion client used by the orchestrator to assess a component.

    Retries live here, not in the engine: a call that still fails after the
    last attempt raises and the caller degrades the component result.
    """

    def __init__(self, model_name: Optional[str] = None, api_key: Optional[str] = None, llm=None):
        settings = get_settings()
        self.model_name = model_name or settings.ASSESSOR_MODEL
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self._llm = llm
        self.total_cost_usd = 0.0

    @property
    def llm(self):
        """Lazy-initialize the LLM client."""
        if self._llm is None:
            self._llm = ChatOpenAI(model=self.model_name, api_key=self.api_key)
        return self._llm

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        costs = MODEL_COSTS.get(self.model_name, {"input": 0.003, "output": 0.015})
        return (input_tokens / 1000 * costs["input"]) + (output_tokens / 1000 * costs["output"])

    async def complete(self, prompt: str, max_tokens: int = 1000, temperature: float = 0.3) -> str:
        """Return the completion text for a prompt.

        Raises:
            AssessorError: when every attempt failed or the model returned no text.
        """
        start_time = time.time()
        try:
            response = await self._call_llm(prompt, max_tokens, temperature)
        except Exception as e:
            logger.error(
                "assessor_failed",
                model=self.model_name,
                error=str(e),
                duration_seconds=round(time.time() - start_time, 2),
            )
            raise AssessorError(f"Assessor call failed: {e}") from e

        usage = getattr(response, "usage_metadata", None) or {}
        input_tokens = usage.get("input_tokens", 0)
        output_tokens = usage.get("output_tokens", 0)
        cost = self.estimate_cost(input_tokens, output_tokens)
        self.total_cost_usd += cost

        content = response.content
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        if not content:
            raise AssessorError("Assessor returned an empty completion")

        logger.info(
            "assessor_completed",
            model=self.model_name,
            duration_seconds=round(time.time() - start_time, 2),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=round(cost, 4),
        )
        return content

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception_type((Exception,)),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "assessor_retry",
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep,
        ),
    )
    async def _call_llm(self, prompt: str, max_tokens: int, temperature: float):
        model = self.llm.bind(max_tokens=max_tokens, temperature=temperature)
        return await model.ainvoke([HumanMessage(content=prompt)])
