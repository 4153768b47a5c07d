import time
from typing import Any

import dspy

from app.config import settings
from app.logging import get_logger
from app.storage.db import get_session
from app.storage.repositories import log_llm_call
from app.utils.timing import format_duration

logger = get_logger(__name__)


def _make_lm(model: str, max_tokens: int | None = None) -> dspy.LM:
    return dspy.LM(
        f"{settings.llm_provider}/{model}",
        api_key=settings.llm_api_key or None,
        temperature=settings.llm_temperature,
        max_tokens=max_tokens or settings.llm_max_tokens,
        timeout=settings.llm_timeout_s,
        num_retries=0,
    )


def configure_dspy() -> None:
    lm = _make_lm(settings.llm_model)
    dspy.settings.configure(lm=lm)
    logger.info("llm.configure provider=%s model=%s", settings.llm_provider, settings.llm_model)


def run_with_logging(
    prompt_name: str,
    prompt_version: str,
    fn: Any,
    *,
    model: str | None = None,
    **kwargs: Any,
) -> Any:
    """Run a dspy call and persist it to LLMCallLog. A custom model is swapped in only for this call."""
    model_name = model or settings.llm_model
    start = time.time()
    logger.info("[TIMING] llm.call.start name=%s version=%s model=%s", prompt_name, prompt_version, model_name)
    if model is not None:
        with dspy.context(lm=_make_lm(model)):
            result = fn(**kwargs)
    else:
        result = fn(**kwargs)
    latency_ms = int((time.time() - start) * 1000)
    with get_session() as session:
        log_llm_call(
            session=session,
            prompt_name=prompt_name,
            prompt_version=prompt_version,
            model=model_name,
            input_payload=str(kwargs),
            output_payload=str(result),
            latency_ms=latency_ms,
        )
    logger.info(
        "[TIMING] llm.call.end name=%s latency_ms=%s (%s)",
        prompt_name,
        latency_ms,
        format_duration(latency_ms),
    )
    return result
