"""
LangFuse Tracer - Completion tracing

Records each completion request (input messages, parameters, output,
latency and token usage) and each failure. Tracing is enabled only when
both LangFuse keys are configured, and a tracing failure is logged and
never propagated into the request that triggered it.
"""

import os
from typing import Any, Dict, List, Optional

from langfuse import Langfuse
from langfuse.api.resources.commons.types.observation_level import ObservationLevel
from loguru import logger


class LangFuseTracer:
    """LangFuse tracer for completion requests"""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        public_key: Optional[str] = None,
        host: Optional[str] = None,
    ):
        self.secret_key = secret_key or os.getenv("LANGFUSE_SECRET_KEY")
        self.public_key = public_key or os.getenv("LANGFUSE_PUBLIC_KEY")
        self.host = host or os.getenv("LANGFUSE_HOST", "http://localhost:3000")
        self.client: Optional[Langfuse] = None
        self.enabled = bool(self.secret_key and self.public_key)

    async def initialize(self):
        """Initialize LangFuse client"""
        if not self.enabled:
            logger.debug("LangFuse not configured. Tracing disabled.")
            return

        try:
            self.client = Langfuse(
                secret_key=self.secret_key,
                public_key=self.public_key,
                host=self.host,
            )
        except Exception as e:
            logger.warning(f"LangFuse initialization failed: {e}")
            self.enabled = False

    def shutdown(self):
        if self.client:
            self.client.flush()

    def trace_completion(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        output: str,
        model_parameters: Dict[str, Any],
        total_tokens: int,
        latency_ms: float,
    ):
        """Trace a successful completion"""
        if not self.enabled or not self.client:
            return

        try:
            trace = self.client.trace(name="prompt_completion")
            trace.generation(
                name="llm_completion",
                model=model,
                model_parameters=model_parameters,
                input=messages,
                output=output,
                usage={"total": total_tokens},
                metadata={"latency_ms": latency_ms},
                level=ObservationLevel.DEFAULT,
            )
            self.client.flush()
        except Exception as e:
            logger.warning(f"Failed to trace completion: {e}")

    def trace_error(
        self,
        error: str,
        model: str,
        error_type: str,
    ):
        """Trace a failed completion"""
        if not self.enabled or not self.client:
            return

        try:
            trace = self.client.trace(name="prompt_completion_error")
            trace.generation(
                name="llm_error",
                model=model,
                level=ObservationLevel.ERROR,
                status_message=error,
                metadata={"error": error, "error_type": error_type},
            )
            self.client.flush()
        except Exception as e:
            logger.warning(f"Failed to trace error: {e}")
