"""
Request Orchestrator - Completion requests and outcome recording

Builds the chat-completions payload, calls the remote service once,
classifies the outcome, and hands successful exchanges to the session
store. There are no retries, fallbacks or timeouts beyond the HTTP
client's own; every failure is terminal for that call.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from httpx import AsyncClient, Limits, Timeout
from loguru import logger

from prompt_trainer.config.settings import DEFAULT_API_URL, DEFAULT_MODEL, Settings
from prompt_trainer.errors import (
    PersistenceError,
    PromptTrainerError,
    RequestError,
    ResponseFormatError,
    TransportError,
    ValidationError,
)
from prompt_trainer.models.generation import CompletionResult, GenerationParameters
from prompt_trainer.models.history import HistoryEntry
from prompt_trainer.observability.tracer import LangFuseTracer
from prompt_trainer.session.session_store import SessionStore


class OrchestratorState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


class RequestOrchestrator:
    """
    Sends prompts to the completion service

    Concurrent submits are not serialized: each is in flight on its own,
    and history records them in the order their responses arrive.
    """

    def __init__(
        self,
        session_store: SessionStore,
        api_key: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        model: str = DEFAULT_MODEL,
        app_referer: str = "https://prompt-trainer.ai",
        app_title: str = "AI Prompt Trainer",
        timeout_seconds: float = 60.0,
        client: Optional[AsyncClient] = None,
        tracer: Optional[LangFuseTracer] = None,
    ):
        self.session_store = session_store
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.app_referer = app_referer
        self.app_title = app_title
        self.tracer = tracer
        self._in_flight = 0
        self._owns_client = client is None
        self.client = client or AsyncClient(
            limits=Limits(max_keepalive_connections=5, max_connections=20),
            timeout=Timeout(timeout_seconds, connect=10.0),
        )

        if not api_key:
            logger.warning("No completion service API key configured (OPENROUTER_API_KEY)")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_store: SessionStore,
        client: Optional[AsyncClient] = None,
        tracer: Optional[LangFuseTracer] = None,
    ) -> "RequestOrchestrator":
        return cls(
            session_store,
            api_key=settings.api_key,
            api_url=settings.api_url,
            model=settings.model,
            app_referer=settings.app_referer,
            app_title=settings.app_title,
            timeout_seconds=settings.request_timeout_seconds,
            client=client,
            tracer=tracer,
        )

    async def close(self):
        if self._owns_client:
            await self.client.aclose()

    @property
    def state(self) -> OrchestratorState:
        return OrchestratorState.IN_FLIGHT if self._in_flight else OrchestratorState.IDLE

    @staticmethod
    def build_messages(user_prompt: str, system_prompt: Optional[str] = None) -> List[Dict[str, str]]:
        """System message first when one is given, then exactly one user message"""
        messages = []
        if system_prompt and system_prompt.strip():
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        return messages

    def build_payload(
        self,
        prompt: str,
        system_prompt: Optional[str],
        params: GenerationParameters,
    ) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": self.build_messages(prompt, system_prompt),
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "top_p": params.top_p,
            "frequency_penalty": params.frequency_penalty,
            "presence_penalty": params.presence_penalty,
        }

    def build_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key or ''}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.app_referer,
            "X-Title": self.app_title,
        }

    async def submit(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        params: Optional[GenerationParameters] = None,
    ) -> CompletionResult:
        """
        Send one prompt and record the exchange

        Args:
            prompt: User prompt; must not be blank
            system_prompt: Optional system message (falls back to params.system_prompt)
            params: Sampling parameters (defaults if None)

        Returns:
            CompletionResult with content, latency and token count

        Raises:
            ValidationError: Blank prompt; nothing was sent
            RequestError: Non-success status from the service
            ResponseFormatError: Success status but no usable completion
            PersistenceError: Completion succeeded but history could not be saved
            TransportError: Transport failure or anything unexpected
        """
        params = params or GenerationParameters()
        if system_prompt is None:
            system_prompt = params.system_prompt

        if not prompt or not prompt.strip():
            raise ValidationError("Please enter a prompt")

        self._in_flight += 1
        try:
            return await self._execute(prompt, system_prompt, params)
        except PromptTrainerError as e:
            self._report_failure(e)
            raise
        except Exception as e:
            error = TransportError(str(e) or "An unexpected error occurred")
            self._report_failure(error)
            raise error from e
        finally:
            self._in_flight -= 1

    async def _execute(
        self,
        prompt: str,
        system_prompt: Optional[str],
        params: GenerationParameters,
    ) -> CompletionResult:
        start_time = time.perf_counter()
        payload = self.build_payload(prompt, system_prompt, params)

        try:
            response = await self.client.post(
                self.api_url,
                json=payload,
                headers=self.build_headers(),
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Request to completion service failed: {e}") from e

        if not response.is_success:
            raise RequestError(self._error_message(response), status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ResponseFormatError("Unexpected response format from API") from e

        content = self._extract_content(data)
        token_count = self._extract_total_tokens(data)
        latency_ms = (time.perf_counter() - start_time) * 1000

        entry = HistoryEntry(
            prompt=prompt.strip(),
            response=content,
            temperature=params.temperature,
            max_tokens=params.max_tokens,
            latency_ms=latency_ms,
            token_count=token_count,
        )
        try:
            await self.session_store.record_history(entry)
        except Exception as e:
            raise PersistenceError(f"Completion received but could not be saved to history: {e}") from e

        logger.info(f"Completion from {self.model}: {token_count} tokens in {latency_ms:.0f}ms")

        if self.tracer:
            self.tracer.trace_completion(
                messages=payload["messages"],
                model=self.model,
                output=content,
                model_parameters={
                    k: v for k, v in payload.items() if k not in ("model", "messages")
                },
                total_tokens=token_count,
                latency_ms=latency_ms,
            )

        return CompletionResult(
            content=content,
            latency_ms=latency_ms,
            token_count=token_count,
            model=self.model,
            history_entry=entry,
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Structured `error.message` from the body if there is one"""
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])

        return f"HTTP error! status: {response.status_code}"

    @staticmethod
    def _extract_content(data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ResponseFormatError("Unexpected response format from API") from e

        if not isinstance(content, str):
            raise ResponseFormatError("Unexpected response format from API")
        return content

    @staticmethod
    def _extract_total_tokens(data: Dict[str, Any]) -> int:
        usage = data.get("usage") or {}
        if not isinstance(usage, dict):
            return 0
        try:
            return int(usage.get("total_tokens") or 0)
        except (TypeError, ValueError):
            return 0

    def _report_failure(self, error: PromptTrainerError):
        logger.error(f"Completion request failed ({type(error).__name__}): {error.message}")
        if self.tracer:
            self.tracer.trace_error(
                error=error.message,
                model=self.model,
                error_type=type(error).__name__,
            )
