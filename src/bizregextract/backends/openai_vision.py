"""OpenAI vision backend with model selection and retry policy."""

from __future__ import annotations

import random
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
import openai
from openai import OpenAI

from bizregextract import logger
from bizregextract.exceptions import BackendError, ModelCallError
from bizregextract.parsing import parse_extraction_response
from bizregextract.prompts import build_extraction_prompt
from bizregextract.typing.enums import CallState, FailureKind, Provider
from bizregextract.typing.models import CallMetadata, ExtractionResult

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from bizregextract.settings import Settings
    from bizregextract.typing.models import ImageUpload
    from bizregextract.typing.protocol import VisionTransport

PRIMARY_MODEL = "gpt-5-mini-2025-08-07"
FALLBACK_MODEL = "gpt-5-mini"
LEGACY_MODEL = "gpt-4o-mini"
MODEL_PRIORITY: tuple[str, ...] = (PRIMARY_MODEL, FALLBACK_MODEL, LEGACY_MODEL)

MAX_ATTEMPTS = 3
INITIAL_DELAY_SECONDS = 1.0
MAX_JITTER_SECONDS = 0.5
CLIENT_REQUEST_ID_HEADER = "X-Client-Request-Id"

_TRANSITIONS: dict[FailureKind | None, CallState] = {
    None: CallState.DONE,
    FailureKind.RATE_LIMITED: CallState.BACKING_OFF,
    FailureKind.SERVER_ERROR: CallState.BACKING_OFF,
    FailureKind.NETWORK: CallState.BACKING_OFF,
    FailureKind.MODEL_NOT_FOUND: CallState.SELECTING_MODEL,
    FailureKind.OTHER: CallState.EXHAUSTED,
}


def classify_error(exc: BaseException) -> FailureKind:
    """Map a provider exception to a failure kind.

    Args:
        exc (BaseException): Exception raised by the transport.

    Returns:
        FailureKind: Classification driving the retry machine.
    """
    if isinstance(exc, openai.APIStatusError):
        message = str(exc).lower()
        if exc.status_code == 404 or "does not exist" in message or ("model" in message and "not found" in message):
            return FailureKind.MODEL_NOT_FOUND
        if exc.status_code == 429:
            return FailureKind.RATE_LIMITED
        if 500 <= exc.status_code < 600:
            return FailureKind.SERVER_ERROR
        return FailureKind.OTHER
    if isinstance(exc, openai.APIConnectionError | httpx.TransportError | ConnectionError):
        return FailureKind.NETWORK
    return FailureKind.OTHER


def next_state(failure: FailureKind | None, *, attempt: int, max_attempts: int = MAX_ATTEMPTS) -> CallState:
    """Return the state following a call outcome.

    Args:
        failure (FailureKind | None): Failure kind, `None` on success.
        attempt (int): Number of attempts made so far, including this one.
        max_attempts (int): Attempt budget.

    Returns:
        CallState: Next state.
    """
    state = _TRANSITIONS[failure]
    if state in {CallState.BACKING_OFF, CallState.SELECTING_MODEL} and attempt >= max_attempts:
        return CallState.EXHAUSTED
    return state


def backoff_delay(
    attempt: int,
    rng: random.Random | None = None,
    *,
    initial_delay: float = INITIAL_DELAY_SECONDS,
    max_jitter: float = MAX_JITTER_SECONDS,
) -> float:
    """Return the wait before the next attempt.

    Args:
        attempt (int): Zero-based index of the failed attempt.
        rng (random.Random | None): Random source for jitter.
        initial_delay (float): Base delay in seconds.
        max_jitter (float): Upper bound of the random jitter in seconds.

    Returns:
        float: Delay in seconds.
    """
    source = rng or random
    return initial_delay * (2**attempt) + source.uniform(0, max_jitter)


class ModelSelector:
    """Choose the model to call and remember the choice."""

    def __init__(self, configured_model: str | None = None, priority: Sequence[str] = MODEL_PRIORITY) -> None:
        """Initialize selector.

        Args:
            configured_model (str | None): Model override from settings.
            priority (Sequence[str]): Models in preference order, legacy last.
        """
        self._configured_model = configured_model
        self._priority = tuple(priority)
        self._selected: str | None = None

    @property
    def selected(self) -> str | None:
        """Return the cached model, if any."""
        return self._selected

    @property
    def legacy_model(self) -> str:
        """Return the last-resort model."""
        return self._priority[-1]

    def select(self, transport: VisionTransport) -> str:
        """Return the model to use, querying the catalog on first call.

        Args:
            transport (VisionTransport): Provider transport used for the catalog query.

        Returns:
            str: Model identifier.
        """
        if self._selected:
            return self._selected

        if self._configured_model and self._configured_model != self._priority[0]:
            self._selected = self._configured_model
            logger.info("Using configured model", extra={"model": self._selected})
            return self._selected

        try:
            available = set(transport.list_models())
        except Exception as exc:
            logger.warning("Failed to list models, using legacy model", extra={"error": str(exc)})
            self._selected = self.legacy_model
            return self._selected

        self._selected = next((model for model in self._priority if model in available), self.legacy_model)
        logger.info("Selected model", extra={"model": self._selected})
        return self._selected

    def downgrade(self, model: str) -> str | None:
        """Move to the model after `model` in the priority list.

        Args:
            model (str): Model that was reported missing.

        Returns:
            str | None: Next model, or None when `model` was the last one.
        """
        if model in self._priority:
            index = self._priority.index(model)
            if index + 1 >= len(self._priority):
                return None
            replacement = self._priority[index + 1]
        elif model != self.legacy_model:
            replacement = self.legacy_model
        else:
            return None
        self._selected = replacement
        logger.info("Model not found, falling back", extra={"model": model, "fallback": replacement})
        return replacement

    def reset(self) -> None:
        """Forget the cached model."""
        self._selected = None


@dataclass
class RetryingCaller:
    """Run one model call through the retry state machine."""

    transport: VisionTransport
    selector: ModelSelector
    max_attempts: int = MAX_ATTEMPTS
    sleep: Callable[[float], None] = time.sleep
    rng: random.Random = field(default_factory=random.Random)
    initial_delay: float = INITIAL_DELAY_SECONDS
    max_jitter: float = MAX_JITTER_SECONDS

    def call(self, *, prompt: str, image: ImageUpload, client_request_id: str) -> tuple[str, CallMetadata]:
        """Call the model until success or until the policy gives up.

        Args:
            prompt (str): Instruction text.
            image (ImageUpload): Image payload.
            client_request_id (str): Correlation id sent as a header.

        Raises:
            ModelCallError: When attempts are exhausted or the error is not retryable.

        Returns:
            tuple[str, CallMetadata]: Output text and call metadata.
        """
        state = CallState.SELECTING_MODEL
        model: str | None = None
        attempt = 0
        last_error: BaseException | None = None
        headers = {CLIENT_REQUEST_ID_HEADER: client_request_id}

        while True:
            if state is CallState.SELECTING_MODEL:
                model = self.selector.select(self.transport) if model is None else self.selector.downgrade(model)
                state = CallState.CALLING if model else CallState.EXHAUSTED

            elif state is CallState.CALLING:
                attempt += 1
                logger.info(
                    "Calling model",
                    extra={
                        "attempt": attempt,
                        "max_attempts": self.max_attempts,
                        "model": model,
                        "client_request_id": client_request_id,
                    },
                )
                try:
                    text, x_request_id = self.transport.complete(
                        model=model,
                        prompt=prompt,
                        image=image,
                        headers=headers,
                    )
                except Exception as exc:
                    last_error = exc
                    failure = classify_error(exc)
                    state = next_state(failure, attempt=attempt, max_attempts=self.max_attempts)
                    logger.warning(
                        "Model call failed",
                        extra={"attempt": attempt, "failure": failure.to_str(), "next_state": state.to_str()},
                    )
                    continue

                metadata = CallMetadata(
                    client_request_id=client_request_id,
                    x_request_id=x_request_id,
                    model=model,
                    attempts=attempt,
                )
                return text, metadata

            elif state is CallState.BACKING_OFF:
                delay = backoff_delay(
                    attempt - 1,
                    self.rng,
                    initial_delay=self.initial_delay,
                    max_jitter=self.max_jitter,
                )
                logger.info("Retrying model call", extra={"delay_seconds": round(delay, 3)})
                self.sleep(delay)
                state = CallState.CALLING

            else:
                raise ModelCallError(
                    message=f"Model call failed after {attempt} attempt(s): {last_error or 'no model available'}",
                    attempts=attempt,
                    model=model,
                ) from last_error


class OpenAIChatTransport:
    """Vision transport over the OpenAI chat completions API."""

    def __init__(self, settings: Settings) -> None:
        """Initialize transport.

        Args:
            settings (Settings): Runtime settings.
        """
        self._settings = settings
        self._client: Any = None

    def _get_client(self) -> Any:
        """Return the OpenAI client, creating it on first use.

        Raises:
            BackendError: If the API key is missing.

        Returns:
            Any: OpenAI client.
        """
        if self._client is None:
            if not self._settings.openai_api_key:
                raise BackendError(message="OPENAI_API_KEY is not configured")
            self._client = OpenAI(
                api_key=self._settings.openai_api_key,
                base_url=self._settings.openai_base_url,
                organization=self._settings.openai_organization_id,
                project=self._settings.openai_project_id,
                http_client=self._settings.http_client,
                max_retries=0,
            )
        return self._client

    def list_models(self) -> list[str]:
        """Return the ids of the models visible to the account."""
        return [model.id for model in self._get_client().models.list()]

    def complete(
        self,
        *,
        model: str,
        prompt: str,
        image: ImageUpload,
        headers: Mapping[str, str],
    ) -> tuple[str, str | None]:
        """Send the prompt and image, return output text and provider request id.

        Raises:
            BackendError: If the completion has no text output.
        """
        raw = self._get_client().chat.completions.with_raw_response.create(
            model=model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image.data_url}},
                    ],
                },
            ],
            response_format={"type": "json_object"},
            extra_headers=dict(headers),
        )
        completion = raw.parse()
        text = completion.choices[0].message.content if completion.choices else None
        if not text:
            raise BackendError(message="No text output in model response")
        return text, raw.headers.get("x-request-id")


class OpenAIVisionBackend:
    """Extraction backend calling an OpenAI vision model."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: VisionTransport | None = None,
        selector: ModelSelector | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize backend.

        Args:
            settings (Settings): Runtime settings.
            transport (VisionTransport | None): Transport override, OpenAI by default.
            selector (ModelSelector | None): Model selector override.
            sleep (Callable[[float], None]): Sleep function used between retries.
            rng (random.Random | None): Random source for backoff jitter.
        """
        self._settings = settings
        self.transport = transport or OpenAIChatTransport(settings)
        self.selector = selector or ModelSelector(settings.openai_model)
        self._caller = RetryingCaller(
            transport=self.transport,
            selector=self.selector,
            sleep=sleep,
            rng=rng or random.Random(),
        )

    def extract(self, codes: Sequence[str], image: ImageUpload) -> ExtractionResult:
        """Extract rows matching any of the target codes.

        Args:
            codes (Sequence[str]): Normalized target codes.
            image (ImageUpload): Validated image.

        Raises:
            ModelCallError: If the model cannot be reached.
            ResponseParseError: If the model output is malformed.

        Returns:
            ExtractionResult: Unvalidated result.
        """
        prompt = build_extraction_prompt(codes)
        client_request_id = str(uuid.uuid4())
        text, metadata = self._caller.call(prompt=prompt, image=image, client_request_id=client_request_id)
        parsed = parse_extraction_response(text)
        logger.info(
            "Model response parsed",
            extra={
                "items": len(parsed.items),
                "total_found": parsed.total_found,
                "confidence": parsed.confidence,
                "model": metadata.model,
            },
        )
        return ExtractionResult(
            items=parsed.items,
            total_found=parsed.total_found,
            confidence=parsed.confidence,
            provider=Provider.OPENAI,
            request_id=metadata.client_request_id,
            client_request_id=metadata.client_request_id,
            x_request_id=metadata.x_request_id,
            model=metadata.model,
        )

    def check_connection(self) -> dict[str, Any]:
        """List the catalog and report the selected model.

        Raises:
            BackendError: If the catalog cannot be listed.

        Returns:
            dict[str, Any]: Connection report.
        """
        try:
            models = self.transport.list_models()
        except Exception as exc:
            raise BackendError(message=f"OpenAI API connection failed: {exc}") from exc
        gpt_models = [model for model in models if "gpt" in model]
        return {
            "provider": Provider.OPENAI.to_str(),
            "model": self.selector.select(self.transport),
            "model_count": len(gpt_models),
        }
