from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

import requests
from pydantic import ValidationError

from receipt_engine.amount_words import MAX_AMOUNT, amount_in_words
from receipt_engine.config import Settings
from receipt_engine.extraction_policy import RESPONSE_SCHEMA, SYSTEM_INSTRUCTION, build_user_prompt
from receipt_engine.fallback_parser import RegexReceiptExtractor
from receipt_engine.metrics import MetricsCollector
from receipt_engine.normalization import correct_ocr_terms
from receipt_engine.reconciler import reconcile
from schemas.receipt_schema import ReceiptRecord

logger = logging.getLogger(__name__)


class ReceiptExtractor(Protocol):
    name: str

    def extract(self, text: str) -> ReceiptRecord:
        """Turn OCR markdown into a candidate receipt record."""


class StructuredModelClient(Protocol):
    def generate_json(
        self,
        prompt: str,
        *,
        system_instruction: str,
        response_schema: dict[str, Any],
        model_name: str,
    ) -> str:
        """Return raw model text constrained to ``response_schema``."""


class ExtractionError(RuntimeError):
    def __init__(self, message: str, code: str = "extraction_failed") -> None:
        super().__init__(message)
        self.code = code


DEFAULT_MODELS = {
    "gemini": "gemini-2.0-flash-lite-preview-02-05",
    "openai": "gpt-4o-mini",
    "openrouter": "google/gemini-2.0-flash-001",
    "mistral": "mistral-small-latest",
}

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def parse_model_response(raw_text: str | None) -> ReceiptRecord:
    if raw_text is None or not raw_text.strip():
        raise ExtractionError("Model returned empty response", code="empty_response")
    text = _CODE_FENCE.sub("", raw_text.strip())
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ExtractionError("Model returned invalid JSON", code="invalid_json") from exc
    if not isinstance(payload, dict):
        raise ExtractionError("Model output must be a JSON object", code="invalid_json_shape")
    try:
        return ReceiptRecord.model_validate(payload)
    except ValidationError as exc:
        raise ExtractionError(f"Model output does not match receipt schema: {exc}", code="schema_mismatch") from exc


class GeminiStructuredClient:
    def __init__(self, api_key: str) -> None:
        try:
            from google import genai
        except ImportError as exc:
            raise RuntimeError("google-genai package is required for Gemini extraction") from exc
        self._client = genai.Client(api_key=api_key)

    def generate_json(
        self,
        prompt: str,
        *,
        system_instruction: str,
        response_schema: dict[str, Any],
        model_name: str,
    ) -> str:
        from google.genai import types

        response = self._client.models.generate_content(
            model=model_name,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                response_mime_type="application/json",
                response_schema=response_schema,
            ),
        )
        text = getattr(response, "text", None)
        if not text:
            raise ExtractionError("Gemini returned empty response", code="empty_response")
        return text


class OpenAICompatibleStructuredClient:
    def __init__(
        self,
        *,
        api_key: str,
        provider_name: str = "OpenAI",
        base_url: str | None = None,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        try:
            from openai import OpenAI
        except ImportError as exc:
            raise RuntimeError("openai package is required for OpenAI-compatible providers") from exc
        self._provider_name = provider_name
        self._client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers=default_headers or {},
        )

    def generate_json(
        self,
        prompt: str,
        *,
        system_instruction: str,
        response_schema: dict[str, Any],
        model_name: str,
    ) -> str:
        response = self._client.chat.completions.create(
            model=model_name,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "receipt_record", "schema": response_schema},
            },
            messages=[
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": prompt},
            ],
        )
        text = response.choices[0].message.content
        if not text:
            raise ExtractionError(f"{self._provider_name} returned empty response", code="empty_response")
        return text


class MistralStructuredClient:
    def __init__(self, api_key: str, *, timeout: float | None = None) -> None:
        self._api_key = api_key
        self._base_url = "https://api.mistral.ai/v1"
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def generate_json(
        self,
        prompt: str,
        *,
        system_instruction: str,
        response_schema: dict[str, Any],
        model_name: str,
    ) -> str:
        response = requests.post(
            f"{self._base_url}/chat/completions",
            headers=self._headers(),
            json={
                "model": model_name,
                "response_format": {
                    "type": "json_schema",
                    "json_schema": {"name": "receipt_record", "schema": response_schema},
                },
                "messages": [
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
            },
            timeout=self._timeout,
        )
        if response.status_code >= 400:
            raise ExtractionError(
                f"Mistral chat failed with status {response.status_code}: {response.text[:300]}",
                code="provider_request_failed",
            )
        payload = response.json()
        choices = payload.get("choices", [])
        if not choices:
            raise ExtractionError("Mistral chat returned no choices", code="empty_response")
        content = choices[0].get("message", {}).get("content")
        if not isinstance(content, str) or not content.strip():
            raise ExtractionError("Mistral chat returned empty content", code="empty_response")
        return content


class MultiProviderStructuredClient:
    def __init__(self, providers: list[tuple[str, StructuredModelClient, str]]) -> None:
        self._providers = providers

    def generate_json(
        self,
        prompt: str,
        *,
        system_instruction: str,
        response_schema: dict[str, Any],
        model_name: str,
    ) -> str:
        errors: list[str] = []
        for provider_name, client, active_model in self._providers:
            try:
                return client.generate_json(
                    prompt,
                    system_instruction=system_instruction,
                    response_schema=response_schema,
                    model_name=active_model or model_name,
                )
            except Exception as exc:  # noqa: BLE001
                errors.append(f"{provider_name}: {exc}")
                continue
        raise ExtractionError(
            "All configured providers failed: " + "; ".join(errors),
            code="all_providers_failed",
        )


def provider_model(provider: str, model_name: str = "auto") -> str:
    if model_name and model_name != "auto":
        return model_name
    return DEFAULT_MODELS.get(provider.strip().lower(), DEFAULT_MODELS["gemini"])


def client_for_provider(provider: str, api_key: str) -> StructuredModelClient:
    normalized = provider.strip().lower()
    if normalized == "gemini":
        return GeminiStructuredClient(api_key=api_key)
    if normalized == "openai":
        return OpenAICompatibleStructuredClient(api_key=api_key)
    if normalized == "openrouter":
        return OpenAICompatibleStructuredClient(
            api_key=api_key,
            provider_name="OpenRouter",
            base_url="https://openrouter.ai/api/v1",
        )
    if normalized == "mistral":
        return MistralStructuredClient(api_key=api_key)
    raise ExtractionError(f"Unsupported provider: {provider}", code="unsupported_provider")


def build_default_client(settings: Settings) -> tuple[StructuredModelClient, str]:
    if settings.extraction_provider == "auto":
        providers: list[tuple[str, StructuredModelClient, str]] = []
        for name in settings.provider_order:
            api_key = settings.credential_for(name)
            if not api_key:
                continue
            model_name = provider_model(name, settings.extraction_model)
            providers.append((name, client_for_provider(name, api_key), model_name))
        if not providers:
            raise ExtractionError(
                "No provider API key found for configured fallback chain",
                code="missing_api_key",
            )
        return MultiProviderStructuredClient(providers), "auto"

    api_key = settings.credential_for(settings.extraction_provider)
    if not api_key:
        raise ExtractionError(
            f"Missing API key for provider: {settings.extraction_provider}",
            code="missing_api_key",
        )
    return (
        client_for_provider(settings.extraction_provider, api_key),
        provider_model(settings.extraction_provider, settings.extraction_model),
    )


def _apply_corrections(record: ReceiptRecord) -> ReceiptRecord:
    items = [
        item.model_copy(update={"description": correct_ocr_terms(item.description)})
        for item in record.items
    ]
    return record.model_copy(
        update={
            "merchant_name": correct_ocr_terms(record.merchant_name),
            "merchant_address": correct_ocr_terms(record.merchant_address),
            "tax_office": correct_ocr_terms(record.tax_office),
            "items": items,
        }
    )


def _with_total_in_words(record: ReceiptRecord) -> ReceiptRecord:
    if record.total_in_words:
        return record
    total = reconcile(record).total
    if not 0 < total < MAX_AMOUNT:
        return record
    return record.model_copy(update={"total_in_words": amount_in_words(total)})


class ModelReceiptExtractor:
    """Schema-guided LLM extraction that degrades to the regex parser on any failure."""

    name = "model"

    def __init__(
        self,
        client: StructuredModelClient,
        model_name: str,
        *,
        fallback: ReceiptExtractor | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._client = client
        self._model_name = model_name
        self._fallback = fallback or RegexReceiptExtractor()
        self._metrics = metrics

    def _count(self, name: str) -> None:
        if self._metrics is not None:
            self._metrics.increment(name)

    def extract(self, text: str) -> ReceiptRecord:
        try:
            raw = self._client.generate_json(
                build_user_prompt(text),
                system_instruction=SYSTEM_INSTRUCTION,
                response_schema=RESPONSE_SCHEMA,
                model_name=self._model_name,
            )
            record = parse_model_response(raw)
        except Exception as exc:  # noqa: BLE001
            error_code = getattr(exc, "code", "provider_error")
            logger.warning(
                "Model extraction failed (%s), falling back to regex parser: %s",
                error_code,
                exc,
                extra={"extractor": self.name, "error_code": error_code},
            )
            self._count("fallback_extractions_total")
            return self._fallback.extract(text)
        self._count("model_extractions_total")
        return _with_total_in_words(_apply_corrections(record))


def extract_with_model(
    markdown_text: str,
    credential: str | None,
    *,
    provider: str = "gemini",
    model_name: str = "auto",
    client: StructuredModelClient | None = None,
) -> ReceiptRecord:
    fallback = RegexReceiptExtractor()
    if client is None:
        if not credential or not credential.strip():
            return fallback.extract(markdown_text)
        try:
            client = client_for_provider(provider, credential.strip())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not build %s client, falling back to regex parser: %s", provider, exc)
            return fallback.extract(markdown_text)
    extractor = ModelReceiptExtractor(client, provider_model(provider, model_name), fallback=fallback)
    return extractor.extract(markdown_text)
