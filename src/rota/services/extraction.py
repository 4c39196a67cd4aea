"""Generative-AI collaborator: customer extraction and whole-list reordering.

Talks to the Gemini ``generateContent`` REST endpoint with a JSON response
schema. Every failure surfaces as :class:`ExtractionError`; callers decide how
to degrade.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Sequence

import httpx
from pydantic import TypeAdapter, ValidationError

from ..config import settings
from ..schemas.customers import ExtractedCustomer

logger = logging.getLogger(__name__)

CUSTOMER_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "name": {"type": "STRING", "description": "Nome completo do cliente"},
            "address": {"type": "STRING", "description": "Endereço completo (Rua, Número, etc.)"},
            "neighborhood": {"type": "STRING", "description": "Bairro"},
            "city": {"type": "STRING", "description": "Cidade"},
            "state": {"type": "STRING", "description": "Estado"},
            "phone": {"type": "STRING", "description": "Telefone de contato"},
            "status": {"type": "STRING", "description": "Observação de status"},
        },
        "required": ["name"],
    },
}

ADDRESS_LIST_SCHEMA: dict[str, Any] = {"type": "ARRAY", "items": {"type": "STRING"}}

FILE_PROMPT = (
    "Você é um robô de extração de dados especializado em tabelas de rotas comerciais. "
    "Extraia CADA LINHA da tabela como um objeto JSON. Não pule nenhuma linha. "
    "Retorne uma lista JSON pura."
)

_customers_adapter = TypeAdapter(list[ExtractedCustomer])
_addresses_adapter = TypeAdapter(list[str])


class ExtractionError(RuntimeError):
    pass


class GeminiClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        file_model: str | None = None,
        text_model: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.file_model = file_model or settings.gemini_file_model
        self.text_model = text_model or settings.gemini_text_model
        self.timeout = timeout if timeout is not None else settings.gemini_timeout_seconds
        self._transport = transport

    def _generate(self, model: str, parts: list[dict], schema: dict) -> Any:
        if not self.api_key:
            raise ExtractionError("Gemini API key is not configured.")

        url = f"{self.base_url}/v1beta/models/{model}:generateContent"
        body = {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(url, json=body, headers={"x-goog-api-key": self.api_key})
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ExtractionError(
                f"Gemini request failed with status {exc.response.status_code}."
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ExtractionError(f"Gemini request failed: {exc}") from exc

        try:
            parts = data["candidates"][0]["content"]["parts"]
            if not all(isinstance(part, dict) for part in parts):
                raise TypeError("content parts must be objects")
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ExtractionError("Gemini response has no content.") from exc
        try:
            return json.loads(text or "[]")
        except json.JSONDecodeError as exc:
            raise ExtractionError("Gemini response is not valid JSON.") from exc

    def _customers(self, payload: Any) -> list[ExtractedCustomer]:
        try:
            return _customers_adapter.validate_python(payload)
        except ValidationError as exc:
            raise ExtractionError(f"Gemini returned malformed customer records: {exc}") from exc

    def parse_file(self, data: bytes, mime_type: str) -> list[ExtractedCustomer]:
        """Extract customer rows from an image, PDF or other document."""
        parts = [
            {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(data).decode("ascii")}},
            {"text": FILE_PROMPT},
        ]
        records = self._customers(self._generate(self.file_model, parts, CUSTOMER_SCHEMA))
        logger.info(f"Extracted {len(records)} record(s) from {mime_type} document")
        return records

    def parse_text(self, text: str) -> list[ExtractedCustomer]:
        """Extract customer rows from free text."""
        parts = [{"text": f"Transforme o texto em JSON de clientes: {text}"}]
        records = self._customers(self._generate(self.text_model, parts, CUSTOMER_SCHEMA))
        logger.info(f"Extracted {len(records)} record(s) from text")
        return records

    def suggest_order(self, addresses: Sequence[str]) -> list[str]:
        """Ask the model for a visiting order of ``addresses``."""
        joined = "\n".join(addresses)
        parts = [{"text": f"Ordene estes endereços para a melhor rota: {joined}"}]
        try:
            return _addresses_adapter.validate_python(self._generate(self.text_model, parts, ADDRESS_LIST_SCHEMA))
        except ValidationError as exc:
            raise ExtractionError(f"Gemini returned a malformed address list: {exc}") from exc
