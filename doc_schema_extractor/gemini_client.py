"""Single request/response call to Gemini for schema-constrained extraction.

The compiled response schema is sent with ``response_mime_type`` set to JSON,
so the model's text is expected to be one JSON document. There is no retry:
a failure surfaces as ExtractionError and the caller records it.
"""
from __future__ import annotations

import json
from typing import Any, List, Optional

from google import genai
from google.genai import types
from loguru import logger

from .compiler import compile_schema
from .config import settings
from .errors import ExtractionError, MissingApiKeyError
from .logging_setup import mask_secret
from .schema import SchemaField


def parse_model_json(text: Optional[str]) -> Any:
    """Parse the model's reply; anything that is not JSON is an error."""
    raw = (text or "").strip()
    if not raw:
        raise ExtractionError("Model returned an empty response.")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Model returned invalid JSON: {exc}") from exc


class GeminiExtractor:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Any = None):
        self._api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self._client = client

    def set_api_key(self, api_key: Optional[str]) -> None:
        self._api_key = (api_key or "").strip() or None
        # Next call builds a client with the new key.
        self._client = None
        logger.info("Gemini API key updated: {}", mask_secret(self._api_key))

    def get_api_key(self) -> Optional[str]:
        return self._api_key

    @property
    def client(self):
        if self._client is None:
            if not self._api_key:
                raise MissingApiKeyError()
            logger.debug("Creating Gemini client: model={}, api_key={}", self.model, mask_secret(self._api_key))
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def extract(self, content: bytes, mime_type: str, schema: List[SchemaField], prompt: str) -> Any:
        """Extract data from a document according to ``schema``.

        Raises EmptySchemaError before contacting the API when the schema has
        no named fields.
        """
        response_schema = compile_schema(schema)
        client = self.client

        logger.info(
            "Requesting extraction: model={} mime={} size={} bytes fields={}",
            self.model,
            mime_type,
            len(content or b""),
            len(response_schema["properties"]),
        )
        try:
            response = client.models.generate_content(
                model=self.model,
                contents=[
                    prompt or settings.default_prompt,
                    types.Part.from_bytes(data=content, mime_type=mime_type or "application/octet-stream"),
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=response_schema,
                ),
            )
        except Exception as exc:
            logger.error("Gemini API call failed: {}", exc)
            raise ExtractionError(f"Gemini API error: {exc}") from exc

        return parse_model_json(getattr(response, "text", None))


_default_extractor: Optional[GeminiExtractor] = None


def get_extractor() -> GeminiExtractor:
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = GeminiExtractor()
    return _default_extractor


def extract_data_from_document(content: bytes, mime_type: str, schema: List[SchemaField], prompt: str) -> Any:
    return get_extractor().extract(content, mime_type, schema, prompt)
