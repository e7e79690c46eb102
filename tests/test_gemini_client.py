"""Tests for the Gemini extraction call (no network)."""

from unittest.mock import patch

import pytest

from doc_schema_extractor.errors import EmptySchemaError, ExtractionError, MissingApiKeyError
from doc_schema_extractor.gemini_client import GeminiExtractor, parse_model_json
from doc_schema_extractor.schema import parse_schema


class TestParseModelJson:
    def test_object(self):
        assert parse_model_json('  {"a": 1}\n') == {"a": 1}

    def test_array(self):
        assert parse_model_json('[{"a": 1}]') == [{"a": 1}]

    @pytest.mark.parametrize("text", ["", None, "   ", "not json", '{"a": '])
    def test_invalid(self, text):
        with pytest.raises(ExtractionError):
            parse_model_json(text)


class TestGeminiExtractor:
    def test_returns_parsed_json(self, extractor_for, invoice_schema, invoice_reply, invoice_data):
        extractor, client = extractor_for(invoice_reply)
        data = extractor.extract(b"FACTURA", "text/plain", invoice_schema, "Extrae")
        assert data == invoice_data

        call = client.models.calls[0]
        assert call["model"] == "gemini-test"
        assert call["contents"][0] == "Extrae"
        assert call["config"].response_mime_type == "application/json"
        assert call["config"].response_schema is not None

    def test_empty_schema_never_calls_api(self, extractor_for):
        extractor, client = extractor_for('{"a": 1}')
        with pytest.raises(EmptySchemaError):
            extractor.extract(b"x", "text/plain", parse_schema([{"name": " "}]), "p")
        assert client.models.calls == []

    def test_api_failure_wrapped(self, extractor_for, invoice_schema):
        extractor, _ = extractor_for(RuntimeError("quota exceeded"))
        with pytest.raises(ExtractionError, match="Gemini API error: quota exceeded"):
            extractor.extract(b"x", "text/plain", invoice_schema, "p")

    def test_invalid_json_reply(self, extractor_for, invoice_schema):
        extractor, _ = extractor_for("Sorry, I cannot read this document.")
        with pytest.raises(ExtractionError, match="invalid JSON"):
            extractor.extract(b"x", "text/plain", invoice_schema, "p")

    def test_missing_api_key(self, invoice_schema):
        extractor = GeminiExtractor(api_key="", model="gemini-test")
        with pytest.raises(MissingApiKeyError):
            extractor.extract(b"x", "text/plain", invoice_schema, "p")

    def test_set_api_key_resets_client(self):
        with patch("doc_schema_extractor.gemini_client.genai.Client") as client_cls:
            extractor = GeminiExtractor(api_key="first-key-0000", model="gemini-test")
            first = extractor.client
            extractor.set_api_key("second-key-0000")
            second = extractor.client

        assert extractor.get_api_key() == "second-key-0000"
        assert client_cls.call_count == 2
        assert client_cls.call_args.kwargs == {"api_key": "second-key-0000"}
        assert first is not None and second is not None

    def test_blank_api_key_cleared(self):
        extractor = GeminiExtractor(api_key="k-123456789", model="gemini-test")
        extractor.set_api_key("   ")
        assert extractor.get_api_key() is None
