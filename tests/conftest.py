"""Shared fixtures for extractor tests."""

import json
from types import SimpleNamespace

import pytest

from doc_schema_extractor.gemini_client import GeminiExtractor
from doc_schema_extractor.schema import parse_schema


class FakeModels:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else "{}"
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(text=reply)


class FakeGeminiClient:
    """Stands in for genai.Client; replies are JSON text or exceptions."""

    def __init__(self, *replies):
        self.models = FakeModels(replies)


@pytest.fixture
def invoice_data() -> dict:
    return {
        "cliente": "Juan Pérez",
        "fecha": "2024-07-29",
        "items": [
            {"desc": "Teclado Mecánico", "precio": 120.0},
            {"desc": "Ratón Gaming", "precio": 75.5},
        ],
        "total": 195.5,
    }


@pytest.fixture
def invoice_schema():
    return parse_schema([
        {"id": "f1", "name": "cliente", "type": "STRING"},
        {"id": "f2", "name": "items", "type": "ARRAY_OF_OBJECTS", "children": [
            {"id": "f2_1", "name": "desc", "type": "STRING"},
            {"id": "f2_2", "name": "precio", "type": "NUMBER"},
        ]},
    ])


@pytest.fixture
def extractor_for():
    def build(*replies):
        client = FakeGeminiClient(*replies)
        return GeminiExtractor(api_key="test-key-123456", model="gemini-test", client=client), client
    return build


@pytest.fixture
def invoice_reply(invoice_data) -> str:
    return json.dumps(invoice_data)
