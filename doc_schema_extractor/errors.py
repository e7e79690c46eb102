from __future__ import annotations


class ExtractorError(Exception):
    """Base class for errors surfaced to the workbench user."""


class EmptySchemaError(ExtractorError):
    def __init__(self, message: str = "The schema is empty or has no validly named fields."):
        super().__init__(message)


class SchemaParseError(ExtractorError):
    pass


class ExtractionError(ExtractorError):
    pass


class MissingApiKeyError(ExtractionError):
    def __init__(self, message: str = "A Gemini API key must be set before extracting."):
        super().__init__(message)


class FileNotInBatchError(ExtractorError):
    pass


class TemplateError(ExtractorError):
    pass


class UnknownExportFormatError(ExtractorError):
    pass
