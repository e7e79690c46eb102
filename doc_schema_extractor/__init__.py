"""Core logic for the Document Schema Extractor.

The Gradio UI lives in `app.py`. This package contains:
- schema models and the compiler to the Gemini response-schema dialect
- the Gemini extraction call
- flattening of extracted JSON into columns/rows and the exporters
- the per-session workbench (batch, history, templates)
"""
