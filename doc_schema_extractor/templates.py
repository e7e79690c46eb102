"""Built-in extraction templates and the in-memory user template store."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Literal, Optional
from uuid import uuid4

from loguru import logger

from .errors import TemplateError
from .schema import SchemaField, clone_schema, parse_schema

TemplateType = Literal["factura", "nota", "modelo"]

EXAMPLE_PROMPT = """Extraer la siguiente información del documento:
- Nombre completo del cliente
- Fecha de la factura
- Lista de artículos comprados, incluyendo nombre del artículo y precio
- Total de la factura"""

EXAMPLE_SCHEMA: List[SchemaField] = parse_schema([
    {"id": "f1", "name": "nombre_cliente", "type": "STRING"},
    {"id": "f2", "name": "fecha_factura", "type": "STRING"},
    {"id": "f3", "name": "articulos", "type": "ARRAY_OF_OBJECTS", "children": [
        {"id": "f3_1", "name": "descripcion", "type": "STRING"},
        {"id": "f3_2", "name": "precio", "type": "NUMBER"},
    ]},
    {"id": "f4", "name": "total", "type": "NUMBER"},
])

EXAMPLE_FILE_NAME = "factura-ejemplo.txt"
EXAMPLE_FILE_CONTENT = """
FACTURA
Cliente: Juan Pérez
Fecha: 2024-07-29

Artículos:
- Teclado Mecánico: 120.00
- Ratón Gaming: 75.50

Total: 195.50
"""


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    description: str
    type: TemplateType
    schema: List[SchemaField] = field(default_factory=list)
    prompt: str = ""
    builtin: bool = False


def _builtin(id: str, name: str, description: str, type: TemplateType, fields: list, prompt: str) -> Template:
    return Template(id, name, description, type, parse_schema(fields), prompt, builtin=True)


DEFAULT_TEMPLATES: List[Template] = [
    _builtin(
        "factura-basica", "Factura Básica", "Extrae datos básicos de facturas", "factura",
        [
            {"id": "field-1", "name": "cliente", "type": "STRING"},
            {"id": "field-2", "name": "fecha", "type": "STRING"},
            {"id": "field-3", "name": "total", "type": "NUMBER"},
            {"id": "field-4", "name": "items", "type": "ARRAY"},
        ],
        "Extrae la información de la factura: cliente, fecha, total e items.",
    ),
    _builtin(
        "factura-completa", "Factura Completa", "Extracción detallada de facturas", "factura",
        [
            {"id": "field-1", "name": "numero_factura", "type": "STRING"},
            {"id": "field-2", "name": "cliente", "type": "STRING"},
            {"id": "field-3", "name": "fecha", "type": "STRING"},
            {"id": "field-4", "name": "subtotal", "type": "NUMBER"},
            {"id": "field-5", "name": "impuestos", "type": "NUMBER"},
            {"id": "field-6", "name": "total", "type": "NUMBER"},
            {"id": "field-7", "name": "items", "type": "ARRAY"},
        ],
        "Extrae todos los detalles de la factura incluyendo número, cliente, fecha, subtotal, "
        "impuestos, total e items detallados.",
    ),
    _builtin(
        "nota-entrega", "Nota de Entrega", "Extrae datos de notas de entrega", "nota",
        [
            {"id": "field-1", "name": "numero_nota", "type": "STRING"},
            {"id": "field-2", "name": "destinatario", "type": "STRING"},
            {"id": "field-3", "name": "fecha_entrega", "type": "STRING"},
            {"id": "field-4", "name": "productos", "type": "ARRAY"},
            {"id": "field-5", "name": "cantidad_total", "type": "NUMBER"},
        ],
        "Extrae la información de la nota de entrega: número, destinatario, fecha, productos y cantidad total.",
    ),
    _builtin(
        "nota-credito", "Nota de Crédito", "Extrae datos de notas de crédito", "nota",
        [
            {"id": "field-1", "name": "numero_nota", "type": "STRING"},
            {"id": "field-2", "name": "factura_referencia", "type": "STRING"},
            {"id": "field-3", "name": "fecha", "type": "STRING"},
            {"id": "field-4", "name": "monto_credito", "type": "NUMBER"},
            {"id": "field-5", "name": "motivo", "type": "STRING"},
        ],
        "Extrae los datos de la nota de crédito: número, factura de referencia, fecha, monto y motivo.",
    ),
]


class TemplateStore:
    """Built-in templates plus user-saved ones ("Mis Modelos"), per session."""

    def __init__(self, templates: Optional[List[Template]] = None):
        self._templates: Dict[str, Template] = {}
        for template in (DEFAULT_TEMPLATES if templates is None else templates):
            self._templates[template.id] = template

    def list(self, type: Optional[TemplateType] = None) -> List[Template]:
        return [t for t in self._templates.values() if type is None or t.type == type]

    def get(self, template_id: str) -> Template:
        try:
            return self._templates[template_id]
        except KeyError:
            raise TemplateError(f"Template not found: {template_id}") from None

    def find_by_name(self, name: str) -> Template:
        for template in self._templates.values():
            if template.name == name:
                return template
        raise TemplateError(f"Template not found: {name}")

    def save(self, name: str, description: str, schema: List[SchemaField], prompt: str) -> Template:
        name = (name or "").strip()
        if not name:
            raise TemplateError("Template name cannot be empty.")
        template = Template(
            id=f"modelo-{uuid4().hex[:8]}",
            name=name,
            description=(description or "").strip(),
            type="modelo",
            schema=clone_schema(schema),
            prompt=prompt or "",
        )
        self._templates[template.id] = template
        logger.info("Saved template {} ({} root fields)", template.id, len(template.schema))
        return template

    def delete(self, template_id: str) -> None:
        template = self.get(template_id)
        if template.builtin:
            raise TemplateError(f"Built-in template cannot be deleted: {template.name}")
        del self._templates[template_id]

    def snapshot(self, template_id: str) -> Template:
        """Copy of a template whose schema is safe to edit."""
        template = self.get(template_id)
        return replace(template, schema=clone_schema(template.schema))
