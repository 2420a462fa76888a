"""
Component Evaluator
===================

Evaluates component-template markup: a ``<template>`` section rendered with
a data-only descriptor from the ``<script>`` section. The descriptor holds
``data`` fields and ``computed`` bindings written as sandboxed template
expressions; no script is ever executed.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
import json
import re

from cerberus import Validator  # type: ignore[import-untyped]
from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment
import yaml  # type: ignore[import-untyped]

from htmlsnap.config.logging import get_logger
from htmlsnap.errors import ComponentEvaluationError

logger = get_logger(__name__)

IDENTIFIER_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"

# Greedy so nested <template> elements stay inside the outer section
_TEMPLATE_SECTION = re.compile(r"<template\b[^>]*>(?P<body>.*)</template\s*>", re.S | re.I)
_SCRIPT_SECTION = re.compile(r"<script\b[^>]*>(?P<body>.*?)</script\s*>", re.S | re.I)
_STYLE_SECTION = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.S | re.I)
_TOP_LEVEL_TEMPLATE = re.compile(r"^\s*(?:<!--.*?-->\s*)*<template\b", re.S | re.I)

DESCRIPTOR_SCHEMA: Dict[str, Any] = {
    "data": {
        "type": "dict",
        "default": {},
        "keysrules": {"type": "string", "regex": IDENTIFIER_PATTERN},
    },
    "computed": {
        "type": "dict",
        "default": {},
        "keysrules": {"type": "string", "regex": IDENTIFIER_PATTERN},
        "valuesrules": {"type": "string", "empty": False},
    },
}

# Evaluation failures that template expressions can raise at runtime
_EVALUATION_ERRORS = (
    TemplateError,
    TypeError,
    ValueError,
    ArithmeticError,
    LookupError,
    AttributeError,
)


def is_component_markup(markup: str) -> bool:
    """Whether markup starts with a top-level ``<template>`` section."""
    return bool(_TOP_LEVEL_TEMPLATE.match(markup))


@dataclass
class ComponentSource:
    """Sections of component markup."""

    template: str
    descriptor_text: str
    styles: List[str] = field(default_factory=list)


def split_sections(markup: str) -> ComponentSource:
    """
    Split component markup into template, descriptor and style sections.

    Raises:
        ComponentEvaluationError: If the template or script section is missing
    """
    template_match = _TEMPLATE_SECTION.search(markup)
    if template_match is None:
        raise ComponentEvaluationError("Component markup has no <template> section")

    remainder = markup[: template_match.start()] + markup[template_match.end() :]
    script_match = _SCRIPT_SECTION.search(remainder)
    if script_match is None:
        raise ComponentEvaluationError("Component markup has no <script> section")

    return ComponentSource(
        template=template_match.group("body"),
        descriptor_text=script_match.group("body"),
        styles=_STYLE_SECTION.findall(remainder),
    )


class ComponentEvaluator:
    """Renders component markup into plain markup for the preview."""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(component="component_evaluator")  # structlog.BoundLoggerBase
        self.env = SandboxedEnvironment(autoescape=True, undefined=StrictUndefined)
        self.validator = Validator(DESCRIPTOR_SCHEMA)  # type: ignore[misc]
        self.validator.allow_unknown = False  # type: ignore[attr-defined]

    def evaluate(self, markup: str) -> str:
        """
        Evaluate component markup.

        Args:
            markup: Markup with ``<template>`` and ``<script>`` sections

        Returns:
            Plain markup: component styles followed by the rendered template

        Raises:
            ComponentEvaluationError: On a missing section, an invalid
                descriptor or an evaluation failure
        """
        source = split_sections(markup)
        descriptor = self.load_descriptor(source.descriptor_text)
        context = self.build_context(descriptor)

        try:
            rendered = self.env.from_string(source.template).render(context)
        except _EVALUATION_ERRORS as e:
            raise ComponentEvaluationError(f"Template rendering failed: {e}")

        self.logger.debug(
            "Component evaluated",
            data_fields=len(descriptor["data"]),
            computed_fields=len(descriptor["computed"]),
            output_length=len(rendered),
        )
        return "".join(source.styles) + rendered.strip()

    def load_descriptor(self, text: str) -> Dict[str, Any]:
        """Parse (JSON or YAML) and validate a component descriptor."""
        content = text.strip()
        try:
            if content.startswith("{"):
                raw = json.loads(content)
            else:
                raw = yaml.safe_load(content) if content else {}
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ComponentEvaluationError(f"Component descriptor is not valid JSON/YAML: {e}")

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ComponentEvaluationError("Component descriptor must be a mapping")

        if not self.validator.validate(raw):  # type: ignore[misc]
            errors = self._format_validation_errors(self.validator.errors)  # type: ignore[attr-defined]
            raise ComponentEvaluationError("Invalid component descriptor: " + "; ".join(errors))

        return self.validator.document  # type: ignore[attr-defined,no-any-return]

    def build_context(self, descriptor: Dict[str, Any]) -> Dict[str, Any]:
        """Data fields plus computed bindings, evaluated in declaration order."""
        context: Dict[str, Any] = dict(descriptor["data"])

        for name, expression in descriptor["computed"].items():
            try:
                compiled = self.env.compile_expression(expression, undefined_to_none=False)
                context[name] = compiled(**context)
            except _EVALUATION_ERRORS as e:
                raise ComponentEvaluationError(f"Computed field '{name}' failed: {e}")

        return context

    def _format_validation_errors(self, errors: Any, path: str = "") -> List[str]:
        """Format Cerberus validation errors into readable messages."""
        formatted_errors: List[str] = []

        for field_name, error_info in errors.items():
            current_path = f"{path}.{field_name}" if path else str(field_name)
            for error in error_info if isinstance(error_info, list) else [error_info]:
                if isinstance(error, dict):
                    formatted_errors.extend(self._format_validation_errors(error, current_path))
                else:
                    formatted_errors.append(f"{current_path}: {error}")

        return formatted_errors


def evaluate_component(markup: str, evaluator: Optional[ComponentEvaluator] = None) -> str:
    """Evaluate component markup with a default evaluator."""
    return (evaluator or ComponentEvaluator()).evaluate(markup)
