"""Prompt rendering on top of Jinja2.

Templates are compiled when registered so syntax errors surface at build
time. Output is never HTML-escaped. Unknown placeholders, lookups through
missing or null values (`{{ payload.a.b }}`), and `None` all render as
empty text.

JSON embedding is a filter, `{{ payload | verbatim }}`; there is no
helper-call form.
"""

import json
from typing import Any, Dict, Mapping

from jinja2 import (
    BaseLoader,
    ChainableUndefined,
    Environment,
    Template,
    TemplateSyntaxError,
    Undefined,
)
from jinja2.exceptions import TemplateError as JinjaTemplateError

from ..exceptions import TemplateError


def verbatim(value: Any) -> str:
    """Render any value as compact JSON, e.g. ``{{ payload | verbatim }}``."""
    if isinstance(value, Undefined):
        value = None
    return json.dumps(value, separators=(",", ":"), sort_keys=True, default=str)


def _blank_none(value: Any) -> Any:
    return "" if value is None else value


class TemplateEngine:
    """Named template registry with ad hoc rendering."""

    def __init__(self) -> None:
        self.env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            keep_trailing_newline=True,
            undefined=ChainableUndefined,
            finalize=_blank_none,
        )
        self.env.filters["verbatim"] = verbatim
        self._templates: Dict[str, Template] = {}

    def compile(self, source: str) -> Template:
        """Parse a template string.

        Raises:
            TemplateError: if the template has a syntax error.
        """
        try:
            return self.env.from_string(source)
        except TemplateSyntaxError as e:
            raise TemplateError(
                f"Template syntax error on line {e.lineno}: {e.message}"
            ) from e

    def register_template_string(self, name: str, source: str) -> None:
        self._templates[name] = self.compile(source)

    def has_template(self, name: str) -> bool:
        return name in self._templates

    def render(self, name: str, context: Mapping[str, Any]) -> str:
        """Render a registered template."""
        template = self._templates.get(name)
        if template is None:
            raise TemplateError(f"Template not found: {name}")
        return self._render(template, context)

    def render_template(self, source: str, context: Mapping[str, Any]) -> str:
        """Compile and render a one-off template."""
        return self._render(self.compile(source), context)

    def _render(self, template: Template, context: Mapping[str, Any]) -> str:
        try:
            return template.render(**context)
        except (JinjaTemplateError, TypeError, ValueError, AttributeError) as e:
            raise TemplateError(f"Template render failed: {e}") from e
