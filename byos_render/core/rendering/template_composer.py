"""
Template Composer
=================

Combine a caller-supplied HTML fragment and its data with a base layout into a
single self-contained HTML document.

The fragment is rendered first in a sandboxed Jinja2 environment (variable
substitution only, data values escaped). The result is then bound as ``embed``
inside the base layout, which is loaded by name from an injected template store.
"""

from typing import Any, Mapping, Optional
from pathlib import Path

import jinja2
from jinja2 import nodes
from jinja2.sandbox import SandboxedEnvironment
from markupsafe import Markup

from byos_render.config.logging import get_logger
from byos_render.config.settings import Settings, get_settings
from byos_render.core.errors import TemplateError

logger = get_logger(__name__)

EMBED_SLOT = "embed"
DEFAULT_LAYOUT = "base.html"
BUNDLED_TEMPLATES = Path(__file__).parent / "templates"

# Any jinja2 loader can serve as the template store
TemplateStore = jinja2.BaseLoader


def filesystem_store(directory: Optional[Path] = None) -> TemplateStore:
    """Template store reading layouts from a directory."""
    return jinja2.FileSystemLoader(str(directory or BUNDLED_TEMPLATES))


def memory_store(layouts: Mapping[str, str]) -> TemplateStore:
    """Template store backed by an in-memory mapping of name to source."""
    return jinja2.DictLoader(dict(layouts))


class TemplateComposer:
    """Render user fragments into a base layout."""

    def __init__(self, store: Optional[TemplateStore] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.store = store or filesystem_store(self.settings.template_path)
        self.logger: Any = logger.bind(component="template_composer")

        self._fragment_env = SandboxedEnvironment(
            undefined=jinja2.StrictUndefined,
            autoescape=True,
        )
        self._layout_env = SandboxedEnvironment(
            loader=self.store,
            undefined=jinja2.StrictUndefined,
            autoescape=jinja2.select_autoescape(["html", "xml"]),
        )

    def compose(
        self,
        base_layout: str,
        user_fragment: str,
        data: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Render a fragment against data and embed it in a base layout.

        Args:
            base_layout: Name of the layout in the template store
            user_fragment: HTML fragment with template variables
            data: Values substituted into the fragment

        Returns:
            Complete HTML document

        Raises:
            TemplateError: If either template fails to load, parse or render
        """
        rendered_fragment = self.render_fragment(user_fragment, data or {})
        document = self._render_layout(base_layout, rendered_fragment)

        self.logger.debug(
            "Template composed",
            layout=base_layout,
            fragment_length=len(rendered_fragment),
            document_length=len(document),
        )
        return document

    def render_fragment(self, user_fragment: str, data: Mapping[str, Any]) -> str:
        """Render the user fragment on its own."""
        try:
            template = self._fragment_env.from_string(user_fragment)
        except jinja2.TemplateSyntaxError as e:
            raise TemplateError(str(e), stage="user", cause="syntax") from e

        try:
            return template.render(dict(data))
        except jinja2.UndefinedError as e:
            raise TemplateError(str(e), stage="user", cause="undefined-variable") from e
        except jinja2.TemplateError as e:
            raise TemplateError(str(e), stage="user", cause="syntax") from e

    def _render_layout(self, name: str, rendered_fragment: str) -> str:
        """Load, validate and render the base layout."""
        try:
            source, _, _ = self.store.get_source(self._layout_env, name)
        except jinja2.TemplateNotFound as e:
            raise TemplateError(f"layout '{name}' not found", stage="base", cause="io") from e
        except OSError as e:
            raise TemplateError(str(e), stage="base", cause="io") from e

        try:
            parsed = self._layout_env.parse(source)
        except jinja2.TemplateSyntaxError as e:
            raise TemplateError(str(e), stage="base", cause="syntax") from e

        slots = [
            node
            for node in parsed.find_all(nodes.Name)
            if node.name == EMBED_SLOT and node.ctx == "load"
        ]
        if len(slots) != 1:
            raise TemplateError(
                f"layout '{name}' must have exactly one '{EMBED_SLOT}' slot, found {len(slots)}",
                stage="base",
                cause="syntax",
            )

        try:
            template = self._layout_env.from_string(parsed)
            return template.render({EMBED_SLOT: Markup(rendered_fragment)})
        except jinja2.UndefinedError as e:
            raise TemplateError(str(e), stage="base", cause="undefined-variable") from e
        except jinja2.TemplateError as e:
            raise TemplateError(str(e), stage="base", cause="syntax") from e
