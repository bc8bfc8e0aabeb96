"""Compilation of template chains into executable Jinja2 templates.

A chain is an ordered list of template names. The members are parsed
into one template group: a private Jinja2 environment that only knows the
chain's members. The first member is the root layout, and every later
member implicitly extends the one before it unless it declares its own
``{% extends %}``. Rendering the last member therefore produces the root's
output with every later block override applied:

    layout: <title>{% block t %}default{% endblock %}</title>
    index:  {% block t %}custom{% endblock %}
    chain ["layout", "index"] renders <title>custom</title>
"""

from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any

from jinja2 import (
    BaseLoader,
    Environment,
    StrictUndefined,
    Template,
    TemplateNotFound,
    TemplateSyntaxError,
    Undefined,
    nodes,
)

from tmplset.exceptions import ErrorCode, ParseException
from tmplset.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


class CompiledChain:
    """Executable artifact for one template chain.

    Immutable once built and safe to render from many threads at once.
    """

    __slots__ = ("_chain", "_template")

    def __init__(self, chain: tuple[str, ...], template: Template | None):
        self._chain = chain
        self._template = template

    @property
    def chain(self) -> tuple[str, ...]:
        return self._chain

    def generate(self, context: Mapping[str, Any]) -> Iterator[str]:
        """Yield rendered output chunks."""
        if self._template is None:
            return iter(())
        return self._template.generate(context)

    def render(self, context: Mapping[str, Any]) -> str:
        return "".join(self.generate(context))

    def __repr__(self) -> str:
        return f"CompiledChain({list(self._chain)!r})"


# Compiled template for absent views; renders nothing.
EMPTY = CompiledChain((), None)


class _ChainLoader(BaseLoader):
    """Jinja2 loader serving the already-loaded sources of one chain."""

    def __init__(self, sources: Mapping[str, str]):
        self._sources = sources

    def get_source(self, environment: Environment, template: str) -> tuple[str, str | None, Callable[[], bool]]:
        try:
            source = self._sources[template]
        except KeyError:
            raise TemplateNotFound(template) from None
        # Sources never change for the lifetime of a compiled chain
        return source, None, lambda: True

    def list_templates(self) -> list[str]:
        return sorted(self._sources)


def _link(env: Environment, name: str, source: str, parent: str | None) -> str:
    """Prefix source with an extends tag for its parent, on the same line.

    Members whose parsed body already contains an extends tag are left as
    they are; text inside comments or raw blocks does not count.
    """
    if parent is None or env.parse(source, name=name).find(nodes.Extends) is not None:
        return source
    return f"{{% extends {parent!r} %}}{source}"


def compile_chain(
    names: Sequence[str],
    load: Callable[[str], bytes],
    *,
    encoding: str = "utf-8",
    autoescape: bool = True,
    strict_undefined: bool = True,
) -> CompiledChain:
    """Load and parse every member of a chain into a CompiledChain.

    Args:
        names: Template names in chain order, root first
        load: Callable returning the raw source of a name
        encoding: Encoding of the raw sources
        autoescape: Enable HTML autoescaping
        strict_undefined: Raise on undefined names instead of rendering empty

    Returns:
        CompiledChain ready to execute

    Raises:
        LoadException: If a member cannot be loaded (propagated from load)
        ParseException: If the chain is empty, repeats a name or a member
            has a syntax error
    """
    chain = tuple(names)
    if not chain:
        raise ParseException("View declares no templates", code=ErrorCode.EMPTY_CHAIN, details={"chain": []})

    seen: set[str] = set()
    for name in chain:
        if name in seen:
            raise ParseException(
                f"Template '{name}' appears more than once in chain",
                name=name,
                details={"chain": list(chain)},
            )
        seen.add(name)

    texts: dict[str, str] = {}
    for name in chain:
        raw = load(name)
        try:
            texts[name] = raw.decode(encoding)
        except UnicodeDecodeError as e:
            raise ParseException(
                f"Template '{name}' is not valid {encoding}: {e}",
                name=name,
                details={"chain": list(chain)},
            ) from e

    # Filled member by member; the loader only serves names already linked
    sources: dict[str, str] = {}
    env = Environment(
        loader=_ChainLoader(sources),
        autoescape=autoescape,
        undefined=StrictUndefined if strict_undefined else Undefined,
        keep_trailing_newline=True,
        cache_size=-1,
        auto_reload=False,
    )

    template: Template | None = None
    parent: str | None = None
    for name in chain:
        try:
            sources[name] = _link(env, name, texts[name], parent)
            template = env.get_template(name)
        except TemplateSyntaxError as e:
            log_with_context(
                logger,
                "warning",
                "Template parse failed",
                template=name,
                template_lineno=e.lineno,
                chain=list(chain),
                error=e.message,
                event_type="template_parse_error",
            )
            raise ParseException(
                f"Failed to parse template '{name}' (line {e.lineno}): {e.message}",
                name=name,
                lineno=e.lineno,
                details={"chain": list(chain)},
            ) from e
        parent = name

    return CompiledChain(chain, template)
