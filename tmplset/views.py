"""Viewable contract.

A view declares the ordered template names that compose its page and
supplies the data those templates render. Any object with a
``templates()`` method qualifies; ``View`` is a pydantic base class for
the common case.
"""

import dataclasses
from collections.abc import Sequence
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


@runtime_checkable
class Viewable(Protocol):
    """Protocol for objects that can be rendered by a template set."""

    def templates(self) -> Sequence[str]:
        """Return the template names to load and parse, root first."""
        ...


class View(BaseModel):
    """Pydantic base class for views.

    Subclasses list their template chain in ``template_names`` and declare
    the data fields their templates use:

        class IndexView(View):
            template_names: ClassVar[tuple[str, ...]] = ("layout", "index")

            title: str
    """

    template_names: ClassVar[tuple[str, ...]] = ()

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def templates(self) -> Sequence[str]:
        return self.template_names


def view_context(view: Any) -> dict[str, Any]:
    """Build the template context for a view.

    The view itself is available as ``view``; its public fields are also
    exposed as top-level names so templates can write ``{{ title }}``.

    Raises:
        ValueError: If the view has a public field named ``view``
    """
    if isinstance(view, BaseModel):
        fields = {name: getattr(view, name) for name in type(view).model_fields}
    elif dataclasses.is_dataclass(view) and not isinstance(view, type):
        fields = {f.name: getattr(view, f.name) for f in dataclasses.fields(view)}
    else:
        fields = dict(getattr(view, "__dict__", {}))

    context = {name: value for name, value in fields.items() if not name.startswith("_")}
    if "view" in context:
        raise ValueError(f"{type(view).__name__} field 'view' is reserved for the view itself")
    context["view"] = view
    return context
