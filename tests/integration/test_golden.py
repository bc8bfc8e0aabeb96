"""End-to-end golden file tests over the testdata templates."""

from typing import ClassVar

import pytest

from tmplset.loaders import MemoryLoader
from tmplset.template_set import TemplateSet
from tmplset.views import View


class BasicView(View):
    template_names: ClassVar[tuple[str, ...]] = ("basic",)

    title: str


class IndexView(View):
    template_names: ClassVar[tuple[str, ...]] = ("layout", "index")

    title: str


class NestedView(View):
    template_names: ClassVar[tuple[str, ...]] = ("layout", "nested", "list_item")

    title: str
    items: list[str]


CASES = {
    "basic.html": BasicView(title="test"),
    "layout.html": IndexView(title="test"),
    "nested.html": NestedView(title="test", items=["a", "b"]),
}


def compare(templates: TemplateSet, testdata_dir, filename: str, view: View, update: bool) -> None:
    have = templates.render(view)
    golden = testdata_dir / "golden" / filename
    if update:
        golden.write_bytes(have)
    assert have == golden.read_bytes(), f"{filename} does not match golden file"


@pytest.mark.parametrize("filename", sorted(CASES))
def test_golden_filesystem(testdata_set, testdata_dir, update_golden, filename):
    """Test filesystem-backed renders match the golden output."""
    compare(testdata_set, testdata_dir, filename, CASES[filename], update_golden)


@pytest.mark.parametrize("filename", sorted(CASES))
def test_golden_embedded_tree(test_settings, testdata_dir, filename):
    """Test an in-memory copy of the tree renders identically."""
    tree = {path.name: path.read_bytes() for path in testdata_dir.glob("*.html")}
    templates = TemplateSet(test_settings, loader=MemoryLoader(tree, ".html"))

    compare(templates, testdata_dir, filename, CASES[filename], update=False)


def test_golden_recompile_matches_cached(test_settings, testdata_dir, testdata_set):
    """Test recompile mode renders the same bytes as cached mode."""
    templates = TemplateSet(test_settings, root=str(testdata_dir), recompile=True)

    for view in CASES.values():
        assert templates.render(view) == testdata_set.render(view)


def test_default_loader_reads_root(test_settings, testdata_dir):
    """Test the settings root feeds the default filesystem loader."""
    templates = TemplateSet(test_settings, root=str(testdata_dir))

    assert templates.render(BasicView(title="test")) == b"<h1>test</h1>\n"
