"""Property-based tests for manifest parsing using Hypothesis."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from ghidramcp.manifest import parse_manifest

pytestmark = pytest.mark.unit

# Specifier-like strings: no quotes, brackets, or line breaks, never blank.
specifiers = st.text(
    alphabet=st.characters(
        whitelist_categories=("Ll", "Lu", "Nd"),
        whitelist_characters="-_.<>=!~,; ",
    ),
    min_size=1,
    max_size=30,
).filter(lambda s: s.strip() != "")

spec_lists = st.lists(specifiers, max_size=8)

extras = st.text(alphabet="abcdefghijklmnopqrstuvwxyz,", min_size=1, max_size=12)
specifiers_with_extras = st.builds(
    lambda name, extra: f"{name.strip()}[{extra}]", specifiers, extras
)
extras_lists = st.lists(specifiers_with_extras, max_size=8)


def _multi_line(deps: list[str]) -> str:
    body = "".join(f'#     "{dep}",\n' for dep in deps)
    return f"# /// script\n# dependencies = [\n{body}# ]\n# ///\n"


def _inline(deps: list[str]) -> str:
    items = ", ".join(f'"{dep}"' for dep in deps)
    return f"# /// script\n# dependencies = [{items}]\n# ///\n"


class TestParseManifestProperties:
    @given(st.text())
    def test_never_raises_and_returns_strings(self, text: str) -> None:
        result = parse_manifest(text)
        assert isinstance(result, list)
        assert all(isinstance(item, str) and item.strip() for item in result)

    @given(st.text())
    def test_parsing_is_idempotent(self, text: str) -> None:
        assert parse_manifest(text) == parse_manifest(text)

    @given(spec_lists)
    def test_multi_line_preserves_order(self, deps: list[str]) -> None:
        assert parse_manifest(_multi_line(deps)) == [dep.strip() for dep in deps]

    @given(spec_lists)
    def test_inline_preserves_order(self, deps: list[str]) -> None:
        assert parse_manifest(_inline(deps)) == [dep.strip() for dep in deps]

    @given(extras_lists)
    def test_extras_brackets_survive_both_forms(self, deps: list[str]) -> None:
        assert parse_manifest(_inline(deps)) == deps
        assert parse_manifest(_multi_line(deps)) == deps

    @given(spec_lists, st.text(alphabet=st.characters(blacklist_characters="#")))
    def test_text_without_marker_yields_nothing(self, deps: list[str], prefix: str) -> None:
        text = prefix + _multi_line(deps).replace("# /// script\n", "")
        assert parse_manifest(text) == []
