import pytest

from gradlepatch.patching.braces import is_balanced
from gradlepatch.patching.errors import AnchorNotFound
from gradlepatch.patching.fragments import (
    DEPENDENCIES_FRAGMENT,
    MODERN,
    RESOLUTION_FRAGMENT,
    Anchor,
    FragmentSpec,
    TargetVersionSet,
)
from gradlepatch.patching.inject import append_at_eof, find_block_open, insert

CORE = FragmentSpec(
    marker="// marker",
    template="implementation 'x:core:${core}'",
    anchor=Anchor.block_named("dependencies"),
)
V1 = TargetVersionSet("t", {"core": "1.0"})


def test_insert_into_empty_block() -> None:
    out = insert("dependencies {\n}\n", CORE, V1)
    assert out == "dependencies {\n    // marker\n    implementation 'x:core:1.0'\n}\n"


def test_defaults_produce_expected_template(unity_template: str, patched_modern: str) -> None:
    text = insert(unity_template, DEPENDENCIES_FRAGMENT, MODERN)
    text = insert(text, RESOLUTION_FRAGMENT, MODERN)
    assert text == patched_modern


def test_insert_is_noop_when_marker_present(patched_modern: str) -> None:
    assert insert(patched_modern, DEPENDENCIES_FRAGMENT, MODERN) == patched_modern


def test_top_level_block_preferred_over_nested() -> None:
    doc = (
        "buildscript {\n"
        "    dependencies {\n"
        "        classpath 'com.android.tools.build:gradle:8.1.0'\n"
        "    }\n"
        "}\n"
        "\n"
        "dependencies {\n"
        "}\n"
    )
    out = insert(doc, CORE, V1)
    assert out.startswith(doc[: doc.index("\n\ndependencies")])
    assert out.endswith("dependencies {\n    // marker\n    implementation 'x:core:1.0'\n}\n")


def test_nested_block_used_when_only_one() -> None:
    doc = "buildscript {\n    dependencies {\n    }\n}\n"
    out = insert(doc, CORE, V1)
    assert "    dependencies {\n        // marker\n        implementation 'x:core:1.0'\n    }\n" in out
    assert is_balanced(out)


def test_existing_content_on_header_line_is_pushed_down() -> None:
    out = insert("dependencies { implementation 'a:b:1' }\n", CORE, V1)
    assert out.splitlines() == [
        "dependencies {",
        "    // marker",
        "    implementation 'x:core:1.0'",
        "",
        "    implementation 'a:b:1' }",
    ]


def test_header_in_comment_or_string_is_not_an_anchor() -> None:
    doc = "// dependencies {\ndef s = 'dependencies {'\nandroid {\n}\n"
    assert find_block_open(doc, "dependencies") is None
    with pytest.raises(AnchorNotFound, match="manual edit required"):
        insert(doc, CORE, V1)


def test_dotted_prefix_is_not_the_same_block() -> None:
    assert find_block_open("foo.dependencies {\n}\n", "dependencies") is None


def test_append_at_eof() -> None:
    out = append_at_eof("android {\n}\n\n\n", RESOLUTION_FRAGMENT, MODERN)
    assert out.startswith("android {\n}\n\n" + RESOLUTION_FRAGMENT.marker + "\n")
    assert out.endswith("}\n")
    assert append_at_eof("", CORE, V1) == "// marker\nimplementation 'x:core:1.0'\n"
