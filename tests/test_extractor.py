from __future__ import annotations

from editkit.parsing.extractor import (
    ChangeExtractor,
    InstructionDenylist,
    extract,
    parse_search_replace,
)
from editkit.prompts import SYSTEM_PROMPT
from editkit.structured import Change


def _edit_block(path: str, search: str, replace: str, *, fence: str = "```", language: str = "python") -> str:
    return "\n".join(
        [
            path,
            f"{fence}{language}",
            "<<<<<<< SEARCH",
            search,
            "=======",
            replace,
            ">>>>>>> REPLACE",
            fence,
        ]
    )


def test_extracts_single_search_replace_block() -> None:
    response = "Here is the fix.\n\n" + _edit_block("src/app.py", "x = 1", "x = 2") + "\n\nDone."

    assert extract(response) == [Change(file="src/app.py", search="x = 1", replace="x = 2")]


def test_preserves_multiline_text_verbatim() -> None:
    search = "def add(a, b):\n    return a + b\n"
    replace = "def add(a, b):\n    # sum\n    return a + b\n"
    response = _edit_block("calc.py", search, replace)

    (change,) = extract(response)

    assert change.search == search
    assert change.replace == replace


def test_changes_are_returned_in_block_order() -> None:
    response = "\n\n".join(
        [
            "First we update the model.",
            _edit_block("models.py", "a", "b"),
            "Then the view.",
            _edit_block("views.py", "c", "d"),
        ]
    )

    changes = extract(response)

    assert [change.file for change in changes] == ["models.py", "views.py"]


def test_quoted_path_with_spaces_is_unquoted() -> None:
    response = _edit_block('"docs/user guide.md"', "old", "new", language="")

    (change,) = extract(response)

    assert change.file == "docs/user guide.md"


def test_blank_lines_between_path_and_fence_are_allowed() -> None:
    block = _edit_block("app.js", "var a;", "let a;", language="js")
    path, rest = block.split("\n", 1)
    response = f"{path}\n\n\n{rest}"

    assert extract(response) == [Change(file="app.js", search="var a;", replace="let a;")]


def test_quadruple_fence_with_nested_example() -> None:
    search = "Example:\n```\nold\n```"
    replace = "Example:\n```\nnew\n```"
    response = _edit_block("README.md", search, replace, fence="````", language="markdown")

    assert extract(response) == [Change(file="README.md", search=search, replace=replace)]


def test_empty_search_is_whole_file_sentinel() -> None:
    response = "\n".join(
        ["notes.txt", "```", "<<<<<<< SEARCH", "=======", "brand new", ">>>>>>> REPLACE", "```"]
    )

    (change,) = extract(response)

    assert change.search == ""
    assert change.replace == "brand new"
    assert change.is_full_write


def test_single_blank_search_line_is_whole_file_sentinel() -> None:
    response = "\n".join(
        ["notes.txt", "```", "<<<<<<< SEARCH", "", "=======", "Z", ">>>>>>> REPLACE", "```"]
    )

    (change,) = extract(response)

    assert change.is_full_write
    assert change.replace == "Z"


def test_create_new_file_marker() -> None:
    response = "\n".join(
        [
            "We also need a helper module.",
            "",
            "*CREATE NEW FILE*",
            "src/helpers.py",
            "```python",
            "def helper():",
            "    return 42",
            "```",
        ]
    )

    assert extract(response) == [
        Change(file="src/helpers.py", search="", replace="def helper():\n    return 42")
    ]


def test_create_new_file_marker_is_case_insensitive() -> None:
    response = "\n".join(["Create new file:", "", "config/settings.yaml", "```yaml", "debug: true", "```"])

    assert extract(response) == [Change(file="config/settings.yaml", search="", replace="debug: true")]


def test_create_marker_with_triple_uses_the_triple() -> None:
    response = "\n".join(
        [
            "CREATE NEW FILE",
            "pkg/__init__.py",
            "```python",
            "<<<<<<< SEARCH",
            "=======",
            "__all__ = []",
            ">>>>>>> REPLACE",
            "```",
        ]
    )

    assert extract(response) == [Change(file="pkg/__init__.py", search="", replace="__all__ = []")]


def test_create_marker_with_non_empty_search_is_documentation() -> None:
    response = "\n".join(
        [
            "*CREATE NEW FILE*",
            "app.py",
            "```python",
            "<<<<<<< SEARCH",
            "old",
            "=======",
            "new",
            ">>>>>>> REPLACE",
            "```",
        ]
    )

    assert extract(response) == []


def _creation_with_gap(gap: int) -> str:
    filler = [f"filler line {number}" for number in range(gap - 1)]
    return "\n".join(["CREATE NEW FILE", "late.py", *filler, "```", "print('x')", "```"])


def test_create_marker_finds_fence_at_lookahead_limit() -> None:
    assert extract(_creation_with_gap(10)) == [Change(file="late.py", search="", replace="print('x')")]


def test_create_marker_ignores_fence_beyond_lookahead() -> None:
    assert extract(_creation_with_gap(11)) == []


def test_create_marker_without_path_in_lookahead_yields_nothing() -> None:
    response = "\n".join(
        [
            "CREATE NEW FILE",
            "This paragraph describes",
            "what the file will do",
            "in some detail",
            "before finally naming it",
            "late/path.py",
            "```",
            "print('hi')",
            "```",
        ]
    )

    assert extract(response) == []


def test_documentation_block_with_markers_is_not_an_edit() -> None:
    response = "\n".join(
        [
            "Use this format for edits:",
            "",
            "filename.ext",
            "```",
            "<<<<<<< SEARCH",
            "[exact existing code to find]",
            "=======",
            "[new code to replace with]",
            ">>>>>>> REPLACE",
            "```",
        ]
    )

    assert extract(response) == []


def test_create_block_documenting_the_rules_is_skipped() -> None:
    response = "\n".join(
        [
            "*CREATE NEW FILE*",
            "docs/format.md",
            "````",
            "Every SEARCH/REPLACE block starts with:",
            "<<<<<<< SEARCH",
            "````",
            "real.txt",
            "```",
            "<<<<<<< SEARCH",
            "a",
            "=======",
            "b",
            ">>>>>>> REPLACE",
            "```",
        ]
    )

    assert extract(response) == [Change(file="real.txt", search="a", replace="b")]


def test_create_block_with_stray_delimiter_is_skipped() -> None:
    response = "\n".join(
        ["CREATE NEW FILE", "broken.py", "```", "<<<<<<< SEARCH", "half an edit", "```"]
    )

    assert extract(response) == []


def test_system_prompt_examples_never_produce_changes() -> None:
    assert extract(SYSTEM_PROMPT) == []


def test_two_path_lines_anchor_to_the_second() -> None:
    response = "\n".join(
        [
            "src/old_location.py",
            "src/new_location.py",
            "```python",
            "<<<<<<< SEARCH",
            "import os",
            "=======",
            "import sys",
            ">>>>>>> REPLACE",
            "```",
        ]
    )

    assert extract(response) == [Change(file="src/new_location.py", search="import os", replace="import sys")]


def test_block_without_triple_is_ignored() -> None:
    response = "\n".join(["example.py", "```python", "print('just showing code')", "```"])

    assert extract(response) == []


def test_unterminated_block_is_ignored() -> None:
    response = "\n".join(["app.py", "```", "<<<<<<< SEARCH", "a", "=======", "b", ">>>>>>> REPLACE"])

    assert extract(response) == []


def test_path_without_block_yields_nothing() -> None:
    assert extract("Look at setup.py for details.\nsetup.py\n\nThat is all.") == []


def test_consumed_block_is_not_rescanned() -> None:
    inner = _edit_block("inner.py", "1", "2")
    response = _edit_block("outer.md", inner, "replaced", fence="````", language="")

    changes = extract(response)

    assert [change.file for change in changes] == ["outer.md"]


def test_extract_handles_empty_and_missing_input() -> None:
    assert extract("") == []
    assert extract(None) == []
    assert extract("just prose\nwith no blocks") == []


def test_repeated_extraction_is_structurally_equal() -> None:
    response = "\n\n".join([_edit_block("a.py", "x", "y"), _edit_block("b.py", "p", "q")])

    assert extract(response) == extract(response)


def test_crlf_response_keeps_carriage_returns() -> None:
    response = _edit_block("win.txt", "old", "new").replace("\n", "\r\n")

    (change,) = extract(response)

    assert change.file == "win.txt"
    assert change.search == "old\r"
    assert change.replace == "new\r"


def test_custom_denylist_is_honoured() -> None:
    extractor = ChangeExtractor(denylist=InstructionDenylist(rule_phrases=("do-not-apply",)))
    response = _edit_block("a.py", "x  # do-not-apply", "y")

    assert extractor.extract(response) == []
    assert len(ChangeExtractor().extract(response)) == 1


def test_parse_search_replace_requires_all_markers() -> None:
    assert parse_search_replace("<<<<<<< SEARCH\na\n=======\nb") is None
    assert parse_search_replace("=======\n<<<<<<< SEARCH\na\n>>>>>>> REPLACE") is None
    assert parse_search_replace("<<<<<<< SEARCH  \na\n=======\nb\n>>>>>>> REPLACE") == ("a", "b")
