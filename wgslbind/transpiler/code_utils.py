"""Source text utilities shared by the preprocessing and finalization steps."""

import re

_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"//[^\n]*")
_DEFINE_DIRECTIVE_RE = re.compile(r"(?<!//)#define ")


def remove_comments(code: str) -> str:
    """Remove C-style block and line comments, keeping line breaks."""
    code = _BLOCK_COMMENT_RE.sub(
        lambda match: "\n" * match.group(0).count("\n"), code
    )
    return _LINE_COMMENT_RE.sub("", code)


def neutralize_define_directives(code: str) -> str:
    """Comment out every ``#define`` directive that is not already commented."""
    return _DEFINE_DIRECTIVE_RE.sub("//#define ", code)


def find_matching_brace(code: str, open_index: int) -> int:
    """Find the index of the ``}`` closing the ``{`` at ``open_index``.

    Args:
        code: Source text
        open_index: Index of an opening brace

    Returns:
        Index of the matching closing brace, -1 if the braces are unbalanced
    """
    depth = 0
    for index in range(open_index, len(code)):
        char = code[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def inject_starting_and_ending_code(
    code: str,
    main_function_declaration: str,
    starting_code: str = "",
    ending_code: str = "",
) -> str:
    """Insert code at the start and the end of a function body.

    Args:
        code: Source text containing the function
        main_function_declaration: Text introducing the function, e.g. ``fn main``
        starting_code: Code inserted right after the opening brace
        ending_code: Code inserted right before the closing brace

    Returns:
        The code with both snippets injected, unchanged if the function is absent
    """
    index = code.find(main_function_declaration)
    if index < 0:
        return code

    open_index = code.find("{", index)
    if open_index < 0:
        return code

    if starting_code:
        code = code[: open_index + 1] + starting_code + code[open_index + 1 :]

    if ending_code:
        close_index = find_matching_brace(code, open_index)
        if close_index < 0:
            close_index = code.rfind("}")
        if close_index <= open_index:
            return code
        code = code[:close_index] + ending_code + "\n" + code[close_index:]

    return code
