"""
Preprocessor define rewriter.

Material-level defines with a literal value become ``const`` declarations.
Defines declared in the shader source itself may hold arbitrary expressions,
so they are substituted textually instead: longest names first, each value
re-read from the live text since an earlier substitution may have rewritten
it. Every ``#define`` directive is commented out afterwards.
"""

import re

from loguru import logger

from wgslbind.transpiler.code_utils import neutralize_define_directives
from wgslbind.transpiler.constants import RESERVED_DEFINE_PREFIX

_LITERAL_RE = re.compile(
    r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?[fhiu]?|true|false"
)
_SOURCE_DEFINE_RE = re.compile(r"^[ \t]*#define[ \t]+(\w+)[ \t]*(.*?)[ \t]*$", re.M)


def collect_source_defines(code: str) -> dict[str, str]:
    """Collect the ``#define NAME VALUE`` directives of a shader source.

    Args:
        code: Shader source

    Returns:
        Mapping of define names to raw values, ``"true"`` for valueless defines
    """
    defines: dict[str, str] = {}
    for match in _SOURCE_DEFINE_RE.finditer(code):
        defines[match.group(1)] = match.group(2) or "true"
    return defines


def convert_defines_to_const(preprocessors: dict[str, str]) -> str:
    """Turn literal-valued material defines into WGSL constants."""
    code = ""
    for name, value in preprocessors.items():
        if name.startswith(RESERVED_DEFINE_PREFIX):
            continue
        value = value.strip()
        if _LITERAL_RE.fullmatch(value):
            code += f"const {name} = {value};\n"
        elif name and value == "":
            code += f"const {name} = true;\n"
    return code


def _live_define_value(code: str, name: str, fallback: str) -> str:
    """Read the current value of ``#define name`` from the text."""
    match = re.search(
        rf"#define[ \t]+{re.escape(name)}\b[ \t]?([^\n]*)", code
    )
    if match is None:
        logger.debug(f"Directive of define {name} not found, using {fallback!r}")
        return fallback
    return match.group(1).strip()


def substitute_source_defines(code: str, source_defines: dict[str, str]) -> str:
    """Replace in-source macro names with their values.

    Names are processed longest first so that a short name never rewrites part
    of a longer one. Boolean defines (value ``"true"``) are left alone.
    """
    define_list = [name for name, value in source_defines.items() if value != "true"]
    define_list.sort(key=len, reverse=True)

    for name in define_list:
        value = _live_define_value(code, name, source_defines[name])
        code = re.sub(re.escape(name), lambda _match, v=value: v, code)
        logger.debug(f"Substituted define {name} -> {value}")

    return code


def post_process(
    code: str,
    preprocessors: dict[str, str],
    source_defines: dict[str, str],
) -> str:
    """Apply the define rewriting to a stage.

    Args:
        code: Stage code after declaration processing
        preprocessors: Material-level defines
        source_defines: Defines declared in the stage source

    Returns:
        The stage code with macros substituted, constants prefixed and every
        ``#define`` directive commented out
    """
    code = substitute_source_defines(code, source_defines)
    code = convert_defines_to_const(preprocessors) + code
    return neutralize_define_directives(code)
