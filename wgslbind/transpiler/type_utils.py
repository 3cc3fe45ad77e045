"""Type utility functions for declaration processing.

Provides the array grammar resolver used by every declaration processor and the
helpers deriving base type names and component counts from WGSL type strings.
"""

import re

from loguru import logger

from wgslbind.transpiler.constants import UNIFORM_SIZES

_TEMPLATE_RE = re.compile(r"^(.*?)(<.*>)?$", re.DOTALL)
_DECIMAL_RE = re.compile(r"\d+")


def get_array_size(
    name: str, declared_type: str, preprocessors: dict[str, str]
) -> tuple[str, str, int]:
    """Split an ``array<T, N>`` type into its element type and length.

    The scan walks backward from the last ``>`` to the separator preceding the
    length, so only the outermost array wrapper is removed. The length is a
    decimal literal or the name of a preprocessor constant; a name missing from
    ``preprocessors`` resolves to 0.

    Args:
        name: Name of the declared variable, returned unchanged
        declared_type: Declared type string, e.g. ``array<vec2<f32>, 4>``
        preprocessors: Material-level preprocessor constants

    Returns:
        Tuple of (name, element type, array length), length 0 for non-arrays
    """
    length = 0

    end_array = declared_type.rfind(">")
    if "array" in declared_type and end_array > 0:
        start_array = end_array
        while start_array > 0 and declared_type[start_array] not in (" ", ","):
            start_array -= 1

        length_in_string = declared_type[start_array + 1 : end_array]
        parsed = _parse_length(length_in_string)
        if parsed is None:
            parsed = _parse_length(preprocessors.get(length_in_string.strip()))
            if parsed is None:
                logger.warning(
                    f'Array length "{length_in_string.strip()}" of "{name}" is '
                    "neither a literal nor a known define, using 0"
                )
                parsed = 0
        length = parsed

        while start_array > 0 and declared_type[start_array] in (" ", ","):
            start_array -= 1

        declared_type = declared_type[declared_type.find("<") + 1 : start_array + 1]

    return name, declared_type, length


def _parse_length(value: str | None) -> int | None:
    """Parse an array length the way a numeric coercion would; None if invalid."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return 0
    if _DECIMAL_RE.fullmatch(value):
        return int(value)
    return None


def base_type_name(type_name: str) -> str:
    """Strip the template argument list: ``vec2<f32>`` -> ``vec2``."""
    match = _TEMPLATE_RE.match(type_name.strip())
    return match.group(1) if match else type_name


def component_count(type_name: str) -> int | None:
    """Get the number of scalar components of a uniform type, None if unknown."""
    return UNIFORM_SIZES.get(base_type_name(type_name))
