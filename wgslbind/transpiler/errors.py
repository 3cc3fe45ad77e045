"""
Exceptions and error handling for the WGSL shader transpiler.

This module defines custom exceptions that are raised during the transpilation
process. Every exception raised here aborts the current compile only; grammar
mismatches inside the declaration processors are never errors.
"""


class TranspilerError(Exception):
    """Exception raised for errors during shader code transpilation.

    This is the main exception class used throughout the transpiler to report errors
    in a user-friendly way. When the error is tied to a source declaration, the
    offending line is appended to the message.

    Examples:
        >>> raise TranspilerError("Too many bindings")
        TranspilerError: Too many bindings
    """

    def __init__(self, message: str, declaration: str | None = None):
        """Initialize the exception with a message and optional declaration.

        Args:
            message: The error message
            declaration: Optional source line where the error occurred
        """
        self.message = message
        self.declaration = declaration.strip() if declaration else None

        location_info = ""
        if self.declaration:
            location_info = f' in declaration "{self.declaration}"'

        super().__init__(f"{message}{location_info}")


class TextureDimensionError(TranspilerError):
    """Raised for a texture function with no known view dimension."""

    def __init__(self, texture_function: str, declaration: str | None = None):
        self.texture_function = texture_function
        super().__init__(
            "Can't get the texture dimension corresponding to the texture "
            f'function "{texture_function}"',
            declaration,
        )


class BindingCapacityError(TranspilerError):
    """Raised when the binding allocator runs past the last bind group."""


class LocationCapacityError(TranspilerError):
    """Raised when attribute or varying locations exceed their maximum."""
