from wgslbind.transpiler import pre_process_shader_code, transpile
from wgslbind.transpiler.context import ProcessingContext
from wgslbind.transpiler.errors import (
    BindingCapacityError,
    LocationCapacityError,
    TextureDimensionError,
    TranspilerError,
)
from wgslbind.transpiler.models import BindingPair, TranspileResult

__version__ = "0.1.0"


__all__ = [
    "BindingCapacityError",
    "BindingPair",
    "LocationCapacityError",
    "ProcessingContext",
    "TextureDimensionError",
    "TranspileResult",
    "TranspilerError",
    "pre_process_shader_code",
    "transpile",
]
