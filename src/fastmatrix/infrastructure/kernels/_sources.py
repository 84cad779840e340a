"""
Device kernel source generation.

Kernels are written once in a small C dialect and rendered for either CUDA
(NVRTC via CuPy) or OpenCL C (via PyOpenCL). A per-dialect prelude maps the
`FM_*` macros onto the target's qualifiers and thread-index builtins.

Each source is specialized for one `KernelSpec`: the element's C type, its
declarations (structs and helper functions) and its arithmetic expressions are
substituted into the template. The rendered kernel therefore contains no
runtime dispatch on element type.
"""

from __future__ import annotations

from enum import Enum
from string import Template

from ._spec import KernelOp, KernelSpec, KernelVariant


class Dialect(Enum):
    CUDA = "cuda"
    OPENCL = "opencl"


_CUDA_PRELUDE = """\
#define FM_KERNEL extern "C" __global__
#define FM_GLOBAL
#define FM_SHARED __shared__
#define FM_DEVICE_FN __device__ inline
#define FM_GLOBAL_ID ((int)(blockIdx.x * blockDim.x + threadIdx.x))
#define FM_LOCAL_ID ((int)threadIdx.x)
#define FM_GROUP_ID ((int)blockIdx.x)
#define FM_BARRIER() __syncthreads()
typedef long long fm_long;
"""

_OPENCL_PRELUDE = """\
#define FM_KERNEL __kernel
#define FM_GLOBAL __global
#define FM_SHARED __local
#define FM_DEVICE_FN
#define FM_GLOBAL_ID ((int)get_global_id(0))
#define FM_LOCAL_ID ((int)get_local_id(0))
#define FM_GROUP_ID ((int)get_group_id(0))
#define FM_BARRIER() barrier(CLK_LOCAL_MEM_FENCE)
typedef long fm_long;
"""

_OPENCL_FP64 = "#pragma OPENCL EXTENSION cl_khr_fp64 : enable\n"

_ELEMENTWISE_GLOBAL = Template(
    """\
FM_KERNEL void ${name}(FM_GLOBAL const ${T}* a, FM_GLOBAL const ${T}* b,
                       FM_GLOBAL ${T}* out, const int count)
{
    const int idx = FM_GLOBAL_ID;
    if (idx < count) {
        out[idx] = ${expr};
    }
}
"""
)

_ELEMENTWISE_SHARED = Template(
    """\
FM_KERNEL void ${name}(FM_GLOBAL const ${T}* a, FM_GLOBAL const ${T}* b,
                       FM_GLOBAL ${T}* out, const int count)
{
    FM_SHARED ${T} tile_a[${tile}];
    FM_SHARED ${T} tile_b[${tile}];
    const int local_id = FM_LOCAL_ID;
    const int idx = FM_GROUP_ID * ${tile} + local_id;
    if (idx < count) {
        tile_a[local_id] = a[idx];
        tile_b[local_id] = b[idx];
    }
    FM_BARRIER();
    if (idx < count) {
        out[idx] = ${expr};
    }
}
"""
)

_MULTIPLY = Template(
    """\
FM_KERNEL void ${name}(FM_GLOBAL const ${T}* a, FM_GLOBAL const ${T}* b,
                       FM_GLOBAL ${T}* out, const int rows, const int inner,
                       const int columns)
{
    const int idx = FM_GLOBAL_ID;
    if (idx < rows * columns) {
        const int r = idx / columns;
        const int c = idx % columns;
        ${T} acc = ${first};
        for (int k = 1; k < inner; ++k) {
            acc = ${accumulate};
        }
        out[idx] = acc;
    }
}
"""
)

_TRANSPOSE = Template(
    """\
FM_KERNEL void ${name}(FM_GLOBAL const ${T}* src, FM_GLOBAL ${T}* out,
                       const int rows, const int columns)
{
    const int idx = FM_GLOBAL_ID;
    if (idx < rows * columns) {
        const int r = idx / columns;
        const int c = idx % columns;
        out[c * rows + r] = src[idx];
    }
}
"""
)


def _prelude(dialect: Dialect, spec: KernelSpec) -> str:
    if dialect is Dialect.CUDA:
        return _CUDA_PRELUDE
    element = spec.element
    uses_double = element.c_type == "double" or "double" in element.c_declaration
    return (_OPENCL_FP64 if uses_double else "") + _OPENCL_PRELUDE


def _body(spec: KernelSpec) -> str:
    element = spec.element
    T = element.c_type

    if spec.op.is_elementwise:
        if spec.variant is KernelVariant.SHARED:
            expr = element.c_expression(
                spec.op.value, "tile_a[local_id]", "tile_b[local_id]"
            )
            return _ELEMENTWISE_SHARED.substitute(
                name=spec.name, T=T, tile=spec.tile, expr=expr
            )
        expr = element.c_expression(spec.op.value, "a[idx]", "b[idx]")
        return _ELEMENTWISE_GLOBAL.substitute(name=spec.name, T=T, expr=expr)

    if spec.op is KernelOp.MULTIPLY:
        first = element.c_expression("multiply", "a[r * inner]", "b[c]")
        product = element.c_expression(
            "multiply", "a[r * inner + k]", "b[k * columns + c]"
        )
        accumulate = element.c_expression("add", "acc", product)
        return _MULTIPLY.substitute(
            name=spec.name, T=T, first=first, accumulate=accumulate
        )

    return _TRANSPOSE.substitute(name=spec.name, T=T)


def render_source(spec: KernelSpec, dialect: Dialect) -> str:
    """
    Render the full kernel source for a specialization.

    Parameters
    ----------
    spec : KernelSpec
        Kernel specialization. Its element must be device-compatible.
    dialect : Dialect
        Target source dialect.

    Returns
    -------
    str
        Compilable source whose single entry point is `spec.name`.
    """
    parts = [_prelude(dialect, spec)]
    if spec.element.c_declaration:
        parts.append(spec.element.c_declaration)
    parts.append(_body(spec))
    return "\n".join(parts)
