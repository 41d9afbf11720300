from dataclasses import dataclass
from types import ModuleType
from typing import Any, Callable, Optional

import array_api_compat as aac

from abadyn.core.spatial_math import ArrayLike, ArrayLikeFactory, SpatialMath


@dataclass(frozen=True)
class ArraySpec:
    xp: ModuleType  # array API namespace (compat-wrapped if needed)
    dtype: Optional[Any]  # xp.float64, torch.float64, etc.
    device: Optional[Any]  # xp device object (torch device, "cpu", ...)


def xp_getter(*xs: Any):
    return aac.array_namespace(*xs)


def _unwrap(x: Any) -> Any:
    # python scalars are left as they are, both numpy and torch broadcast them
    return x.array if isinstance(x, ArrayLike) else x


@dataclass
class ArrayAPILike(ArrayLike):
    """Generic Array-API-style wrapper used by the NumPy and Torch backends."""

    array: Any

    def __getitem__(self, idx) -> "ArrayAPILike":
        return self.__class__(self.array[idx])

    @property
    def shape(self):
        return self.array.shape

    @property
    def ndim(self):
        return self.array.ndim

    def reshape(self, *args):
        xp = xp_getter(self.array)
        return self.__class__(xp.reshape(self.array, *args))

    @property
    def T(self) -> "ArrayAPILike":
        if getattr(self.array, "ndim", 0) == 0:
            return self.__class__(self.array)
        xp = xp_getter(self.array)
        return self.__class__(xp.swapaxes(self.array, 0, -1))

    def __matmul__(self, other) -> "ArrayAPILike":
        return self.__class__(self.array @ _unwrap(other))

    def __rmatmul__(self, other) -> "ArrayAPILike":
        return self.__class__(_unwrap(other) @ self.array)

    def __mul__(self, other) -> "ArrayAPILike":
        return self.__class__(self.array * _unwrap(other))

    def __rmul__(self, other) -> "ArrayAPILike":
        return self.__class__(_unwrap(other) * self.array)

    def __truediv__(self, other) -> "ArrayAPILike":
        return self.__class__(self.array / _unwrap(other))

    def __add__(self, other) -> "ArrayAPILike":
        return self.__class__(self.array + _unwrap(other))

    def __radd__(self, other) -> "ArrayAPILike":
        return self.__class__(_unwrap(other) + self.array)

    def __sub__(self, other) -> "ArrayAPILike":
        return self.__class__(self.array - _unwrap(other))

    def __rsub__(self, other) -> "ArrayAPILike":
        return self.__class__(_unwrap(other) - self.array)

    def __neg__(self) -> "ArrayAPILike":
        return self.__class__(-self.array)


class ArrayAPIFactory(ArrayLikeFactory):
    """
    Generic factory. Give it (a) a Like class and (b) an xp namespace
    (array_api_compat.* if available; otherwise the library module).
    """

    def __init__(self, like_cls, xp, *, dtype=None, device=None):
        self._like = like_cls
        self._xp = xp
        self._dtype = dtype
        self._device = device

    @property
    def spec(self) -> ArraySpec:
        return ArraySpec(xp=self._xp, dtype=self._dtype, device=self._device)

    def zeros(self, *shape) -> ArrayAPILike:
        if len(shape) == 1 and isinstance(shape[0], (tuple, list)):
            shape = tuple(shape[0])
        x = self._xp.zeros(shape, dtype=self._dtype, device=self._device)
        return self._like(x)

    def eye(self, x: int) -> ArrayAPILike:
        return self._like(self._xp.eye(x, dtype=self._dtype, device=self._device))

    def asarray(self, x) -> ArrayAPILike:
        if isinstance(x, ArrayLike):
            x = x.array
        # preserve the gradient if x is a torch tensor
        if getattr(x, "requires_grad_", False):
            return self._like(x.to(device=self._device, dtype=self._dtype))
        return self._like(self._xp.asarray(x, dtype=self._dtype, device=self._device))

    def copy(self, x) -> ArrayAPILike:
        x = self.asarray(x).array
        # clone keeps the autograd graph of torch tensors
        if getattr(x, "requires_grad_", False):
            return self._like(x.clone())
        return self._like(self._xp.asarray(x, copy=True))

    def zeros_like(self, x: ArrayAPILike) -> ArrayAPILike:
        return self._like(self._xp.zeros_like(x.array, dtype=x.array.dtype))

    def ones_like(self, x: ArrayAPILike) -> ArrayAPILike:
        return self._like(self._xp.ones_like(x.array, dtype=x.array.dtype))


class ArrayAPISpatialMath(SpatialMath):
    """A drop-in SpatialMath that implements the primitive operations with the Array API.

    Works for NumPy and PyTorch.
    """

    def __init__(self, factory, xp_getter: Callable[..., Any] = xp_getter):
        super().__init__(factory)
        self._xp_getter = xp_getter

    def _xp(self, *xs: Any):
        return self._xp_getter(*xs)

    def sin(self, x):
        xp = self._xp(x.array)
        return self.factory.asarray(xp.sin(x.array))

    def cos(self, x):
        xp = self._xp(x.array)
        return self.factory.asarray(xp.cos(x.array))

    def sqrt(self, x):
        xp = self._xp(x.array)
        return self.factory.asarray(xp.sqrt(x.array))

    def skew(self, x):
        xp = self._xp(x.array)
        a = x.array
        if a.ndim >= 2 and a.shape[-1] == 1:
            a = a[..., 0]
        x0, x1, x2 = a[..., 0], a[..., 1], a[..., 2]
        z = x0 * 0
        row0 = xp.stack([z, -x2, x1], axis=-1)
        row1 = xp.stack([x2, z, -x0], axis=-1)
        row2 = xp.stack([-x1, x0, z], axis=-1)
        return self.factory.asarray(xp.stack([row0, row1, row2], axis=-2))

    def stack(self, x, axis=0):
        xp = self._xp(x[0].array)
        return self.factory.asarray(xp.stack([xi.array for xi in x], axis=axis))

    def concatenate(self, x, axis=0):
        xp = self._xp(x[0].array)
        return self.factory.asarray(xp.concat([xi.array for xi in x], axis=axis))

    def swapaxes(self, x: ArrayAPILike, axis1: int, axis2: int) -> ArrayAPILike:
        xp = self._xp(x.array)
        return self.factory.asarray(xp.swapaxes(x.array, axis1, axis2))

    def inv(self, x: ArrayAPILike) -> ArrayAPILike:
        xp = self._xp(x.array)
        return self.factory.asarray(xp.linalg.inv(x.array))

    def all_finite(self, x: ArrayAPILike) -> bool:
        xp = self._xp(x.array)
        return bool(xp.all(xp.isfinite(x.array)))

    def max_abs(self, x: ArrayAPILike) -> float:
        xp = self._xp(x.array)
        if 0 in tuple(x.array.shape):
            return 0.0
        return float(xp.max(xp.abs(x.array)))

    def min_eigenvalue(self, x: ArrayAPILike) -> float:
        xp = self._xp(x.array)
        # detached, the result is only compared against a threshold
        a = x.array.detach() if hasattr(x.array, "detach") else x.array
        a = (a + xp.matrix_transpose(a)) / 2
        return float(xp.min(xp.linalg.eigvalsh(a)))

    def eps(self) -> float:
        xp = self.factory.spec.xp
        return float(xp.finfo(self.factory.spec.dtype).eps)
