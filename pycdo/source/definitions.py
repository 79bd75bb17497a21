"""pycdo.source.definitions
Kinds and definition variants of a source term.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, Optional, Tuple

import numpy as np
import sympy as sp

__all__ = [
    "SupportKind", "ValueKind", "QuadratureType", "DefinitionKind", "ArrayLocation",
    "ConstantValue", "AnalyticFunction", "ExternalArray", "t", "x", "y", "z",
]


class SupportKind(Enum):
    """Where the discrete source term lives."""
    VERTEX_POTENTIAL = "primal vertices (potential)"
    VERTEX_CELL_POTENTIAL = "primal vertices and cells (potential)"
    DUAL_CELL_DENSITY = "dual cells (density)"

    @property
    def is_potential(self) -> bool:
        return self is not SupportKind.DUAL_CELL_DENSITY


class ValueKind(Enum):
    SCALAR = ()
    VECTOR = (3,)
    TENSOR = (3, 3)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.value


class QuadratureType(Enum):
    BARYCENTRIC = "barycentric"
    SUBDIVIDED_1PT = "barycentric on sub-tetrahedra"
    ORDER2 = "10-point (order 2)"
    ORDER3 = "5-point (order 3)"


class DefinitionKind(Enum):
    VALUE = "by value"
    ANALYTIC = "by analytic function"
    ARRAY = "by array"


class ArrayLocation(Enum):
    VERTICES = "vertices"
    CELLS = "cells"


@dataclass(frozen=True)
class ConstantValue:
    value: np.ndarray
    kind: ClassVar[DefinitionKind] = DefinitionKind.VALUE


# Coordinates and time available in SymPy definitions
t, x, y, z = sp.symbols("t x y z")


@dataclass(frozen=True)
class AnalyticFunction:
    """
    Wraps ``func(time, points) -> values`` where ``points`` has shape (n, 3)
    and ``values`` has shape (n,) + value shape.

    Use :meth:`from_sympy` to build the callable from an expression in
    ``t, x, y, z`` (a list or nested list of expressions for vector and
    tensor terms).
    """
    func: Callable
    expr: Optional[object] = None
    kind: ClassVar[DefinitionKind] = DefinitionKind.ANALYTIC

    @classmethod
    def from_sympy(cls, expr, shape: Tuple[int, ...] = ()) -> "AnalyticFunction":
        if shape:
            comps = list(sp.Array(expr).reshape(int(np.prod(shape))))
        else:
            comps = [sp.sympify(expr)]
        lambdas = [sp.lambdify((t, x, y, z), c, "numpy") for c in comps]

        def _func(time, points):
            P = np.asarray(points, dtype=float).reshape(-1, 3)
            n = P.shape[0]
            cols = [np.broadcast_to(np.asarray(f(time, P[:, 0], P[:, 1], P[:, 2]), dtype=float), (n,))
                    for f in lambdas]
            return np.stack(cols, axis=-1).reshape((n,) + tuple(shape))

        return cls(func=_func, expr=expr)

    def evaluate(self, time: float, points: np.ndarray, shape: Tuple[int, ...]) -> np.ndarray:
        n = points.shape[0]
        vals = np.asarray(self.func(time, points), dtype=float)
        if vals.ndim == 0:
            return np.full((n,) + shape, float(vals))
        return vals.reshape((n,) + shape)

    def __call__(self, time, points):
        return self.func(time, points)


@dataclass
class ExternalArray:
    """
    Array of values attached to mesh entities. With ``owner=True`` the
    registry takes responsibility for releasing the data; a borrowed array
    (``owner=False``) is never modified nor released.
    """
    data: Optional[np.ndarray]
    location: ArrayLocation
    owner: bool = False
    kind: ClassVar[DefinitionKind] = DefinitionKind.ARRAY

    def release(self) -> None:
        if self.owner:
            self.data = None
