from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

# |x - 1| below this uses the analytic limit of the rational form
_X_ONE_EPS = 1e-8


@dataclass(frozen=True)
class RationalSwitch:
    """s(r) = (1 - x**nn) / (1 - x**mm) with x = (r - d0) / r0.

    s is 1 for r <= d0 and 0 beyond ``d_max``.
    """

    r0: float
    d0: float = 0.0
    nn: int = 6
    mm: int = 12
    d_max: float = float("inf")

    def __post_init__(self):
        if not float(self.r0) > 0.0:
            raise ValueError("switching function r0 must be positive")
        if int(self.nn) < 1 or int(self.mm) < 1:
            raise ValueError("switching function exponents must be positive")
        if int(self.nn) == int(self.mm):
            raise ValueError("switching function needs nn != mm")

    def calculate(self, r) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(s, ds/dr)`` for scalar or array ``r``."""
        r = np.asarray(r, dtype=float)
        nn = int(self.nn)
        mm = int(self.mm)
        x = (r - float(self.d0)) / float(self.r0)
        s = np.ones_like(x)
        dsdx = np.zeros_like(x)

        near = np.abs(x - 1.0) < _X_ONE_EPS
        s = np.where(near, nn / mm, s)
        dsdx = np.where(near, 0.5 * nn * (nn - mm) / mm, dsdx)

        gen = (x > 0.0) & ~near
        xg = np.where(gen, x, 0.5)
        xn1 = xg ** (nn - 1)
        xm1 = xg ** (mm - 1)
        iden = 1.0 / (1.0 - xm1 * xg)
        sg = (1.0 - xn1 * xg) * iden
        dg = -nn * xn1 * iden + sg * mm * xm1 * iden
        s = np.where(gen, sg, s)
        dsdx = np.where(gen, dg, dsdx)

        beyond = r > float(self.d_max)
        s = np.where(beyond, 0.0, s)
        dsdx = np.where(beyond, 0.0, dsdx)
        return s, dsdx / float(self.r0)
