"""Linear system ``A · u = b`` produced by constraint extraction.

Entries are SymPy expressions; symbols outside the unknown ordering stay
symbolic until the caller evaluates or compiles the system with NumPy.
"""

import numpy as np
import sympy
from sympy import Eq, ImmutableMatrix, Add

from eqsystem.algebra import SympyAlgebra
from eqsystem.errors import IndexOutOfRange
from eqsystem.ordered_set import OrderedVariableSet


class LinearSystem:
    """Coefficient matrix + constant column over a fixed unknown ordering."""

    def __init__(self, matrix, constants, ordering: OrderedVariableSet) -> None:
        matrix = ImmutableMatrix(matrix)
        constants = ImmutableMatrix(constants)
        if matrix.cols != ordering.size():
            raise ValueError(
                f"Matrix has {matrix.cols} columns but the ordering has "
                f"{ordering.size()} unknowns."
            )
        if constants.shape != (matrix.rows, 1):
            raise ValueError(
                f"Constant vector must be {matrix.rows}x1, got "
                f"{constants.rows}x{constants.cols}."
            )
        self._matrix = matrix
        self._constants = constants
        self._ordering = ordering.copy()

    # ── Accessors ───────────────────────────────────────────────────────

    @property
    def rows(self) -> int:
        return self._matrix.rows

    @property
    def cols(self) -> int:
        return self._matrix.cols

    @property
    def matrix(self) -> ImmutableMatrix:
        return self._matrix

    @property
    def constants(self) -> ImmutableMatrix:
        return self._constants

    @property
    def ordering(self) -> OrderedVariableSet:
        return self._ordering.copy()

    def coefficient(self, row: int, col: int):
        if not 0 <= row < self.rows:
            raise IndexOutOfRange(row, self.rows, "row")
        if not 0 <= col < self.cols:
            raise IndexOutOfRange(col, self.cols, "column")
        return self._matrix[row, col]

    def constant(self, row: int):
        if not 0 <= row < self.rows:
            raise IndexOutOfRange(row, self.rows, "row")
        return self._constants[row, 0]

    def parameters(self) -> OrderedVariableSet:
        """Symbols left in the entries, row by row in first-appearance order."""
        algebra = SympyAlgebra()
        found = OrderedVariableSet()
        for r in range(self.rows):
            for c in range(self.cols):
                found.union_with(algebra.symbols_of(self._matrix[r, c]))
            found.union_with(algebra.symbols_of(self._constants[r, 0]))
        return found

    def equations(self) -> list:
        """One unevaluated ``Eq(Σ a_rc·u_c, b_r)`` per row, for display."""
        out = []
        for r in range(self.rows):
            terms = [self._matrix[r, c] * self._ordering.at(c)
                     for c in range(self.cols)]
            out.append(Eq(Add(*terms), self._constants[r, 0], evaluate=False))
        return out

    # ── Numeric views ───────────────────────────────────────────────────

    def evaluate(self, values=None):
        """Substitute numeric parameter *values* and return ``(A, b)`` as
        float64 NumPy arrays of shape ``(rows, cols)`` and ``(rows,)``."""
        values = values or {}
        # String keys name the parameter, whatever assumptions it carries
        by_name = {s.name: s for s in self.parameters()}
        subs = {}
        for k, v in values.items():
            if isinstance(k, str):
                k = by_name.get(k, sympy.Symbol(k))
            subs[k] = v
        A = self._matrix.subs(subs)
        b = self._constants.subs(subs)
        missing = A.free_symbols | b.free_symbols
        if missing:
            names = ", ".join(sorted(str(s) for s in missing))
            raise ValueError(f"No value supplied for parameter(s): {names}")
        A_num = sympy.matrix2numpy(A.evalf(), dtype=float)
        b_num = sympy.matrix2numpy(b.evalf(), dtype=float)
        return A_num.reshape(self.rows, self.cols), b_num.reshape(self.rows)

    def lambdify(self, parameter_ordering: OrderedVariableSet):
        """Compile the system into ``f(params) -> (A, b)``.

        ``params`` is a sequence of numbers laid out like
        *parameter_ordering*; every symbol still present in the system must
        appear there.
        """
        missing = [s for s in self.parameters()
                   if not parameter_ordering.contains(s)]
        if missing:
            names = ", ".join(str(s) for s in missing)
            raise ValueError(
                f"Parameter ordering has no position for: {names}"
            )
        args = [parameter_ordering.to_list()]
        f_matrix = sympy.lambdify(args, self._matrix, modules="numpy",
                                  dummify=True)
        f_constants = sympy.lambdify(args, self._constants, modules="numpy",
                                     dummify=True)
        rows, cols = self.rows, self.cols

        def compiled(params):
            params = list(params)
            if len(params) != parameter_ordering.size():
                raise ValueError(
                    f"Expected {parameter_ordering.size()} parameter values, "
                    f"got {len(params)}."
                )
            A = np.asarray(f_matrix(params), dtype=float).reshape(rows, cols)
            b = np.asarray(f_constants(params), dtype=float).reshape(rows)
            return A, b

        return compiled

    # ── Python protocol ─────────────────────────────────────────────────

    def __eq__(self, other) -> bool:
        if not isinstance(other, LinearSystem):
            return NotImplemented
        return (self._ordering == other._ordering
                and self._matrix == other._matrix
                and self._constants == other._constants)

    def __repr__(self) -> str:
        return (f"LinearSystem(rows={self.rows}, cols={self.cols}, "
                f"ordering={self._ordering!r})")
