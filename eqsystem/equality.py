"""Equality constraints and their conversion to a linear system.

Each constraint ``L = R`` becomes one row of ``A · u = b`` where ``u`` is a
caller-chosen ordering of unknowns. Every other symbol is treated as a
parameter and stays symbolic inside ``b`` (and ``A``, if it multiplies an
unknown).
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime

import sympy
from sympy import ImmutableMatrix, S, sympify
from sympy.logic.boolalg import BooleanAtom

from eqsystem.algebra import SympyAlgebra, is_parameter, is_variable
from eqsystem.errors import (
    DegenerateConstraint,
    ExtractionError,
    IndexOutOfRange,
    NonLinearConstraint,
    NotAffineError,
    UndeclaredVariable,
)
from eqsystem.linear_system import LinearSystem
from eqsystem.ordered_set import OrderedVariableSet
from eqsystem.settings import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EqualityConstraint:
    """The proposition ``left == right``. Stored exactly as given."""

    left: object
    right: object

    def __post_init__(self) -> None:
        object.__setattr__(self, "left", sympify(self.left))
        object.__setattr__(self, "right", sympify(self.right))

    def residual(self):
        return self.left - self.right

    def __str__(self) -> str:
        return f"{self.left} = {self.right}"


class EqualityConstraintSystem:
    """Ordered collection of equality constraints (order = row order)."""

    def __init__(self, settings=None, algebra=None) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.algebra = algebra or SympyAlgebra(self.settings)
        self._constraints = []

    # ── Building ────────────────────────────────────────────────────────

    def append_constraint(self, left, right=None) -> EqualityConstraint:
        """Append ``left == right``.

        *left* may also be a SymPy ``Eq`` (then *right* must be omitted) or
        a bare expression, which is read as ``left == 0``.
        """
        if isinstance(left, (bool, BooleanAtom)):
            raise ValueError(
                f"Constraint evaluated to {left} before it could be stored. "
                f"Pass the two sides separately or build Eq(..., evaluate=False)."
            )
        if isinstance(left, sympy.Equality):
            if right is not None:
                raise ValueError("Pass either an Eq or two sides, not both.")
            constraint = EqualityConstraint(left.lhs, left.rhs)
        elif isinstance(left, sympy.core.relational.Relational):
            raise ValueError(f"Only equalities are supported, got: {left}")
        else:
            constraint = EqualityConstraint(left, S.Zero if right is None else right)
        self._constraints.append(constraint)
        return constraint

    # ── Read access ─────────────────────────────────────────────────────

    def constraint(self, index: int) -> EqualityConstraint:
        if not 0 <= index < len(self._constraints):
            raise IndexOutOfRange(index, len(self._constraints), "constraint index")
        return self._constraints[index]

    def num_constraints(self) -> int:
        return len(self._constraints)

    def __len__(self) -> int:
        return len(self._constraints)

    def __iter__(self):
        return iter(self._constraints)

    def __getitem__(self, index: int) -> EqualityConstraint:
        return self.constraint(index)

    # ── Symbol catalogue ────────────────────────────────────────────────

    def symbols(self) -> OrderedVariableSet:
        """Every symbol used, in first-appearance order (left side first)."""
        found = OrderedVariableSet()
        for c in self._constraints:
            found.union_with(self.algebra.symbols_of(c.left))
            found.union_with(self.algebra.symbols_of(c.right))
        return found

    def variables(self) -> OrderedVariableSet:
        return OrderedVariableSet(
            s for s in self.symbols() if is_variable(s, self.settings))

    def parameters(self) -> OrderedVariableSet:
        return OrderedVariableSet(
            s for s in self.symbols() if is_parameter(s, self.settings))

    # ── Extraction ──────────────────────────────────────────────────────

    def convert_to_linear_system(self, ordering: OrderedVariableSet) -> LinearSystem:
        """Build ``A · u = b`` with ``u`` = *ordering*.

        Rows are sign-normalised so that the first nonzero coefficient is
        positive. Raises NonLinearConstraint, DegenerateConstraint or
        UndeclaredVariable for the first constraint that cannot be
        expressed as a row.
        """
        t_start = time.perf_counter()
        unknowns = ordering.to_list()
        unknown_set = set(unknowns)

        coefficients = []
        constants = []
        for index, constraint in enumerate(self._constraints):
            if self.settings.require_declared_variables:
                self._check_declared(index, constraint, ordering)
            row, constant = self._extract_row(index, constraint, unknowns, unknown_set)
            coefficients.extend(row)
            constants.append(constant)

        n_rows, n_cols = len(self._constraints), len(unknowns)
        system = LinearSystem(
            ImmutableMatrix(n_rows, n_cols, coefficients),
            ImmutableMatrix(n_rows, 1, constants),
            ordering,
        )
        runtime_ms = round((time.perf_counter() - t_start) * 1000, 2)
        logger.info(f"Extracted {n_rows}x{n_cols} linear system in {runtime_ms} ms")
        return system

    def try_convert_to_linear_system(self, ordering: OrderedVariableSet) -> dict:
        """Like :meth:`convert_to_linear_system` but returns a result dict.

        ``{"ok", "system", "error", "summary"}``; ``error`` is ``None`` on
        success, otherwise a dict naming the failing constraint and unknown.
        """
        t_start = time.perf_counter()
        system = None
        error = None
        try:
            system = self.convert_to_linear_system(ordering)
        except ExtractionError as e:
            error = e.as_dict()

        runtime_ms = round((time.perf_counter() - t_start) * 1000, 2)
        return {
            "ok": error is None,
            "system": system,
            "error": error,
            "summary": {
                "rows": len(self._constraints),
                "cols": ordering.size(),
                "runtime_ms": runtime_ms,
                "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                "library": f"SymPy {sympy.__version__}",
            },
        }

    def _check_declared(self, index, constraint, ordering) -> None:
        for side in (constraint.left, constraint.right):
            for sym in self.algebra.symbols_of(side):
                if is_variable(sym, self.settings) and not ordering.contains(sym):
                    raise UndeclaredVariable(
                        index, constraint, sym,
                        "variable is missing from the unknown ordering",
                    )

    def _extract_row(self, index, constraint, unknowns, unknown_set):
        algebra = self.algebra
        residual = constraint.residual()

        row = []
        for u in unknowns:
            try:
                coef = algebra.linear_coefficient(residual, u)
            except NotAffineError as e:
                raise NonLinearConstraint(
                    index, constraint, u, f"not affine-linear in {u}",
                ) from e
            coupled = [s for s in algebra.symbols_of(coef) if s in unknown_set]
            if coupled:
                names = ", ".join(str(s) for s in coupled)
                raise NonLinearConstraint(
                    index, constraint, u,
                    f"coefficient of {u} depends on unknown(s) {names}",
                )
            row.append(coef)

        constant = -algebra.zero_substitute(residual, unknowns)

        lead = next((i for i, coef in enumerate(row) if not algebra.is_zero(coef)), None)
        if lead is None:
            raise DegenerateConstraint(
                index, constraint, None,
                "does not involve any of the requested unknowns",
            )
        if self._should_flip(index, row[lead]):
            logger.debug(f"Constraint {index}: negating row, leading coefficient {row[lead]}")
            row = [-coef for coef in row]
            constant = -constant

        logger.debug(f"Constraint {index}: row={row} constant={constant}")
        return row, constant

    def _should_flip(self, index: int, leading) -> bool:
        sign = self.algebra.sign(leading)
        if sign is not None:
            return sign < 0
        if self.settings.parametric_sign == "extract_minus":
            return self.algebra.extracts_minus(leading)
        logger.warning(
            f"Constraint {index}: sign of leading coefficient {leading} is "
            f"undecidable, row left as computed"
        )
        return False
