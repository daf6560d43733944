"""Exception types raised by eqsystem.

Every error derives from a builtin (``IndexError`` / ``ValueError``) so
callers that already catch those keep working.
"""


class EqSystemError(Exception):
    """Base class for all eqsystem errors."""


class IndexOutOfRange(EqSystemError, IndexError):
    """A position outside ``0..size-1`` was used."""

    def __init__(self, position, size: int, what: str = "position") -> None:
        self.position = position
        self.size = size
        super().__init__(
            f"{what} {position} is out of range for size {size}"
        )


class NotAffineError(EqSystemError, ValueError):
    """The algebra adapter could not split an expression into ``c*v + rest``."""

    def __init__(self, expr, symbol) -> None:
        self.expr = expr
        self.symbol = symbol
        super().__init__(f"{expr} is not affine in {symbol}")


class ExtractionError(EqSystemError, ValueError):
    """A constraint could not be turned into a row of the linear system.

    ``index`` is the position of the offending constraint inside its
    system, ``unknown`` the symbol that triggered the failure (or ``None``).
    """

    kind = "extraction"

    def __init__(self, index: int, constraint=None, unknown=None,
                 detail: str = "") -> None:
        self.index = index
        self.constraint = constraint
        self.unknown = unknown
        self.detail = detail
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        msg = f"Constraint {self.index}"
        if self.constraint is not None:
            msg += f" ({self.constraint})"
        msg += f": {self.detail or self.kind}"
        if self.unknown is not None:
            msg += f" [unknown: {self.unknown}]"
        return msg

    def as_dict(self) -> dict:
        return {
            "kind": self.kind,
            "index": self.index,
            "unknown": None if self.unknown is None else str(self.unknown),
            "message": str(self),
        }


class NonLinearConstraint(ExtractionError):
    """The residual is not affine-linear in one of the requested unknowns."""

    kind = "nonlinear"


class DegenerateConstraint(ExtractionError):
    """The residual does not depend on any requested unknown."""

    kind = "degenerate"


class UndeclaredVariable(ExtractionError):
    """A variable-prefixed symbol is missing from the unknown ordering."""

    kind = "undeclared_variable"
