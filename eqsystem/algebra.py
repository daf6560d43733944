"""SymPy adapter used by the extraction algorithm.

The rest of the package never calls SymPy's calculus or substitution
machinery directly; it goes through :class:`SympyAlgebra`, which exposes
the handful of primitives the linear extraction needs. Any object with the
same methods can be passed in its place.
"""

import sympy
from sympy import S, Symbol, expand, preorder_traversal

from eqsystem.errors import NotAffineError
from eqsystem.settings import DEFAULT_SETTINGS


# ── Symbol construction ─────────────────────────────────────────────────

def variable(name: str, settings=None) -> Symbol:
    """Return a decision-variable symbol (``$v_<name>`` by default)."""
    settings = settings or DEFAULT_SETTINGS
    return Symbol(settings.variable_prefix + name)


def parameter(name: str, settings=None) -> Symbol:
    """Return a parameter symbol (``$p_<name>`` by default)."""
    settings = settings or DEFAULT_SETTINGS
    return Symbol(settings.parameter_prefix + name)


def variable_vector(base_name: str, num: int, settings=None) -> list:
    return [variable(f"{base_name}{i}", settings) for i in range(num)]


def parameter_vector(base_name: str, num: int, settings=None) -> list:
    return [parameter(f"{base_name}{i}", settings) for i in range(num)]


def is_variable(sym, settings=None) -> bool:
    settings = settings or DEFAULT_SETTINGS
    return isinstance(sym, Symbol) and sym.name.startswith(settings.variable_prefix)


def is_parameter(sym, settings=None) -> bool:
    settings = settings or DEFAULT_SETTINGS
    return isinstance(sym, Symbol) and sym.name.startswith(settings.parameter_prefix)


# ── Extraction primitives ───────────────────────────────────────────────

class SympyAlgebra:
    """Linear-coefficient / zero-substitution primitives backed by SymPy."""

    def __init__(self, settings=None) -> None:
        self.settings = settings or DEFAULT_SETTINGS

    def _finish(self, expr):
        return expand(expr) if self.settings.expand_entries else expr

    def linear_coefficient(self, expr, symbol):
        """Return ``c`` such that ``expr == c*symbol + rest`` with ``c``, ``rest``
        free of *symbol*.

        Raises NotAffineError when the derivative still depends on *symbol*
        (powers, products with itself, functions of it, 1/symbol, ...).
        """
        coef = sympy.diff(expr, symbol)
        if symbol in coef.free_symbols:
            raise NotAffineError(expr, symbol)
        return self._finish(coef)

    def zero_substitute(self, expr, symbols):
        """*expr* with every symbol of *symbols* set to 0; others untouched."""
        zeros = {sym: S.Zero for sym in symbols}
        if not zeros:
            return self._finish(expr)
        return self._finish(expr.subs(zeros, simultaneous=True))

    def is_zero(self, expr) -> bool:
        return expand(expr).is_zero is True

    def sign(self, expr):
        """+1 / -1 for real numeric values, ``None`` when undecidable."""
        expr = sympy.sympify(expr)
        if not expr.is_number or expr.is_extended_real is not True:
            return None
        if expr.is_positive:
            return 1
        if expr.is_negative:
            return -1
        return None

    def extracts_minus(self, expr) -> bool:
        """Canonical sign test for symbolic expressions.

        For a nonzero ``e`` exactly one of ``e`` / ``-e`` extracts a minus
        sign, which makes it usable as a reproducible sign convention.
        """
        return bool(expand(expr).could_extract_minus_sign())

    def symbols_of(self, expr) -> list:
        """Symbols of *expr* in first-appearance (pre-order) order."""
        seen = []
        for node in preorder_traversal(expr):
            if isinstance(node, Symbol) and node not in seen:
                seen.append(node)
        return seen
