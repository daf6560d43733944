"""
eqsystem — Symbolic equality constraints to linear systems.

Build an ``OrderedVariableSet`` with the unknown ordering, append
constraints to an ``EqualityConstraintSystem`` and call
``convert_to_linear_system`` to get ``A · u = b``.
"""

from eqsystem.algebra import (
    SympyAlgebra,
    parameter,
    parameter_vector,
    variable,
    variable_vector,
)
from eqsystem.equality import EqualityConstraint, EqualityConstraintSystem
from eqsystem.errors import (
    DegenerateConstraint,
    EqSystemError,
    ExtractionError,
    IndexOutOfRange,
    NonLinearConstraint,
    NotAffineError,
    UndeclaredVariable,
)
from eqsystem.linear_system import LinearSystem
from eqsystem.ordered_set import OrderedVariableSet
from eqsystem.settings import (
    DEFAULT_SETTINGS,
    ExtractionSettings,
    load_settings,
    save_settings,
)

__all__ = [
    "DEFAULT_SETTINGS",
    "DegenerateConstraint",
    "EqSystemError",
    "EqualityConstraint",
    "EqualityConstraintSystem",
    "ExtractionError",
    "ExtractionSettings",
    "IndexOutOfRange",
    "LinearSystem",
    "NonLinearConstraint",
    "NotAffineError",
    "OrderedVariableSet",
    "SympyAlgebra",
    "UndeclaredVariable",
    "load_settings",
    "parameter",
    "parameter_vector",
    "save_settings",
    "variable",
    "variable_vector",
]
