"""Tests for equality constraints and linear-system extraction."""

import pytest
from sympy import Eq, I, Rational, S, cos, sin, symbols, ImmutableMatrix

from eqsystem.algebra import parameter, variable
from eqsystem.equality import EqualityConstraint, EqualityConstraintSystem
from eqsystem.errors import (
    DegenerateConstraint,
    ExtractionError,
    IndexOutOfRange,
    NonLinearConstraint,
    UndeclaredVariable,
)
from eqsystem.ordered_set import OrderedVariableSet
from eqsystem.settings import ExtractionSettings

x, y, z, a, b = symbols("x y z a b")


def _zyx():
    return OrderedVariableSet([z, y, x])


def _system(*constraints, settings=None):
    sys_ = EqualityConstraintSystem(settings=settings)
    for c in constraints:
        sys_.append_constraint(c)
    return sys_


# ── Building constraints ────────────────────────────────────────────────

class TestAppendConstraint:
    def test_eq_is_split_into_sides(self):
        s = EqualityConstraintSystem()
        c = s.append_constraint(Eq(x, 3 * y + 4))
        assert c.left == x
        assert c.right == 3 * y + 4
        assert len(s) == 1

    def test_two_sides(self):
        s = EqualityConstraintSystem()
        c = s.append_constraint(x + 1, 2)
        assert c == EqualityConstraint(x + 1, 2)
        assert c.right == S(2)

    def test_bare_expression_means_equal_to_zero(self):
        s = EqualityConstraintSystem()
        c = s.append_constraint(x - y)
        assert c.right == 0
        assert c.residual() == x - y

    def test_evaluated_boolean_is_rejected(self):
        s = EqualityConstraintSystem()
        with pytest.raises(ValueError, match="evaluated to True"):
            s.append_constraint(Eq(x, x))
        with pytest.raises(ValueError):
            s.append_constraint(x == y)
        assert len(s) == 0

    def test_eq_plus_right_side_is_rejected(self):
        with pytest.raises(ValueError, match="not both"):
            EqualityConstraintSystem().append_constraint(Eq(x, 1), 2)

    def test_inequality_is_rejected(self):
        with pytest.raises(ValueError, match="Only equalities"):
            EqualityConstraintSystem().append_constraint(x < 1)

    def test_constraint_is_immutable(self):
        c = EqualityConstraint(x, y)
        with pytest.raises(AttributeError):
            c.left = z

    def test_indexed_access(self):
        s = _system(Eq(x, 1), Eq(y, 2))
        assert s.constraint(1).left == y
        assert s[0].right == 1
        assert [c.left for c in s] == [x, y]
        with pytest.raises(IndexOutOfRange):
            s.constraint(2)


# ── Symbol catalogue ────────────────────────────────────────────────────

def test_symbols_are_collected_in_first_appearance_order() -> None:
    s = _system(Eq(x, 3 * y + 4), Eq((z + a) / 2, 7), Eq(y + x, a))
    found = s.symbols()
    assert found.to_list()[:2] == [x, y]
    assert set(found) == {x, y, z, a}
    assert found.size() == 4
    assert found.is_consistent()


def test_variables_and_parameters_follow_name_prefixes() -> None:
    vx, vy = variable("x"), variable("y")
    pa = parameter("a")
    s = _system(Eq(vx + pa, 1), Eq(vy, 2 * vx + z))
    assert str(vx) == "$v_x"
    assert str(pa) == "$p_a"
    assert s.variables().to_list() == [vx, vy]
    assert s.parameters().to_list() == [pa]
    # Unprefixed symbols are neither
    assert z in s.symbols()
    assert z not in s.variables() and z not in s.parameters()


# ── Extraction ──────────────────────────────────────────────────────────

class TestConvertToLinearSystem:
    def test_reference_example(self):
        s = _system(Eq(x, 3 * y + 4), Eq((z + a) / 2, 7))
        system = s.convert_to_linear_system(_zyx())

        assert system.rows == 2
        assert system.cols == 3
        assert system.matrix == ImmutableMatrix([[0, 3, -1], [Rational(1, 2), 0, 0]])
        assert system.constants == ImmutableMatrix([[-4], [7 - a / 2]])
        assert system.coefficient(0, 1) == 3
        assert system.constant(1) == 7 - a / 2

    def test_prefixed_symbols_like_the_mpc_use_case(self):
        vx, vy, vz = variable("x"), variable("y"), variable("z")
        pa = parameter("a")
        s = _system(Eq(vx, 3 * vy + 4), Eq((vz + pa) / 2, 7))
        system = s.convert_to_linear_system(OrderedVariableSet([vz, vy, vx]))
        assert system.matrix == ImmutableMatrix([[0, 3, -1], [Rational(1, 2), 0, 0]])
        assert system.constants == ImmutableMatrix([[-4], [7 - pa / 2]])

    @pytest.mark.parametrize(
        "left,right",
        [
            (x, 3 * y + 4),
            ((z + a) / 2, 7),
            (2 * x - y, a * b + 1),
            (-x, y),
            (a * x + y, 0),
            (-a * x, b),
        ],
    )
    def test_swapped_sides_give_identical_rows(self, left, right):
        forward = _system(Eq(left, right)).convert_to_linear_system(_zyx())
        backward = _system(Eq(right, left)).convert_to_linear_system(_zyx())
        assert forward == backward

    def test_first_nonzero_coefficient_is_positive(self):
        s = _system(Eq(-2 * y + x, 5), Eq(-x, 1))
        system = s.convert_to_linear_system(_zyx())
        assert system.coefficient(0, 1) == 2
        assert system.coefficient(0, 2) == -1
        assert system.constant(0) == -5
        assert system.coefficient(1, 2) == 1
        assert system.constant(1) == -1

    def test_row_order_follows_insertion_order(self):
        s = _system(Eq(y, 1), Eq(x, 2))
        system = s.convert_to_linear_system(OrderedVariableSet([x, y]))
        assert system.matrix == ImmutableMatrix([[0, 1], [1, 0]])
        assert system.constants == ImmutableMatrix([[1], [2]])

    def test_parameter_coefficients_stay_symbolic(self):
        s = _system(Eq(a * x + b * y, sin(a)))
        system = s.convert_to_linear_system(OrderedVariableSet([x, y]))
        assert system.coefficient(0, 0) == a
        assert system.coefficient(0, 1) == b
        assert system.constant(0) == sin(a)

    def test_inputs_are_not_mutated(self):
        ordering = _zyx()
        s = _system(Eq(x, 3 * y + 4))
        s.convert_to_linear_system(ordering)
        assert ordering.to_list() == [z, y, x]
        assert len(s) == 1
        assert s[0].left == x

    def test_ordering_is_copied_into_result(self):
        ordering = _zyx()
        system = _system(Eq(x, 1)).convert_to_linear_system(ordering)
        ordering.append(a)
        assert system.ordering.to_list() == [z, y, x]

    def test_empty_system(self):
        system = EqualityConstraintSystem().convert_to_linear_system(_zyx())
        assert system.rows == 0
        assert system.cols == 3


class TestExtractionFailures:
    def test_product_of_unknowns_is_nonlinear(self):
        s = _system(Eq(x, 1), Eq(x * y, 1))
        with pytest.raises(NonLinearConstraint) as excinfo:
            s.convert_to_linear_system(_zyx())
        assert excinfo.value.index == 1
        assert excinfo.value.unknown in (x, y)
        assert "Constraint 1" in str(excinfo.value)

    @pytest.mark.parametrize(
        "expr",
        [x ** 2 - 4, sin(x), 1 / x + 1, x * cos(x)],
    )
    def test_nonlinear_in_single_unknown(self, expr):
        s = _system(Eq(expr, 0))
        with pytest.raises(NonLinearConstraint) as excinfo:
            s.convert_to_linear_system(OrderedVariableSet([x]))
        assert excinfo.value.unknown == x
        assert excinfo.value.index == 0

    def test_product_with_parameter_is_fine(self):
        s = _system(Eq(x * a, 1))
        system = s.convert_to_linear_system(OrderedVariableSet([x]))
        assert system.coefficient(0, 0) == a

    def test_degenerate_constraint(self):
        s = _system(Eq(x, 1), Eq(a, 3))
        with pytest.raises(DegenerateConstraint) as excinfo:
            s.convert_to_linear_system(OrderedVariableSet([x]))
        assert excinfo.value.index == 1
        assert excinfo.value.unknown is None

    def test_cancelled_unknown_is_degenerate(self):
        s = _system(Eq(x + y, x + 2))
        with pytest.raises(DegenerateConstraint):
            s.convert_to_linear_system(OrderedVariableSet([x]))

    def test_empty_ordering_is_degenerate(self):
        s = _system(Eq(x, 1))
        with pytest.raises(DegenerateConstraint):
            s.convert_to_linear_system(OrderedVariableSet())

    def test_errors_are_value_errors(self):
        s = _system(Eq(x ** 2, 1))
        with pytest.raises(ValueError):
            s.convert_to_linear_system(OrderedVariableSet([x]))
        with pytest.raises(ExtractionError):
            s.convert_to_linear_system(OrderedVariableSet([x]))

    def test_undeclared_variable(self):
        vx, vy = variable("x"), variable("y")
        s = _system(Eq(vx, 1), Eq(vx + vy, 1))
        with pytest.raises(UndeclaredVariable) as excinfo:
            s.convert_to_linear_system(OrderedVariableSet([vx]))
        assert excinfo.value.index == 1
        assert excinfo.value.unknown == vy

    def test_errors_are_reported_in_constraint_order(self):
        q = variable("q")
        s = _system(Eq(x * y, 1), Eq(q + x, 1))
        with pytest.raises(NonLinearConstraint) as excinfo:
            s.convert_to_linear_system(OrderedVariableSet([x, y]))
        assert excinfo.value.index == 0

    def test_undeclared_variable_check_can_be_disabled(self):
        vx, vy = variable("x"), variable("y")
        settings = ExtractionSettings(require_declared_variables=False)
        s = _system(Eq(vx + vy, 1), settings=settings)
        system = s.convert_to_linear_system(OrderedVariableSet([vx]))
        assert system.coefficient(0, 0) == 1
        assert system.constant(0) == 1 - vy


# ── Parametric leading coefficients ─────────────────────────────────────

def test_parametric_leading_coefficient_leave_rule() -> None:
    settings = ExtractionSettings(parametric_sign="leave")
    s = _system(Eq(b, a * x), settings=settings)
    system = s.convert_to_linear_system(OrderedVariableSet([x]))
    assert system.coefficient(0, 0) == -a
    assert system.constant(0) == -b


def test_parametric_leading_coefficient_extract_minus_rule() -> None:
    s = _system(Eq(b, a * x))
    system = s.convert_to_linear_system(OrderedVariableSet([x]))
    assert system.coefficient(0, 0) == a
    assert system.constant(0) == b


def test_complex_leading_coefficient_is_canonicalised() -> None:
    forward = _system(Eq(I * x, 1)).convert_to_linear_system(OrderedVariableSet([x]))
    backward = _system(Eq(1, I * x)).convert_to_linear_system(OrderedVariableSet([x]))
    assert forward == backward


# ── Result-dict form ────────────────────────────────────────────────────

def test_try_convert_success() -> None:
    s = _system(Eq(x, 3 * y + 4), Eq((z + a) / 2, 7))
    result = s.try_convert_to_linear_system(_zyx())
    assert result["ok"] is True
    assert result["error"] is None
    assert result["system"].rows == 2
    summary = result["summary"]
    assert summary["rows"] == 2 and summary["cols"] == 3
    assert isinstance(summary["runtime_ms"], (int, float)) and summary["runtime_ms"] >= 0
    assert summary["library"].startswith("SymPy")


def test_try_convert_failure_reports_constraint_and_unknown() -> None:
    s = _system(Eq(x, 1), Eq(x ** 2, y))
    result = s.try_convert_to_linear_system(OrderedVariableSet([x, y]))
    assert result["ok"] is False
    assert result["system"] is None
    error = result["error"]
    assert error["kind"] == "nonlinear"
    assert error["index"] == 1
    assert error["unknown"] == "x"
    assert "Constraint 1" in error["message"]
