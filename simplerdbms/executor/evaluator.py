"""
Condition and expression evaluator.

Single source of truth for evaluating conditions against rows. Used by
SELECT, UPDATE and DELETE to filter rows and by CHECK constraints to
test values. Conditions use SQL three-valued logic: a comparison with a
NULL operand is unknown (None), and only rows whose condition is True
match.
"""

import re
from datetime import datetime
from typing import Callable, List, Mapping, Optional

from ..parser.ast import (
    Condition, Comparison, LogicalCondition, NotCondition, IsNull, InList, Like,
    ComparisonOp, LogicalOp, ArithmeticOp,
    Expr, ColumnRef, Literal, FunctionCall, BinaryOp
)
from ..storage.types import DataType, INTEGER_RANGES
from ..storage.value import Value, ValueKind
from ..utils.row_utils import get_column_value
from ..utils.exceptions import ColumnNotFoundError, UnsupportedOperationError


Resolver = Callable[[ColumnRef], Value]

# Functions that may also be written without parentheses
DYNAMIC_VALUES = ('NOW', 'CURRENT_TIMESTAMP', 'CURRENT_DATE', 'CURRENT_TIME')


def mapping_resolver(values: Mapping[str, Value]) -> Resolver:
    """
    Build a resolver that looks column references up in a mapping.

    Args:
        values: Lower-case column name (or "table.column") to Value

    Returns:
        Callable that resolves a ColumnRef or raises ColumnNotFoundError
    """
    def resolve(ref: ColumnRef) -> Value:
        try:
            return get_column_value(values, ref.column_name, ref.table_name)
        except KeyError:
            raise ColumnNotFoundError(ref.column_name, ref.table_name)
    return resolve


def current_value(name: str) -> Optional[Value]:
    """
    Value of a clock function such as NOW() or CURRENT_DATE.

    Returns:
        The current date/time Value, or None if ``name`` is not a clock function
    """
    name = name.upper()
    now = datetime.now().replace(microsecond=0)
    if name in ('NOW', 'CURRENT_TIMESTAMP'):
        return Value(DataType.DATETIME, now)
    if name == 'CURRENT_DATE':
        return Value(DataType.DATE, now.date())
    if name == 'CURRENT_TIME':
        return Value(DataType.TIME, now.time())
    return None


def literal_value(literal: Literal) -> Value:
    """Convert a literal AST node to a typed Value."""
    if literal.type == "NULL" or literal.value is None:
        return Value.null()
    if literal.type == "BOOLEAN":
        return Value(DataType.BOOL, str(literal.value).upper() == "TRUE")
    if literal.type == "NUMBER":
        text = str(literal.value)
        if any(ch in text for ch in '.eE'):
            try:
                return Value(DataType.DOUBLE, float(text))
            except ValueError:
                return Value(DataType.VARCHAR, text)
        number = int(text)
        low, high = INTEGER_RANGES[DataType.INT]
        return Value(DataType.INT if low <= number <= high else DataType.BIGINT, number)
    return Value(DataType.VARCHAR, str(literal.value))


def like_to_regex(pattern: str) -> 're.Pattern':
    """Translate a LIKE pattern (% and _ wildcards) to a compiled regex."""
    parts = []
    for ch in pattern:
        if ch == '%':
            parts.append('.*')
        elif ch == '_':
            parts.append('.')
        else:
            parts.append(re.escape(ch))
    return re.compile(''.join(parts), re.DOTALL)


class ConditionEvaluator:
    """
    Evaluates conditions and expressions over typed values.

    Column references are resolved through a caller-supplied resolver,
    so the same evaluator serves row filtering and CHECK constraints.
    """

    def evaluate(self, condition: Condition, resolver: Resolver) -> Optional[bool]:
        """
        Evaluate a condition.

        Args:
            condition: Condition AST node
            resolver: Maps column references to Values

        Returns:
            True, False, or None when the result is unknown (NULL involved)

        Raises:
            ColumnNotFoundError: If a referenced column doesn't exist
        """
        if isinstance(condition, Comparison):
            return self._evaluate_comparison(condition, resolver)
        elif isinstance(condition, LogicalCondition):
            return self._evaluate_logical(condition, resolver)
        elif isinstance(condition, NotCondition):
            result = self.evaluate(condition.operand, resolver)
            return None if result is None else not result
        elif isinstance(condition, IsNull):
            is_null = self.evaluate_expression(condition.operand, resolver).is_null
            return not is_null if condition.negated else is_null
        elif isinstance(condition, InList):
            return self._evaluate_in(condition, resolver)
        elif isinstance(condition, Like):
            return self._evaluate_like(condition, resolver)
        else:
            raise ValueError(f"Unknown condition type: {type(condition)}")

    def matches(self, condition: Optional[Condition], resolver: Resolver) -> bool:
        """True only when the condition is absent or evaluates to True."""
        if condition is None:
            return True
        return self.evaluate(condition, resolver) is True

    def _evaluate_comparison(self, comp: Comparison, resolver: Resolver) -> Optional[bool]:
        left = self.evaluate_expression(comp.left, resolver)
        right = self.evaluate_expression(comp.right, resolver)

        if left.is_null or right.is_null:
            return None

        left, right = self._align(left, right)
        result = left.compare(right)

        if comp.op == ComparisonOp.EQ:
            return result == 0
        elif comp.op == ComparisonOp.NE:
            return result != 0
        elif comp.op == ComparisonOp.LT:
            return result < 0
        elif comp.op == ComparisonOp.GT:
            return result > 0
        elif comp.op == ComparisonOp.LTE:
            return result <= 0
        elif comp.op == ComparisonOp.GTE:
            return result >= 0
        else:
            raise ValueError(f"Unknown comparison operator: {comp.op}")

    def _evaluate_logical(self, logic: LogicalCondition, resolver: Resolver) -> Optional[bool]:
        left_result = self.evaluate(logic.left, resolver)

        # Short-circuit evaluation
        if logic.op == LogicalOp.AND:
            if left_result is False:
                return False
            right_result = self.evaluate(logic.right, resolver)
            if right_result is False:
                return False
            if left_result is None or right_result is None:
                return None
            return True
        elif logic.op == LogicalOp.OR:
            if left_result is True:
                return True
            right_result = self.evaluate(logic.right, resolver)
            if right_result is True:
                return True
            if left_result is None or right_result is None:
                return None
            return False
        else:
            raise ValueError(f"Unknown logical operator: {logic.op}")

    def _evaluate_in(self, condition: InList, resolver: Resolver) -> Optional[bool]:
        operand = self.evaluate_expression(condition.operand, resolver)
        if operand.is_null:
            return None
        saw_null = False
        found = False
        for item in condition.items:
            value = self.evaluate_expression(item, resolver)
            if value.is_null:
                saw_null = True
                continue
            left, right = self._align(operand, value)
            if left.compare(right) == 0:
                found = True
                break
        if not found and saw_null:
            return None
        return not found if condition.negated else found

    def _evaluate_like(self, condition: Like, resolver: Resolver) -> Optional[bool]:
        operand = self.evaluate_expression(condition.operand, resolver)
        pattern = self.evaluate_expression(condition.pattern, resolver)
        if operand.is_null or pattern.is_null:
            return None
        matched = like_to_regex(pattern.to_string()).fullmatch(operand.to_string()) is not None
        return not matched if condition.negated else matched

    def _align(self, left: Value, right: Value):
        """
        Bring two non-null operands to comparable kinds.

        Text compared with a typed value is parsed as that type when it
        can be, so '2024-01-05' compares as a DATE against a DATE column
        and '10' compares numerically against an INT column.
        """
        left_kind, right_kind = left.kind, right.kind
        if left_kind == right_kind:
            return left, right
        if left_kind == ValueKind.TEXT:
            converted = Value.from_string(right.data_type, left.data)
            if not converted.is_null:
                return converted, right
        elif right_kind == ValueKind.TEXT:
            converted = Value.from_string(left.data_type, right.data)
            if not converted.is_null:
                return left, converted
        if ValueKind.BOOL in (left_kind, right_kind):
            return Value(DataType.BOOL, left.to_bool()), Value(DataType.BOOL, right.to_bool())
        return left, right

    # ----- Expressions -----

    def evaluate_expression(self, expr: Expr, resolver: Resolver) -> Value:
        """
        Evaluate an expression to a Value.

        Raises:
            ColumnNotFoundError: If a referenced column doesn't exist
            UnsupportedOperationError: For unknown functions
        """
        if isinstance(expr, Literal):
            return literal_value(expr)

        elif isinstance(expr, ColumnRef):
            try:
                return resolver(expr)
            except ColumnNotFoundError:
                if expr.table_name is None and expr.column_name.upper() in DYNAMIC_VALUES:
                    return current_value(expr.column_name)
                raise

        elif isinstance(expr, BinaryOp):
            left = self.evaluate_expression(expr.left, resolver)
            right = self.evaluate_expression(expr.right, resolver)
            return self._apply_arithmetic(expr.op, left, right)

        elif isinstance(expr, FunctionCall):
            args = [self.evaluate_expression(arg, resolver) for arg in expr.args]
            return self._call_function(expr.name, args)

        else:
            raise ValueError(f"Unknown expression type: {type(expr)}")

    def _apply_arithmetic(self, op: ArithmeticOp, left: Value, right: Value) -> Value:
        left, right = self._align(left, right) if not (left.is_null or right.is_null) else (left, right)
        if op == ArithmeticOp.ADD:
            return left + right
        elif op == ArithmeticOp.SUB:
            return left - right
        elif op == ArithmeticOp.MUL:
            return left * right
        elif op == ArithmeticOp.DIV:
            return left / right
        elif op == ArithmeticOp.MOD:
            return left % right
        else:
            raise ValueError(f"Unknown arithmetic operator: {op}")

    def _call_function(self, name: str, args: List[Value]) -> Value:
        name = name.upper()
        clock = current_value(name)
        if clock is not None:
            return clock

        if name == 'UPPER' and len(args) == 1:
            return args[0].upper()
        if name == 'LOWER' and len(args) == 1:
            return args[0].lower()
        if name in ('LENGTH', 'LEN') and len(args) == 1:
            return args[0].length()
        if name in ('SUBSTRING', 'SUBSTR') and len(args) in (2, 3):
            start = args[1].to_int()
            length = args[2].to_int() if len(args) == 3 else None
            if start is None:
                return Value(DataType.VARCHAR)
            return args[0].substring(start, length)
        if name == 'CONCAT' and args:
            result = args[0]
            for arg in args[1:]:
                result = result.concat(arg)
            return result
        if name == 'ABS' and len(args) == 1:
            if args[0].kind in (ValueKind.INTEGER, ValueKind.FLOAT):
                return Value(args[0].data_type, abs(args[0].data))
            return Value(args[0].data_type)
        if name == 'COALESCE' and args:
            for arg in args:
                if not arg.is_null:
                    return arg
            return args[-1]

        raise UnsupportedOperationError(f"Function {name} with {len(args)} argument(s)")
