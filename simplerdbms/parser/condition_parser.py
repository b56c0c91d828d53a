"""
Condition compiler using Lark.

WHERE and CHECK clauses are stored as text. This module parses that text
with the grammar in condition.lark and transforms the parse tree into
condition AST nodes that the evaluator can run.
"""

from functools import lru_cache
from pathlib import Path

from lark import Lark, Transformer
from lark.exceptions import LarkError

from . import ast
from ..utils.exceptions import ConditionSyntaxError


class ConditionBuilder(Transformer):
    """
    Transforms a Lark parse tree into condition AST nodes.

    Each method corresponds to an aliased rule in the grammar and returns
    the appropriate AST node.
    """

    # ----- Logical -----

    def condition_or(self, args):
        return ast.LogicalCondition(left=args[0], op=ast.LogicalOp.OR, right=args[1])

    def condition_and(self, args):
        return ast.LogicalCondition(left=args[0], op=ast.LogicalOp.AND, right=args[1])

    def condition_not(self, args):
        return ast.NotCondition(operand=args[0])

    # ----- Predicates -----

    def comparison(self, args):
        left, op, right = args
        return ast.Comparison(left=left, op=op, right=right)

    def is_null(self, args):
        return ast.IsNull(operand=args[0])

    def is_not_null(self, args):
        return ast.IsNull(operand=args[0], negated=True)

    def in_list(self, args):
        return ast.InList(operand=args[0], items=args[1])

    def not_in_list(self, args):
        return ast.InList(operand=args[0], items=args[1], negated=True)

    def like(self, args):
        return ast.Like(operand=args[0], pattern=args[1])

    def not_like(self, args):
        return ast.Like(operand=args[0], pattern=args[1], negated=True)

    def expr_list(self, args):
        return list(args)

    # Comparison operators
    def op_eq(self, args):
        return ast.ComparisonOp.EQ

    def op_ne(self, args):
        return ast.ComparisonOp.NE

    def op_ne2(self, args):
        return ast.ComparisonOp.NE

    def op_lt(self, args):
        return ast.ComparisonOp.LT

    def op_gt(self, args):
        return ast.ComparisonOp.GT

    def op_lte(self, args):
        return ast.ComparisonOp.LTE

    def op_gte(self, args):
        return ast.ComparisonOp.GTE

    # ----- Arithmetic -----

    def expr_add(self, args):
        return ast.BinaryOp(left=args[0], op=ast.ArithmeticOp.ADD, right=args[1])

    def expr_sub(self, args):
        return ast.BinaryOp(left=args[0], op=ast.ArithmeticOp.SUB, right=args[1])

    def expr_mul(self, args):
        return ast.BinaryOp(left=args[0], op=ast.ArithmeticOp.MUL, right=args[1])

    def expr_div(self, args):
        return ast.BinaryOp(left=args[0], op=ast.ArithmeticOp.DIV, right=args[1])

    def expr_mod(self, args):
        return ast.BinaryOp(left=args[0], op=ast.ArithmeticOp.MOD, right=args[1])

    def expr_neg(self, args):
        operand = args[0]
        if isinstance(operand, ast.Literal) and operand.type == "NUMBER":
            return ast.Literal(value=f"-{operand.value}", type="NUMBER")
        return ast.BinaryOp(
            left=ast.Literal(value="0", type="NUMBER"),
            op=ast.ArithmeticOp.SUB,
            right=operand
        )

    # ----- Columns and functions -----

    def expr_column(self, args):
        return ast.ColumnRef(column_name=str(args[0]))

    def expr_qualified_column(self, args):
        return ast.ColumnRef(column_name=str(args[1]), table_name=str(args[0]))

    def expr_function(self, args):
        name = str(args[0]).upper()
        func_args = args[1] if len(args) > 1 else []
        return ast.FunctionCall(name=name, args=func_args)

    # ----- Literals -----

    def lit_number(self, args):
        return ast.Literal(value=str(args[0]), type="NUMBER")

    def lit_string(self, args):
        # Remove quotes
        quote = str(args[0])[0]
        value_str = str(args[0])[1:-1]
        value_str = value_str.replace("\\" + quote, quote)
        return ast.Literal(value=value_str, type="STRING")

    def lit_true(self, args):
        return ast.Literal(value="TRUE", type="BOOLEAN")

    def lit_false(self, args):
        return ast.Literal(value="FALSE", type="BOOLEAN")

    def lit_null(self, args):
        return ast.Literal(value=None, type="NULL")


_grammar_path = Path(__file__).parent / "condition.lark"
with open(_grammar_path, 'r') as f:
    _condition_parser = Lark(
        f.read(),
        start='start',
        parser='lalr'  # Fast LALR parser
    )

_builder = ConditionBuilder()


@lru_cache(maxsize=256)
def compile_condition(text: str) -> ast.Condition:
    """
    Parse condition text into a condition AST.

    Results are cached, so a CHECK evaluated for every inserted row is
    parsed once. Callers must not mutate the returned tree.

    Args:
        text: Condition text, e.g. "age >= 18 AND name IS NOT NULL"

    Returns:
        Root condition node

    Raises:
        ConditionSyntaxError: If the text is empty or not a valid condition
    """
    if not text or not text.strip():
        raise ConditionSyntaxError(text, "empty condition")
    try:
        tree = _condition_parser.parse(text)
        return _builder.transform(tree)
    except LarkError as e:
        reason = str(e).strip().splitlines()[0] if str(e).strip() else type(e).__name__
        raise ConditionSyntaxError(text, reason)
