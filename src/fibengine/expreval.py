import ast
import operator as op
import re

from fibengine.utility import InvalidInput, UserInputError

# ---- simple number parsing helpers ----
_THIN_SPACES = ("\u2009", "\u202F", "\u00A0")  # thin, narrow no-break, no-break
_SEP_CLASS = r"[ ,._\u00A0\u2009\u202F]"      # spaces/commas/dots/underscores & NBSP variants
_GROUPED_RE = re.compile(rf"^[+-]?\d{{1,3}}(?:{_SEP_CLASS}\d{{3}})+$")
_RANGE_RE = re.compile(r"^\s*(.+?)\s*(?:\.\.|:)\s*(.+?)\s*$")

# ---- allowed operators (safe subset) ----
_ALLOWED_BINOPS = {
    ast.Add:      op.add,
    ast.Sub:      op.sub,
    ast.Mult:     op.mul,
    ast.FloorDiv: op.floordiv,
    ast.Mod:      op.mod,
    ast.Pow:      op.pow,
    ast.LShift:   op.lshift,
    ast.RShift:   op.rshift,
}
_ALLOWED_UNARYOPS = {
    ast.UAdd: op.pos,
    ast.USub: op.neg,
}

_MAX_NODES = 64
# Far above any servable index; keeps "9**9**9" from hanging the prompt.
_MAX_RESULT_BITS = 4096

_SCI_NOTATION_TOKEN = re.compile(
    r"""
    (?<![\w.])          # not immediately after a word char or dot
    (\d+)               # mantissa (digits)
    [eE]
    (\+?\d+)            # exponent (non-negative)
    (?![\w.])           # not immediately before a word char or dot
    """,
    re.VERBOSE,
)


class _IntExprError(Exception):
    pass


def _rewrite_scientific_notation(expr: str) -> str:
    """1e3 -> (1)*10**(3); negative exponents are left for the evaluator to reject."""
    return _SCI_NOTATION_TOKEN.sub(lambda m: f"({m.group(1)})*10**({int(m.group(2))})", expr)


def _eval_int_expr(expr: str) -> int:
    """
    Evaluate a *safe* integer expression.

    Allowed: integers (incl. underscores), parentheses, + - * // % ** << >>
    and unary +/-. Anything else (names, calls, floats) is rejected.
    """
    expr = _rewrite_scientific_notation(expr)
    try:
        tree = ast.parse(expr, mode="eval")
    except SyntaxError as e:
        raise _IntExprError("invalid integer expression") from e

    if sum(1 for _ in ast.walk(tree)) > _MAX_NODES:
        raise _IntExprError("expression too large")

    def _eval(node) -> int:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, int):
                raise _IntExprError("only integers are allowed")
            return node.value

        if isinstance(node, ast.UnaryOp) and type(node.op) in _ALLOWED_UNARYOPS:
            return _ALLOWED_UNARYOPS[type(node.op)](_eval(node.operand))

        if isinstance(node, ast.BinOp) and type(node.op) in _ALLOWED_BINOPS:
            left = _eval(node.left)
            right = _eval(node.right)
            if isinstance(node.op, ast.Pow):
                if right < 0:
                    raise UserInputError("negative exponents are not allowed in an index")
                if abs(left) > 1 and left.bit_length() * right > _MAX_RESULT_BITS:
                    raise UserInputError(f"index expression too large: {left}**{right}")
            if isinstance(node.op, ast.LShift) and left and left.bit_length() + right > _MAX_RESULT_BITS:
                raise UserInputError(f"index expression too large: {left}<<{right}")
            if isinstance(node.op, (ast.LShift, ast.RShift)) and right < 0:
                raise _IntExprError("negative shift count")
            if isinstance(node.op, (ast.FloorDiv, ast.Mod)) and right == 0:
                raise _IntExprError("division by zero")
            return _ALLOWED_BINOPS[type(node.op)](left, right)

        raise _IntExprError(f"unsupported syntax: {type(node).__name__}")

    return _eval(tree.body)


def _parse_int_literal(text: str) -> int | None:
    """Accepts: 42  -7  1_000  0xFF  0b1010  1.000.000  1 000 000
       Rejects: 3.14  1,23  12.34.56  0xG1"""
    s = text.strip()
    if not s:
        return None

    for ch in _THIN_SPACES:
        s = s.replace(ch, " ")

    if s.lower().startswith(("0x", "0b", "0o")):
        try:
            return int(s.replace("_", ""), 0)
        except ValueError:
            return None

    if re.fullmatch(r"[+-]?\d[\d_]*", s):
        return int(s.replace("_", ""))

    if _GROUPED_RE.match(s):
        return int(re.sub(_SEP_CLASS, "", s))

    return None


# ---- public entry points ----
def parse_int_or_expr(s: str) -> int | None:
    """Integer value of a literal or safe expression, or None if s is neither."""
    if s is None:
        return None
    n = _parse_int_literal(s)
    if n is not None:
        return n
    try:
        return _eval_int_expr(s.strip())
    except _IntExprError:
        return None


def parse_index(s: str) -> int:
    """Like parse_int_or_expr, but the result must be a usable index."""
    n = parse_int_or_expr(s)
    if n is None:
        raise InvalidInput(f"Invalid input: '{s}' is not an integer or integer expression.")
    if n < 0:
        raise InvalidInput(f"Invalid input: index must be non-negative, got {n}.")
    return n


def parse_range(s: str) -> tuple[int, int]:
    """'a..b' (or 'a:b') -> (a, b); a single index k -> (k, k)."""
    m = _RANGE_RE.match(s or "")
    if m:
        a, b = parse_int_or_expr(m.group(1)), parse_int_or_expr(m.group(2))
        if a is not None and b is not None:
            if a < 0 or b < 0:
                raise InvalidInput(f"Invalid input: range bounds must be non-negative: {s!r}.")
            if a > b:
                raise InvalidInput(f"Invalid input: empty range {a}..{b}.")
            return a, b
    k = parse_index(s)
    return k, k
