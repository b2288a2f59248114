"""Branch predicates for CONDITION nodes.

The grammar is intentionally tiny:

    <var> > <int-literal>        numeric comparison
    <var> == "<literal>"         string equality

Context values are strings. Anything outside the grammar, or any operand
that is not a number where one is needed, evaluates to False.
"""

import logging

logger = logging.getLogger(__name__)


def evaluate_condition(expression: str | None, context: dict[str, str] | None) -> bool:
    """
    Evaluate a condition expression against a string-keyed context.

    Args:
        expression: e.g. 'age > 18' or 'status == "approved"'
        context: Variable values; missing numeric variables read as "0",
            missing string variables as ""

    Returns:
        The predicate result; never raises
    """
    if not expression or not expression.strip():
        return False
    context = context or {}

    if "==" in expression:
        parts = expression.split("==")
        if len(parts) != 2:
            return False
        var = parts[0].strip()
        expected = parts[1].strip().replace('"', "")
        return str(context.get(var, "")) == expected

    if ">" in expression:
        parts = expression.split(">")
        if len(parts) != 2:
            return False
        var = parts[0].strip()
        right = parts[1].strip()
        try:
            return int(str(context.get(var, "0")).strip()) > int(right)
        except ValueError:
            logger.debug(f"Non-numeric operand in condition: {expression}")
            return False

    return False
