class FormulaError(Exception):
    """Base class for every error raised while calculating a formula."""


class TokenizerError(FormulaError):
    pass


class ParseError(FormulaError):
    pass


class CoercionError(FormulaError):
    pass


class CircularReferenceError(FormulaError):
    """A cell address was re-entered while it was still being calculated."""

    def __init__(self, chain: list[str]):
        self.chain = list(chain)
        super().__init__(f"Circular reference detected: {' -> '.join(self.chain)}")


class UnknownFunctionError(FormulaError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown function: {name}")


class ArityError(FormulaError):
    """An operator was applied without enough operands."""

    def __init__(self, operator: str, message: str | None = None):
        self.operator = operator
        super().__init__(message or f"Operator '{operator}' requires two operands")


class FunctionArgumentError(ArityError):
    """A function was called with a number of arguments it does not accept."""

    def __init__(self, name: str, count: int):
        self.count = count
        super().__init__(
            name, f"{name}() does not accept {count} argument{'' if count == 1 else 's'}"
        )


class UnsupportedOperatorError(FormulaError):
    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(f"Unknown operator: {operator}")


class EvaluationDepthError(FormulaError):
    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(f"Maximum calculation depth of {max_depth} exceeded")
