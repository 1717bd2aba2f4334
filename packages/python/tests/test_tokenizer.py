import pytest
from formula_engine.errors import TokenizerError
from formula_engine.tokenizer import FormulaTokenizer, Token, TokenType, tokenize


def assert_tokens(formula: str, expected: list[tuple[TokenType, str]]):
    """Helper function to assert tokens match expected types and values."""
    tokens = tokenize(formula)
    assert len(tokens) == len(expected), (
        f"Expected {len(expected)} tokens, got {len(tokens)}\n"
        f"Expected: {expected}\n"
        f"Got: {[(t.type, t.value) for t in tokens]}"
    )
    for token, (exp_type, exp_value) in zip(tokens, expected):
        assert token.type == exp_type, f"Expected {exp_type}, got {token.type}"
        assert token.value == exp_value, f"Expected {exp_value}, got {token.value}"


class TestFormulaTokenizer:
    def test_simple_arithmetic(self):
        """Test basic arithmetic operators and numbers."""
        assert_tokens(
            "1 + 2",
            [
                (TokenType.NUMBER, "1"),
                (TokenType.OPERATOR, "+"),
                (TokenType.NUMBER, "2"),
            ],
        )
        assert_tokens(
            "1+2*3",
            [
                (TokenType.NUMBER, "1"),
                (TokenType.OPERATOR, "+"),
                (TokenType.NUMBER, "2"),
                (TokenType.OPERATOR, "*"),
                (TokenType.NUMBER, "3"),
            ],
        )

    def test_decimal_numbers(self):
        assert_tokens(
            "1.5 + .75",
            [
                (TokenType.NUMBER, "1.5"),
                (TokenType.OPERATOR, "+"),
                (TokenType.NUMBER, ".75"),
            ],
        )

    def test_second_decimal_point_ends_number(self):
        assert_tokens(
            "1.2.3",
            [
                (TokenType.NUMBER, "1.2"),
                (TokenType.NUMBER, ".3"),
            ],
        )

    def test_no_exponent_support(self):
        assert_tokens(
            "1e5",
            [
                (TokenType.NUMBER, "1"),
                (TokenType.IDENTIFIER, "e5"),
            ],
        )

    def test_positions(self):
        tokens = tokenize("SUM( A1 )")
        assert tokens == [
            Token(TokenType.IDENTIFIER, "SUM", 0),
            Token(TokenType.LPAREN, "(", 3),
            Token(TokenType.IDENTIFIER, "A1", 5),
            Token(TokenType.RPAREN, ")", 8),
        ]

    def test_unary_minus_folded_into_number(self):
        """A minus at the start, after an operator, '(' or ',' is a sign."""
        assert_tokens("-5", [(TokenType.NUMBER, "-5")])
        assert_tokens(
            "-5+3",
            [
                (TokenType.NUMBER, "-5"),
                (TokenType.OPERATOR, "+"),
                (TokenType.NUMBER, "3"),
            ],
        )
        assert_tokens(
            "3-(-2)",
            [
                (TokenType.NUMBER, "3"),
                (TokenType.OPERATOR, "-"),
                (TokenType.LPAREN, "("),
                (TokenType.NUMBER, "-2"),
                (TokenType.RPAREN, ")"),
            ],
        )
        assert_tokens(
            "2*-.5",
            [
                (TokenType.NUMBER, "2"),
                (TokenType.OPERATOR, "*"),
                (TokenType.NUMBER, "-.5"),
            ],
        )
        assert_tokens(
            "MAX(1,-2)",
            [
                (TokenType.IDENTIFIER, "MAX"),
                (TokenType.LPAREN, "("),
                (TokenType.NUMBER, "1"),
                (TokenType.COMMA, ","),
                (TokenType.NUMBER, "-2"),
                (TokenType.RPAREN, ")"),
            ],
        )

    def test_binary_minus(self):
        assert_tokens(
            "5-3",
            [
                (TokenType.NUMBER, "5"),
                (TokenType.OPERATOR, "-"),
                (TokenType.NUMBER, "3"),
            ],
        )
        assert_tokens(
            "A1 -2",
            [
                (TokenType.IDENTIFIER, "A1"),
                (TokenType.OPERATOR, "-"),
                (TokenType.NUMBER, "2"),
            ],
        )
        # Not followed by a number, so it stays an operator
        assert_tokens(
            "-A1",
            [
                (TokenType.OPERATOR, "-"),
                (TokenType.IDENTIFIER, "A1"),
            ],
        )
        assert_tokens(
            "- 5",
            [
                (TokenType.OPERATOR, "-"),
                (TokenType.NUMBER, "5"),
            ],
        )

    def test_comparison_operators(self):
        """Test all comparison operators."""
        operators = ["=", "<>", "<", ">", "<=", ">="]
        for op in operators:
            assert_tokens(
                f"A1 {op} B1",
                [
                    (TokenType.IDENTIFIER, "A1"),
                    (TokenType.OPERATOR, op),
                    (TokenType.IDENTIFIER, "B1"),
                ],
            )

    def test_single_char_operators(self):
        for op in "+*/%^&":
            assert_tokens(
                f"1{op}2",
                [
                    (TokenType.NUMBER, "1"),
                    (TokenType.OPERATOR, op),
                    (TokenType.NUMBER, "2"),
                ],
            )

    def test_strings(self):
        assert_tokens('"Hello World"', [(TokenType.STRING, "Hello World")])
        assert_tokens('""', [(TokenType.STRING, "")])
        assert_tokens(
            '"a" & "b"',
            [
                (TokenType.STRING, "a"),
                (TokenType.OPERATOR, "&"),
                (TokenType.STRING, "b"),
            ],
        )

    def test_strings_have_no_escapes(self):
        # A doubled quote closes one string and opens the next
        assert_tokens(
            '"say ""hi"""',
            [
                (TokenType.STRING, "say "),
                (TokenType.STRING, "hi"),
                (TokenType.STRING, ""),
            ],
        )
        assert_tokens('"back\\slash"', [(TokenType.STRING, "back\\slash")])

    def test_unterminated_string_runs_to_end(self):
        assert_tokens('"abc + 1', [(TokenType.STRING, "abc + 1")])

    def test_booleans(self):
        assert_tokens("TRUE", [(TokenType.BOOLEAN, "TRUE")])
        assert_tokens("false", [(TokenType.BOOLEAN, "FALSE")])

    def test_identifiers(self):
        assert_tokens(
            "my_func(A1)",
            [
                (TokenType.IDENTIFIER, "my_func"),
                (TokenType.LPAREN, "("),
                (TokenType.IDENTIFIER, "A1"),
                (TokenType.RPAREN, ")"),
            ],
        )

    def test_separators(self):
        assert_tokens(
            "A1:B2;C3",
            [
                (TokenType.IDENTIFIER, "A1"),
                (TokenType.COLON, ":"),
                (TokenType.IDENTIFIER, "B2"),
                (TokenType.SEMICOLON, ";"),
                (TokenType.IDENTIFIER, "C3"),
            ],
        )

    def test_whitespace_is_skipped(self):
        assert_tokens(
            "  1\t+\n2  ",
            [
                (TokenType.NUMBER, "1"),
                (TokenType.OPERATOR, "+"),
                (TokenType.NUMBER, "2"),
            ],
        )

    def test_unrecognized_characters_are_dropped(self):
        assert_tokens(
            "1 # + $2",
            [
                (TokenType.NUMBER, "1"),
                (TokenType.OPERATOR, "+"),
                (TokenType.NUMBER, "2"),
            ],
        )

    def test_strict_mode_rejects_unrecognized_characters(self):
        with pytest.raises(TokenizerError, match="Unexpected character: # at position 2"):
            FormulaTokenizer("1 # 2", strict=True).tokenize()

    def test_empty_formula(self):
        assert tokenize("") == []
        assert tokenize("   ") == []

    def test_non_ascii_letters_are_unrecognized(self):
        assert_tokens(
            "1 + é2",
            [
                (TokenType.NUMBER, "1"),
                (TokenType.OPERATOR, "+"),
                (TokenType.NUMBER, "2"),
            ],
        )
        assert_tokens("Aé1", [(TokenType.IDENTIFIER, "A"), (TokenType.NUMBER, "1")])
        with pytest.raises(TokenizerError, match="Unexpected character: é"):
            FormulaTokenizer("SUMé(1)", strict=True).tokenize()

    def test_non_ascii_digits_are_unrecognized(self):
        assert_tokens("2²", [(TokenType.NUMBER, "2")])
        with pytest.raises(TokenizerError):
            FormulaTokenizer("٣", strict=True).tokenize()
