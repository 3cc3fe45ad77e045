"""Tests for code_utils module."""

from wgslbind.transpiler.code_utils import (
    find_matching_brace,
    inject_starting_and_ending_code,
    neutralize_define_directives,
    remove_comments,
)


class TestRemoveComments:
    """Tests for remove_comments function."""

    def test_line_and_block_comments(self) -> None:
        """Test that comments are removed and line breaks preserved."""
        code = "let a = 1; // one\n/* two\nlines */let b = 2;\n"

        result = remove_comments(code)

        assert result == "let a = 1; \n\nlet b = 2;\n"
        assert result.count("\n") == code.count("\n")


class TestNeutralizeDefineDirectives:
    """Tests for neutralize_define_directives function."""

    def test_directives_are_commented(self) -> None:
        """Test commenting out directives."""
        assert neutralize_define_directives("#define A 1\n  #define B\n") == (
            "//#define A 1\n  //#define B\n"
        )

    def test_idempotent(self) -> None:
        """Test that commented directives are left alone."""
        code = "//#define A 1\n"

        assert neutralize_define_directives(code) == code


class TestInjectStartingAndEndingCode:
    """Tests for inject_starting_and_ending_code function."""

    def test_find_matching_brace(self) -> None:
        """Test brace matching across nested blocks."""
        code = "fn f() { if (a) { b(); } }"

        assert find_matching_brace(code, code.index("{")) == len(code) - 1
        assert find_matching_brace("fn f() {", 7) == -1

    def test_injects_into_main_only(self) -> None:
        """Test that the ending code lands before the closing brace of main."""
        # Arrange
        code = (
            "fn main(input : X) -> Y {\n  if (a) {\n    b();\n  }\n}\n"
            "fn other() {\n}\n"
        )

        # Act
        result = inject_starting_and_ending_code(
            code, "fn main", "\n  start();\n", "  end();"
        )

        # Assert
        assert result == (
            "fn main(input : X) -> Y {\n  start();\n\n  if (a) {\n    b();\n  }\n"
            "  end();\n}\nfn other() {\n}\n"
        )

    def test_missing_function(self) -> None:
        """Test that code without the function is unchanged."""
        code = "fn helper() {}\n"

        assert inject_starting_and_ending_code(code, "fn main", "a", "b") == code
