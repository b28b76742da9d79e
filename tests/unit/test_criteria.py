"""
Unit tests for criteria compilation.
"""
import pytest

from storage import codec
from storage.criteria import Operator, compile_criteria, parse_key, quote_identifier
from storage.exceptions import ConfigurationError


class TestParseKey:
    """Test splitting criteria keys."""

    def test_plain_field_defaults_to_eq(self):
        """Test a key without operator uses eq."""
        assert parse_key("foo") == ("foo", Operator.EQ)

    def test_field_with_operator(self):
        """Test field!operator keys."""
        assert parse_key("foo!gte") == ("foo", Operator.GTE)
        assert parse_key("bar!like") == ("bar", Operator.LIKE)

    def test_unknown_operator(self):
        """Test unknown operators fail immediately."""
        with pytest.raises(ConfigurationError, match="Unknown operator 'between'"):
            parse_key("foo!between")

    def test_empty_operator(self):
        """Test a trailing separator is rejected."""
        with pytest.raises(ConfigurationError):
            parse_key("foo!")

    @pytest.mark.parametrize("key", ["!foo", "a!b!c", ""])
    def test_malformed_keys(self, key):
        """Test malformed keys are rejected."""
        with pytest.raises(ConfigurationError):
            parse_key(key)


class TestOperator:
    """Test the operator enumeration."""

    def test_sql_symbols(self):
        """Test every operator maps to its SQL symbol."""
        assert [op.sql for op in Operator] == ["=", ">", "<", ">=", "<=", "LIKE"]

    def test_parse(self):
        """Test parsing operator names."""
        assert Operator.parse("lt") is Operator.LT


class TestQuoteIdentifier:
    """Test identifier quoting."""

    def test_simple_name(self):
        assert quote_identifier("foo") == "`foo`"

    def test_backticks_are_doubled(self):
        assert quote_identifier("fo`o") == "`fo``o`"

    def test_dotted_name(self):
        assert quote_identifier("testing.foo") == "`testing`.`foo`"

    def test_percent_is_escaped_for_pymysql(self):
        assert quote_identifier("rate%") == "`rate%%`"

    def test_empty_name(self):
        with pytest.raises(ConfigurationError):
            quote_identifier("")


class TestCompileCriteria:
    """Test criteria compilation."""

    def test_empty_criteria_has_no_predicate(self):
        """Test empty criteria yields no predicate at all."""
        assert compile_criteria({}) == (None, [])
        assert compile_criteria(None) == (None, [])

    def test_entries_are_and_joined_in_order(self):
        """Test N entries produce N clauses and N params in order."""
        text, params = compile_criteria({"foo": 1, "bar!gt": 2, "baz!lte": 3})

        assert text == "`foo` = %s AND `bar` > %s AND `baz` <= %s"
        assert params == [1, 2, 3]
        assert text.count(" AND ") == 2

    def test_all_operators(self):
        """Test each operator's rendering."""
        text, _ = compile_criteria({
            "a!eq": 1, "b!gt": 1, "c!lt": 1, "d!gte": 1, "e!lte": 1, "f!like": "x",
        })

        assert text == ("`a` = %s AND `b` > %s AND `c` < %s AND "
                        "`d` >= %s AND `e` <= %s AND `f` LIKE %s")

    def test_like_wraps_value(self):
        """Test like binds %value%."""
        text, params = compile_criteria({"bar!like": "oo"})

        assert text == "`bar` LIKE %s"
        assert params == ["%oo%"]

    def test_values_are_never_interpolated(self):
        """Test hostile values only appear as parameters."""
        value = "x'; DROP TABLE foo; --"
        text, params = compile_criteria({"bar": value})

        assert value not in text
        assert params == [value]

    def test_or_group(self):
        """Test !or compiles to one parenthesized group."""
        text, params = compile_criteria({"!or": [{"a": 1}, {"b": 2}]})

        assert text == "(`a` = %s OR `b` = %s)"
        assert params == [1, 2]

    def test_or_group_joins_and_chain(self):
        """Test the OR group takes part in the AND chain."""
        text, params = compile_criteria({
            "x": 0,
            "!or": [{"a!gt": 1}, {"a!lt": -1}],
            "y!like": "z",
        })

        assert text == "`x` = %s AND (`a` > %s OR `a` < %s) AND `y` LIKE %s"
        assert params == [0, 1, -1, "%z%"]

    def test_nested_or_group(self):
        """Test an !or entry may itself hold an !or group."""
        text, params = compile_criteria({
            "!or": [{"a": 1}, {"!or": [{"b": 2}, {"c": 3}]}],
        })

        assert text == "(`a` = %s OR (`b` = %s OR `c` = %s))"
        assert params == [1, 2, 3]

    @pytest.mark.parametrize("value", [[], {"a": 1}, "a", None, [{"a": 1, "b": 2}], [1]])
    def test_invalid_or_values(self, value):
        """Test !or requires a non-empty list of single-entry criteria."""
        with pytest.raises(ConfigurationError):
            compile_criteria({"!or": value})

    def test_duplicate_condition(self):
        """Test keys that collapse to the same field/operator are rejected."""
        with pytest.raises(ConfigurationError, match="same condition"):
            compile_criteria({"foo": 1, "foo!eq": 2})

    def test_same_field_different_operators(self):
        """Test a range on one field is allowed."""
        text, params = compile_criteria({"foo!gte": 1, "foo!lt": 5})

        assert text == "`foo` >= %s AND `foo` < %s"
        assert params == [1, 5]

    def test_unknown_operator_fails(self):
        """Test unknown operators surface before any SQL is produced."""
        with pytest.raises(ConfigurationError):
            compile_criteria({"foo!ne": 1})

    def test_encode_hook(self):
        """Test the encode hook applies to bound values except like patterns."""
        _, params = compile_criteria({"flag": True, "name!like": "ab"}, codec.encode)

        assert params == [1, "%ab%"]
