import lib.shared.util as util


class TestFormatTable:
    """Fixed width text tables used in Discord reports."""

    def test_formats_columns_to_longest_cell(self):
        formatted = util.FormatTable(
            ["FOO", "BAR", "Really Long Header"],
            [
                ["foo", "42", "baz"],
                ["really long value", "hello", "world"],
            ],
            [util.ALIGN_LEFT, util.ALIGN_RIGHT, util.ALIGN_LEFT],
        )
        assert formatted == "\n".join([
            "FOO                 BAR     Really Long Header",
            "----------------------------------------------",
            "foo                    42   baz",
            "really long value   hello   world",
        ])

    def test_divider_line_spans_all_columns(self):
        formatted = util.FormatTable(["A", "BB"], [["xxx", "y"]], divider = " | ")
        lines = formatted.split("\n")
        assert lines[1] == "-" * (3 + 2 + len(" | "))

    def test_no_line_has_trailing_whitespace(self):
        formatted = util.FormatTable(["Name", "Value"], [["a", ""], ["bbbbbb", "c"]])
        for line in formatted.split("\n"):
            assert line == line.rstrip()

    def test_header_only(self):
        assert util.FormatTable(["Clan", "Played"], []) == "Clan   Played\n-------------"


def test_clamp():
    assert util.Clamp(0, 5, 10) == 5
    assert util.Clamp(0, -1, 10) == 0
    assert util.Clamp(0.0, 1500.0, 999.9) == 999.9
