from kireifmt.formatter import FormatOptions, format_text


def test_trailing_whitespace_and_final_newline():
    assert format_text("a  \nb\t") == "a\nb\n"


def test_blank_lines_collapsed_and_trimmed_at_edges():
    assert format_text("\n\na\n\n\n\nb\n\n\n") == "a\n\nb\n"
    assert format_text("a\n\n\nb", FormatOptions(max_blank_lines=2)) == "a\n\n\nb\n"


def test_reindent_tabs_to_spaces():
    assert format_text("\tx\n", FormatOptions(tab_width=4)) == "    x\n"
    assert format_text("  \tx\n", FormatOptions(tab_width=4)) == "    x\n"


def test_reindent_spaces_to_tabs():
    opts = FormatOptions(tab_width=2, use_tabs=True)
    assert format_text("     x\n", opts) == "\t\t x\n"


def test_end_of_line():
    assert format_text("a\r\nb\n", FormatOptions(end_of_line="lf")) == "a\nb\n"
    assert format_text("a\nb", FormatOptions(end_of_line="crlf")) == "a\r\nb\r\n"
    assert format_text("a\r\nb\n", FormatOptions(end_of_line="auto")) == "a\r\nb\r\n"


def test_no_final_newline_option_keeps_missing_newline():
    opts = FormatOptions(insert_final_newline=False)
    assert format_text("a", opts) == "a"
    assert format_text("a\n", opts) == "a\n"


def test_empty_and_whitespace_only():
    assert format_text("") == ""
    assert format_text(" \n\n\t\n") == ""


def test_idempotent():
    src = "\n  a \r\n\t\tb\n\n\n\n   c\t \n"
    for opts in (FormatOptions(), FormatOptions(use_tabs=True, tab_width=4), FormatOptions(trim_trailing_whitespace=False)):
        once = format_text(src, opts)
        assert format_text(once, opts) == once
