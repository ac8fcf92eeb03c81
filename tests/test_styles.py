"""
Unit tests for style sheets and log formatting.
"""

from styles import LOG_COLORS, PALETTE, get_dialog_stylesheet, get_log_html_style, get_main_stylesheet


class TestLogHtml:
    def test_message_is_escaped(self) -> None:
        line = get_log_html_style("INFO", "<b>mod</b> & co")

        assert "&lt;b&gt;mod&lt;/b&gt; &amp; co" in line
        assert line.endswith("<br>")

    def test_level_color_and_timestamp(self) -> None:
        line = get_log_html_style("ERROR", "boom", "12:00:00")

        assert LOG_COLORS["ERROR"] in line
        assert line.index("12:00:00") < line.index("ERROR")

    def test_unknown_level_uses_text_color(self) -> None:
        assert PALETTE["text"] in get_log_html_style("TRACE", "x")


class TestStylesheets:
    def test_dialog_extends_main(self) -> None:
        main = get_main_stylesheet()
        dialog = get_dialog_stylesheet()

        assert dialog.startswith(main)
        assert "QDialog" in dialog and "QDialog" not in main
        assert main.count("{") == main.count("}")
