import base64
import unittest

from compose_lxc.shell import build_one_liner, choose_heredoc_delimiter, escape_heredoc, quote


class EscapeHeredocTests(unittest.TestCase):
    def test_escapes_expansion_characters(self):
        self.assertEqual(escape_heredoc("a\\b $HOME `id`"), "a\\\\b \\$HOME \\`id\\`")

    def test_leaves_quotes_alone(self):
        self.assertEqual(escape_heredoc("'single' \"double\""), "'single' \"double\"")

    def test_existing_escape_is_doubled_once(self):
        self.assertEqual(escape_heredoc("\\$"), "\\\\\\$")


class DelimiterTests(unittest.TestCase):
    def test_base_used_when_free(self):
        self.assertEqual(choose_heredoc_delimiter("a\nb\n", "EOF"), "EOF")

    def test_colliding_line_gets_suffix(self):
        text = "first\n  EOF\nEOF_2\n"
        self.assertEqual(choose_heredoc_delimiter(text, "EOF"), "EOF_3")


class OneLinerTests(unittest.TestCase):
    def test_round_trip(self):
        script = "#!/usr/bin/env bash\necho 'héllo'\n"
        command = build_one_liner(script)
        self.assertTrue(command.startswith('bash -c "$(echo '))
        self.assertTrue(command.endswith(' | base64 -d)"'))
        encoded = command[len('bash -c "$(echo ') : -len(' | base64 -d)"')]
        self.assertEqual(base64.b64decode(encoded).decode("utf-8"), script)

    def test_quote(self):
        self.assertEqual(quote("it's"), "'it'\"'\"'s'")
        self.assertEqual(quote(105), "105")


if __name__ == "__main__":
    unittest.main()
