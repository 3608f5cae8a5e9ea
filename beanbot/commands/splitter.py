"""
Shell-like argument splitting for chat messages.

Splits a command into a list of arguments in a syntax similar to a shell's:
- arguments are separated by spaces or tabs
- arguments containing spaces can be quoted in double or single quotes
- inside double quotes, `\\"` and `\\\\` are escapes; other backslashes stay
- no escape is allowed in single quotes
- a newline is never allowed

Unlike `shlex.split`, a backslash outside quotes is an ordinary character,
so `'baz\\$b'` and `foo\\bar` survive untouched.
"""

from typing import Iterator, Optional

from beanbot.commands.errors import CommandSyntaxError


_BLANKS = (" ", "\t")


class _Splitter:
    """Single-pass scanner over the input string."""

    def __init__(self, text: str):
        self._text = text
        self._pos = 0

    def _next(self) -> Optional[str]:
        if self._pos >= len(self._text):
            return None
        ch = self._text[self._pos]
        self._pos += 1
        return ch

    def _peek(self) -> Optional[str]:
        if self._pos >= len(self._text):
            return None
        return self._text[self._pos]

    def words(self) -> Iterator[str]:
        while True:
            word = self._parse_word()
            if word is None:
                return
            yield word

    def _parse_word(self) -> Optional[str]:
        while self._peek() in _BLANKS:
            self._pos += 1
        if self._peek() is None:
            return None

        result: list[str] = []
        while (ch := self._next()) is not None:
            if ch == '"':
                self._parse_double(result)
            elif ch == "'":
                self._parse_single(result)
            elif ch == "\n":
                raise CommandSyntaxError("newline within argument")
            elif ch in _BLANKS:
                break
            else:
                result.append(ch)
        return "".join(result)

    def _parse_double(self, result: list[str]) -> None:
        while (ch := self._next()) is not None:
            if ch == '"':
                return
            if ch == "\n":
                raise CommandSyntaxError("newline within double quote")
            if ch == "\\":
                escaped = self._next()
                if escaped is None:
                    break
                if escaped in ('"', "\\"):
                    result.append(escaped)
                elif escaped == "\n":
                    raise CommandSyntaxError("newline within double quote")
                else:
                    result.append("\\")
                    result.append(escaped)
            else:
                result.append(ch)
        raise CommandSyntaxError("unmatched double quote")

    def _parse_single(self, result: list[str]) -> None:
        while (ch := self._next()) is not None:
            if ch == "'":
                return
            if ch == "\n":
                raise CommandSyntaxError("newline within single quote")
            result.append(ch)
        raise CommandSyntaxError("unmatched single quote")


def command_split(text: str) -> list[str]:
    """
    Split `text` into arguments.

    Raises:
        CommandSyntaxError: On a newline or an unmatched quote
    """
    return list(_Splitter(text).words())
