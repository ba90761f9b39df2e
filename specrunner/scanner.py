"""
Line-to-name resolution: find the example or group declared around a line.

This is a lightweight structural scan, not a parse. Two declaration dialects
are understood:

- block style, closed by `end`:

      describe "Stack" do
        it "is empty initially" do
        end
      end

- indentation style, closed by dedenting:

      with describe("Stack"):
          with it("is empty initially"):
              ...

Groups are `describe`/`context` (and `description` in the indentation
style), examples are `it`/`specify`. Other `do ... end` blocks and
`def`/`class`/`if`/... bodies are tracked only so that every `end` closes the
right frame. Blocks left open run to the end of the text.
"""
import re
from typing import NamedTuple

_KEYWORDS = r"describe|description|context|it|specify"

# a quoted literal, or a bare constant; descriptions are comma-separated terms
_STRING = r"""(?:"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')"""
_TERM = r"""(?:%s|[^"'\s(),]+)""" % _STRING
_DESCRIPTION = r"(?P<description>%s(?:\s*,\s*%s)*)" % (_TERM, _TERM)

_BLOCK_DECLARATION = re.compile(
    r"\s*(?P<keyword>%s)\b\s*\(?\s*%s\s*\)?\s+do\b(?P<rest>.*)" % (_KEYWORDS, _DESCRIPTION)
)
_INDENT_DECLARATION = re.compile(
    r"(?P<indent>\s*)with\s+(?P<keyword>%s)\s*\(\s*%s\s*\)\s*(as\s+\w+\s*)?:" % (_KEYWORDS, _DESCRIPTION)
)
_BLOCK_OPENER = re.compile(r"\s*(def|class|module|if|unless|while|until|case|begin|for)\b.*|.*\bdo\s*(\|[^|]*\|)?\s*")
_BLOCK_CLOSER = re.compile(r"\s*end\b\s*([.)].*)?")
_INLINE_END = re.compile(r".*\bend\s*")
_COMMENT = re.compile(r"(?P<string>%s)|#.*" % _STRING)
_QUOTED = re.compile(r"""(?P<quote>["'])(?P<text>(\\.|(?!(?P=quote)).)*)(?P=quote)""")
_SUFFIXED = re.compile(r"""(?P<head>.*?)\s*,\s*(?P<quote>["'])(?P<tail>.*)(?P=quote)""")


class Declaration(NamedTuple):
    name: str
    start: int
    end: int


class _Frame:
    __slots__ = ("name", "start", "indent", "end")

    def __init__(self, name, start, indent=None):
        self.name = name
        self.start = start
        # None: closed by `end`; int: closed by the first line indented at most this much
        self.indent = indent
        self.end = None


def describe(description, /):
    """
    Turn the argument text of a declaration into its display name.

    - '"Stack"' / "'Stack'"          -> Stack
    - 'Stack, "with items"'          -> Stack with items
    - 'Stack, "#push"'               -> Stack#push  (no space before '#', '.' or whitespace)
    - 'Stack'                        -> Stack
    """
    description = description.strip()
    if match := _QUOTED.fullmatch(description):
        return match["text"]
    if match := _SUFFIXED.fullmatch(description):
        head, tail = match["head"], match["tail"]
        if match := _QUOTED.fullmatch(head):
            head = match["text"]
        if re.match(r"\s|\.|#", tail):
            return head + tail
        return head + " " + tail
    return description


def uncomment(line, /):
    """
    Drop a trailing '#' comment; '#' inside string literals is kept.
    """
    return _COMMENT.sub(lambda match: match["string"] or "", line).rstrip()


def declarations(source, /):
    """
    Yield every Declaration in `source` (1-based, inclusive line spans).
    """
    lines = source.splitlines()
    stack = []
    last = 0  # last non-blank line seen
    # anonymous blocks only matter when something can close them
    closable = any(_BLOCK_CLOSER.fullmatch(uncomment(line)) for line in lines)

    def close(frame, line):
        frame.end = line
        if frame.name is not None:
            return Declaration(frame.name, frame.start, frame.end)

    for number, line in enumerate(lines, start=1):
        code = uncomment(line)
        if not code.strip():
            continue

        indent = len(code) - len(code.lstrip())
        while stack and stack[-1].indent is not None and indent <= stack[-1].indent:
            if declaration := close(stack.pop(), last):
                yield declaration
        last = number

        if match := _INDENT_DECLARATION.fullmatch(code):
            stack.append(_Frame(describe(match["description"]), number, len(match["indent"])))
        elif match := _BLOCK_DECLARATION.fullmatch(code):
            frame = _Frame(describe(match["description"]), number)
            if _INLINE_END.fullmatch(match["rest"]):
                yield close(frame, number)
            else:
                stack.append(frame)
        elif _BLOCK_CLOSER.fullmatch(code):
            while stack:
                frame = stack.pop()
                declaration = close(frame, number)
                if declaration:
                    yield declaration
                if frame.indent is None:
                    break
        elif closable and _BLOCK_OPENER.fullmatch(code) and not code.endswith(":") and not _INLINE_END.fullmatch(code):
            stack.append(_Frame(None, number))

    while stack:
        if declaration := close(stack.pop(), len(lines)):
            yield declaration


def spec_name_for(source, line_number, /):
    """
    Return the name of the innermost example or group whose span contains
    `line_number` (1-based), or None when no declaration encloses it.
    """
    if hasattr(source, "read"):
        source = source.read()
    enclosing = [
        declaration for declaration in declarations(source)
        if declaration.start <= line_number <= declaration.end
    ]
    if not enclosing:
        return None
    return max(enclosing, key=lambda declaration: declaration.start).name


__all__ = (
    "Declaration",
    "describe",
    "uncomment",
    "declarations",
    "spec_name_for",
)
