#!/usr/bin/env python3
"""
UTF-32 to UTF-16 Regex Translator

Rewrites regular expressions that use \\UXXXXXXXX code point escapes (single
code points or code point ranges) into equivalent patterns over UTF-16 code
units, so they can be handed to regex engines that only understand \\uXXXX.
"""

import argparse
import re
import sys
import yaml
from dataclasses import dataclass
from typing import List, Tuple, Optional

# =============================================================================
# Constants
# =============================================================================

MIN_HIGH_SURROGATE = 0xD800
MAX_HIGH_SURROGATE = 0xDBFF
MIN_LOW_SURROGATE = 0xDC00
MAX_LOW_SURROGATE = 0xDFFF

MAX_BMP = 0xFFFF
MIN_SUPPLEMENTARY = 0x10000
MAX_SCALAR_VALUE = 0x10FFFF

HEX_DIGITS = "0123456789abcdefABCDEF"

# Shape accepted by the interactive prompt with --require-range
RANGE_SHAPE = re.compile(r"\[\\U[0-9A-Fa-f]{8}-\\U[0-9A-Fa-f]{8}\]")

PROMPT = "Please enter the unicode range in the following format: [\\UXXXXXXXX-\\UXXXXXXXX]"

# =============================================================================
# Errors
# =============================================================================

MALFORMED_TOKEN = "MalformedToken"
INVALID_SCALAR_VALUE = "InvalidScalarValue"
INVERTED_RANGE = "InvertedRange"
UNTERMINATED_BRACKET = "UnterminatedBracketExpression"
NEGATED_CLASS = "NegatedClass"


class TranslationError(ValueError):
    """A pattern could not be translated.

    Attributes:
        kind: One of the error kind constants (MALFORMED_TOKEN, ...)
        message: Description without the position suffix
        position: Offset into the original pattern, or None when unknown
    """

    def __init__(self, kind: str, message: str, position: Optional[int] = None):
        self.kind = kind
        self.message = message
        self.position = position
        if position is None:
            super().__init__(message)
        else:
            super().__init__(f"{message} at position {position}")


# =============================================================================
# Code Point <-> Code Unit Codec
# =============================================================================

def is_high_surrogate(unit: int) -> bool:
    return MIN_HIGH_SURROGATE <= unit <= MAX_HIGH_SURROGATE


def is_low_surrogate(unit: int) -> bool:
    return MIN_LOW_SURROGATE <= unit <= MAX_LOW_SURROGATE


def is_surrogate(unit: int) -> bool:
    return MIN_HIGH_SURROGATE <= unit <= MAX_LOW_SURROGATE


def check_scalar_value(value: int, position: Optional[int] = None) -> int:
    """Return value unchanged if it is a Unicode scalar value, else raise."""
    if not 0 <= value <= MAX_SCALAR_VALUE:
        raise TranslationError(INVALID_SCALAR_VALUE,
                               f"Code point U+{value:04X} is beyond U+10FFFF", position)
    if is_surrogate(value):
        raise TranslationError(INVALID_SCALAR_VALUE,
                               f"Code point U+{value:04X} is a surrogate, not a scalar value", position)
    return value


def to_code_units(value: int) -> Tuple[int, Optional[int]]:
    """Encode a scalar value as UTF-16.

    Returns:
        (unit, None) for the BMP, (high_surrogate, low_surrogate) otherwise
    """
    check_scalar_value(value)
    if value <= MAX_BMP:
        return value, None
    offset = value - MIN_SUPPLEMENTARY
    return MIN_HIGH_SURROGATE + (offset >> 10), MIN_LOW_SURROGATE + (offset & 0x3FF)


def from_code_units(high: int, low: Optional[int] = None) -> int:
    """Decode one or two UTF-16 code units back into a scalar value."""
    if low is None:
        if is_surrogate(high):
            raise TranslationError(INVALID_SCALAR_VALUE, f"Lone surrogate U+{high:04X}")
        return high
    if not (is_high_surrogate(high) and is_low_surrogate(low)):
        raise TranslationError(INVALID_SCALAR_VALUE,
                               f"U+{high:04X} U+{low:04X} is not a surrogate pair")
    return MIN_SUPPLEMENTARY + ((high - MIN_HIGH_SURROGATE) << 10) + (low - MIN_LOW_SURROGATE)


def render_unit(unit: int) -> str:
    """Format a code unit as a \\uXXXX escape (uppercase hex)."""
    return f"\\u{unit:04X}"


def to_utf16_text(text: str) -> str:
    """Spell out a string as UTF-16 code units, one character per unit.

    Supplementary characters become two surrogate characters, which is what a
    translated pattern expects to see.
    """
    data = text.encode("utf-16-le", "surrogatepass")
    return "".join(chr(int.from_bytes(data[i:i + 2], "little")) for i in range(0, len(data), 2))


def from_utf16_text(units: str) -> str:
    """Inverse of to_utf16_text(). Unpaired surrogates are passed through."""
    data = b"".join(ord(u).to_bytes(2, "little") for u in units)
    return data.decode("utf-16-le", "surrogatepass")


# =============================================================================
# Range Decomposer
# =============================================================================

def _unit_range(first: int, last: int) -> str:
    """Render [first-last], or just the unit when the range holds one unit."""
    if first == last:
        return render_unit(first)
    return f"[{render_unit(first)}-{render_unit(last)}]"


def _bmp_alternatives(begin: int, end: int) -> List[str]:
    # A single-unit range must not cover lone surrogates
    if begin < MIN_HIGH_SURROGATE and end > MAX_LOW_SURROGATE:
        return [_unit_range(begin, MIN_HIGH_SURROGATE - 1),
                _unit_range(MAX_LOW_SURROGATE + 1, end)]
    return [_unit_range(begin, end)]


def _supplementary_alternatives(begin: int, end: int) -> List[str]:
    begin_hi, begin_lo = to_code_units(begin)
    end_hi, end_lo = to_code_units(end)

    if begin_hi == end_hi:
        return [render_unit(begin_hi) + _unit_range(begin_lo, end_lo)]

    # Head: rest of the first high surrogate's plane
    alternatives = [render_unit(begin_hi) + _unit_range(begin_lo, MAX_LOW_SURROGATE)]

    # Middle: every full plane in between, if there is one
    if end_hi - begin_hi > 1:
        alternatives.append(_unit_range(begin_hi + 1, end_hi - 1)
                            + _unit_range(MIN_LOW_SURROGATE, MAX_LOW_SURROGATE))

    # Tail: start of the last plane
    alternatives.append(render_unit(end_hi) + _unit_range(MIN_LOW_SURROGATE, end_lo))
    return alternatives


def range_alternatives(begin: int, end: Optional[int] = None) -> List[str]:
    """Split an inclusive code point range into code-unit alternatives.

    The alternatives are pairwise disjoint and together match exactly the
    UTF-16 encodings of begin..end. A missing end means the single code
    point begin.
    """
    if end is None:
        end = begin
    check_scalar_value(begin)
    check_scalar_value(end)
    if begin > end:
        raise TranslationError(INVERTED_RANGE, f"Range U+{begin:04X}-U+{end:04X} is inverted")

    if end <= MAX_BMP:
        return _bmp_alternatives(begin, end)
    if begin >= MIN_SUPPLEMENTARY:
        return _supplementary_alternatives(begin, end)

    # Mixed widths: one-unit part, then two-unit part
    return (_bmp_alternatives(begin, MAX_BMP)
            + _supplementary_alternatives(MIN_SUPPLEMENTARY, end))


def decompose_range(begin: int, end: Optional[int] = None) -> str:
    """Regex alternation matching the UTF-16 encodings of begin..end."""
    return "|".join(range_alternatives(begin, end))


# =============================================================================
# Token Extractor
# =============================================================================

@dataclass(frozen=True)
class RangeToken:
    """A \\U literal or \\U-\\U range found in pattern text."""
    begin: int
    end: Optional[int]  # None for a single literal
    position: int       # offset in the original pattern
    text: str

    @property
    def is_range(self) -> bool:
        return self.end is not None

    def alternatives(self) -> List[str]:
        return range_alternatives(self.begin, self.end)

    def __repr__(self):
        if self.end is None:
            return f"Token(U+{self.begin:04X})"
        return f"Token(U+{self.begin:04X}-U+{self.end:04X})"


class CodePointScanner:
    """
    Hand-written lexer that finds \\U tokens in a piece of pattern text.

    Grammar:
        token    -> literal ('-' literal)?      (ranges only if allow_ranges)
        literal  -> '\\U' hex{8} | '\\U' hex{6}
        escape   -> '\\' any                    (skipped, never a token)

    Everything that is not a token is returned verbatim.
    """

    def __init__(self, text: str, offset: int = 0, allow_ranges: bool = True):
        self.text = text
        self.offset = offset
        self.allow_ranges = allow_ranges
        self.pos = 0
        self.length = len(text)

    def scan(self) -> List[Tuple[str, Optional[RangeToken]]]:
        """Return (preceding_text, token) pairs; the last pair has token None."""
        pairs = []
        start = 0
        while self.pos < self.length:
            if self._peek() != '\\':
                self._advance()
                continue
            if self._peek(1) != 'U':
                # Escaped character, e.g. \] or \\
                self._advance(2)
                continue
            token_start = self.pos
            token = self._parse_token()
            pairs.append((self.text[start:token_start], token))
            start = self.pos
        pairs.append((self.text[start:], None))
        return pairs

    def tokens(self) -> List[RangeToken]:
        return [token for _, token in self.scan() if token is not None]

    def _peek(self, offset: int = 0) -> Optional[str]:
        pos = self.pos + offset
        if pos < self.length:
            return self.text[pos]
        return None

    def _advance(self, count: int = 1):
        self.pos += count

    def _parse_token(self) -> RangeToken:
        token_start = self.pos
        begin = self._parse_literal()
        end = None

        if self.allow_ranges and self._peek() == '-' and self._peek(1) == '\\' and self._peek(2) == 'U':
            self._advance()
            end = self._parse_literal()
            if begin > end:
                raise TranslationError(
                    INVERTED_RANGE,
                    f"Range U+{begin:04X}-U+{end:04X} is inverted",
                    self.offset + token_start)

        return RangeToken(begin, end, self.offset + token_start, self.text[token_start:self.pos])

    def _parse_literal(self) -> int:
        """Parse \\U followed by 6 or 8 hex digits."""
        literal_start = self.pos
        self._advance(2)

        digits_start = self.pos
        while self.pos - digits_start < 8 and self._peek() is not None and self._peek() in HEX_DIGITS:
            self._advance()
        digits = self.text[digits_start:self.pos]

        if len(digits) not in (6, 8):
            raise TranslationError(
                MALFORMED_TOKEN,
                f"Expected 6 or 8 hex digits after \\U, got {digits!r}",
                self.offset + literal_start)

        return check_scalar_value(int(digits, 16), self.offset + literal_start)


def extract_tokens(text: str, offset: int = 0,
                   allow_ranges: bool = True) -> List[Tuple[str, Optional[RangeToken]]]:
    """Scan text for \\U tokens. See CodePointScanner.scan()."""
    return CodePointScanner(text, offset, allow_ranges).scan()


# =============================================================================
# Character-Class Rewriter
# =============================================================================

def _check_mixed_ranges(pairs: List[Tuple[str, Optional[RangeToken]]]):
    """Reject ranges between an ordinary character and a \\U code point."""
    for (fragment, token), (following, _) in zip(pairs, pairs[1:]):
        if token is None:
            continue
        if len(fragment) >= 2 and fragment.endswith('-'):
            backslashes = len(fragment[:-1]) - len(fragment[:-1].rstrip('\\'))
            if backslashes % 2 == 0:
                raise TranslationError(
                    MALFORMED_TOKEN,
                    "Range between a character and a \\U code point",
                    token.position - 1)
        if not token.is_range and len(following) >= 2 and following.startswith('-'):
            raise TranslationError(
                MALFORMED_TOKEN,
                "Range between a \\U code point and a character",
                token.position)


def rewrite_character_class(text: str, offset: int = 0, atomic: bool = False) -> str:
    """Rewrite one bracket expression, e.g. '[a-c\\U00010000-\\U0010FFFF]'.

    Code point tokens are moved out of the brackets and appended as
    alternatives. When nothing else was inside, the brackets are dropped.
    A range with a \\U code point on only one side ('[a-\\U0001F600]')
    raises MalformedToken.

    Args:
        text: The bracket expression including '[' and ']'
        offset: Position of text in the original pattern (for errors)
        atomic: Wrap the result in (?:...) whenever it is more than one
            code unit wide or has several alternatives
    """
    body = text[1:-1]
    pairs = extract_tokens(body, offset + 1)
    tokens = [token for _, token in pairs if token is not None]
    if not tokens:
        return text

    if body.startswith('^'):
        raise TranslationError(
            NEGATED_CLASS,
            "Negated character class cannot contain \\U code points",
            offset)
    _check_mixed_ranges(pairs)

    literals = "".join(fragment for fragment, _ in pairs)
    alternatives = []
    if literals:
        alternatives.append(f"[{literals}]")
    for token in tokens:
        alternatives.extend(token.alternatives())

    result = "|".join(alternatives)
    # A surrogate pair must stay together under a following quantifier
    surrogate_pairs = any(max(token.begin, token.end or 0) > MAX_BMP for token in tokens)
    if atomic and (len(alternatives) > 1 or surrogate_pairs):
        return f"(?:{result})"
    return result


# =============================================================================
# Pattern Driver
# =============================================================================

@dataclass(frozen=True)
class Fragment:
    """A slice of pattern text: either a bracket expression or the text between."""
    text: str
    offset: int
    is_class: bool = False


def _find_closing_bracket(pattern: str, pos: int) -> int:
    """Index of the first unescaped ']' at or after pos, or -1."""
    while pos < len(pattern):
        ch = pattern[pos]
        if ch == '\\':
            pos += 2
            continue
        if ch == ']':
            return pos
        pos += 1
    return -1


def split_bracket_expressions(pattern: str) -> List[Fragment]:
    """Split a pattern into bracket expressions and the text around them."""
    fragments = []
    start = 0
    pos = 0
    while pos < len(pattern):
        ch = pattern[pos]
        if ch == '\\':
            pos += 2
            continue
        if ch != '[':
            pos += 1
            continue

        close = _find_closing_bracket(pattern, pos + 1)
        if close < 0:
            raise TranslationError(UNTERMINATED_BRACKET, "Unterminated character class", pos)
        if start < pos:
            fragments.append(Fragment(pattern[start:pos], start))
        fragments.append(Fragment(pattern[pos:close + 1], pos, is_class=True))
        pos = start = close + 1

    if start < len(pattern):
        fragments.append(Fragment(pattern[start:], start))
    return fragments


def rewrite_standalone_literals(text: str, offset: int = 0) -> str:
    """Replace \\U literals outside brackets with code-unit atoms."""
    parts = []
    for fragment, token in extract_tokens(text, offset, allow_ranges=False):
        parts.append(fragment)
        if token is None:
            continue
        units = decompose_range(token.begin)
        if token.begin > MAX_BMP:
            # Keep the surrogate pair together under quantifiers
            units = f"(?:{units})"
        parts.append(units)
    return "".join(parts)


def translate(pattern: str, atomic_classes: bool = False) -> str:
    """Translate a pattern with \\U escapes into a UTF-16 code unit pattern.

    Args:
        pattern: Regex text, possibly containing \\UXXXXXXXX literals and
            \\UXXXXXXXX-\\UXXXXXXXX ranges inside character classes
        atomic_classes: Wrap rewritten character classes in (?:...) so they
            keep behaving as one atom next to other pattern text

    Raises:
        TranslationError: on malformed tokens, invalid code points, inverted
            ranges, negated classes with code points or unterminated classes
    """
    # Pass 1: bracket expressions
    fragments = []
    for fragment in split_bracket_expressions(pattern):
        if fragment.is_class:
            text = rewrite_character_class(fragment.text, fragment.offset, atomic_classes)
            fragment = Fragment(text, fragment.offset, is_class=True)
        fragments.append(fragment)

    # Pass 2: standalone literals
    return "".join(
        fragment.text if fragment.is_class
        else rewrite_standalone_literals(fragment.text, fragment.offset)
        for fragment in fragments
    )


# =============================================================================
# Compiled Patterns
# =============================================================================

class Utf32Regex:
    """
    A compiled regex whose \\U escapes are rewritten before compilation.

    Matching runs on the UTF-16 spelling of the subject (see to_utf16_text),
    so match positions count code units, not code points.
    """

    def __init__(self, pattern: str, flags: int = 0):
        self.pattern = pattern
        self.utf16_pattern = translate(pattern, atomic_classes=True)
        self.regex = re.compile(self.utf16_pattern, flags)

    def __str__(self):
        return self.utf16_pattern

    def __repr__(self):
        return f"Utf32Regex({self.pattern!r})"

    def search(self, text: str) -> Optional[re.Match]:
        return self.regex.search(to_utf16_text(text))

    def match(self, text: str) -> Optional[re.Match]:
        return self.regex.match(to_utf16_text(text))

    def fullmatch(self, text: str) -> Optional[re.Match]:
        return self.regex.fullmatch(to_utf16_text(text))

    def findall(self, text: str) -> List[str]:
        """All non-overlapping matches, decoded back to ordinary strings."""
        return [from_utf16_text(m.group(0)) for m in self.regex.finditer(to_utf16_text(text))]

    def sub(self, repl: str, text: str, count: int = 0) -> str:
        result = self.regex.sub(to_utf16_text(repl), to_utf16_text(text), count=count)
        return from_utf16_text(result)


def compile(pattern: str, flags: int = 0) -> Utf32Regex:
    return Utf32Regex(pattern, flags)


# =============================================================================
# Command Line
# =============================================================================

def load_patterns(config_path: str) -> List[dict]:
    """Load a YAML list of {name, pattern} entries."""
    with open(config_path, encoding='utf-8') as f:
        config = yaml.safe_load(f)
    if not isinstance(config, list):
        raise ValueError(f"Expected list in {config_path}, got {type(config).__name__}")
    return config


def run_interactive(stdin=None, stdout=None, require_range: bool = False) -> int:
    """Prompt for patterns until end of input, printing each translation."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    while True:
        print(PROMPT, file=stdout)
        line = stdin.readline()
        if not line:
            return 0
        line = line.rstrip("\r\n")

        if require_range and not RANGE_SHAPE.fullmatch(line):
            print("Invalid unicode range.", file=stdout)
            continue
        try:
            result = translate(line)
        except TranslationError as e:
            print(e, file=stdout)
            print("Invalid unicode range.", file=stdout)
            continue

        print(f"UTF-16 Compliant Regex: {result}", file=stdout)
        print(file=stdout)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Translate \\U code point escapes in a regex into UTF-16 code units"
    )
    parser.add_argument(
        "--pattern", "-p",
        help="The pattern to translate"
    )
    parser.add_argument(
        "--config", "-c",
        help="YAML file with a list of {name, pattern} entries to translate"
    )
    parser.add_argument(
        "--interactive", "-i",
        action="store_true",
        help="Prompt for patterns until end of input"
    )
    parser.add_argument(
        "--require-range",
        action="store_true",
        help="In interactive mode, only accept [\\UXXXXXXXX-\\UXXXXXXXX]"
    )
    parser.add_argument(
        "--test", "-t",
        action="append",
        default=[],
        help="String to search with the translated pattern (repeatable)"
    )
    parser.add_argument(
        "--output", "-o",
        help="Output file (default: stdout)"
    )

    args = parser.parse_args(argv)

    if args.interactive:
        return run_interactive(require_range=args.require_range)

    if args.config:
        try:
            entries = load_patterns(args.config)
        except (OSError, ValueError, yaml.YAMLError) as e:
            print(f"Error loading config: {e}", file=sys.stderr)
            return 1

        all_success = True
        for entry in entries:
            name = entry.get("name", "unnamed")
            try:
                print(f"{name}: {translate(entry.get('pattern', ''))}")
            except TranslationError as e:
                print(f"Error translating '{name}': {e}", file=sys.stderr)
                all_success = False
        return 0 if all_success else 1

    if args.pattern is None:
        parser.print_help()
        return 1

    # Translate the pattern
    try:
        regex = Utf32Regex(args.pattern) if args.test else None
        result = translate(args.pattern)
    except TranslationError as e:
        print(f"Error translating pattern: {e}", file=sys.stderr)
        return 1
    except re.error as e:
        print(f"Translated pattern does not compile: {e}", file=sys.stderr)
        return 1

    # Output
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(result + "\n")
        print(f"Translated pattern written to {args.output}")
    else:
        print(result)

    for text in args.test:
        found = regex.findall(text)
        status = "MATCH" if found else "NO MATCH"
        print(f"[{status}] {text!r}: {found}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
