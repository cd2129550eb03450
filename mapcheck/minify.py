"""
Heuristic classifier for minified JavaScript
"""
import re

LONG_LINE_THRESHOLD = 120
WHITESPACE_RATIO_THRESHOLD = 0.10
SHORT_IDENTIFIER_LENGTH = 2
SHORT_IDENTIFIER_RATIO = 0.5
REQUIRED_SIGNALS = 2

IDENTIFIER_PATTERN = re.compile(r'[A-Za-z_$][\w$]*')
WHITESPACE_PATTERN = re.compile(r'\s')


def minification_signals(text: str) -> dict:
    """Compute the individual signals used by is_likely_minified"""
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return {'long_lines': False, 'dense': False, 'short_identifiers': False}

    avg_line_length = sum(len(line) for line in lines) / len(lines)
    whitespace = len(WHITESPACE_PATTERN.findall(text))
    identifiers = IDENTIFIER_PATTERN.findall(text)
    short = sum(1 for ident in identifiers if len(ident) <= SHORT_IDENTIFIER_LENGTH)

    return {
        'long_lines': avg_line_length >= LONG_LINE_THRESHOLD,
        'dense': whitespace / len(text) < WHITESPACE_RATIO_THRESHOLD,
        'short_identifiers': bool(identifiers) and short / len(identifiers) >= SHORT_IDENTIFIER_RATIO,
    }


def is_likely_minified(text: str) -> bool:
    """True when at least two of the minification signals fire"""
    if not text or not text.strip():
        return False
    signals = minification_signals(text)
    return sum(1 for fired in signals.values() if fired) >= REQUIRED_SIGNALS
