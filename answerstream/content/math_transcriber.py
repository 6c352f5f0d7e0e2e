"""
Transcription of ad-hoc math notation into canonical LaTeX markup.

LLM answers mix several notations for the same thing: ``sqrt(16)``,
``√16``, ``\\sqrt{16}``; ``3*4``, ``3×4``, ``3 \\times 4``; ``x²``, ``x^2``,
``x**2``. The renderer should only ever see one of them, so everything is
rewritten into LaTeX here.

The pipeline runs in a fixed order:

1. Strip enclosing ``\\[ \\]``, ``\\( \\)``, ``$$ $$`` and ``$ $`` delimiters
2. Subscript shorthand (``x_1`` → ``x_{1}``)
3. Unicode glyphs and macro aliases → canonical macros (``α`` → ``\\alpha``)
4. ASCII operators, with named shapes recognised first:
   sums of squares, "result = sqrt(n) = m", simple arithmetic with ``=``,
   and finally the generic operator rewrite (fractions, roots, powers)

Learning Points:
- Pre-compiled module-level patterns: compiled once at import
- Negative lookbehind ``(?<!\\\\)`` stops a pass from re-matching its own output
- The whole pipeline is repeated until the text stops changing, which makes
  ``to_canonical`` idempotent even when a named shape only handles part of
  an expression on the first pass
"""

import logging
import re
from typing import Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)

_MAX_PASSES = 5

# ============================================================================
# Step 1: Delimiters
# ============================================================================

_DELIMITER_PATTERNS = [
    re.compile(r'^\$\$((?:(?!\$\$).)*)\$\$$', re.DOTALL),
    re.compile(r'^\\\[(.*)\\\]$', re.DOTALL),
    re.compile(r'^\\\((.*)\\\)$', re.DOTALL),
    re.compile(r'^\$([^$]*)\$$'),
]


def strip_delimiters(expression: str) -> str:
    """Remove every enclosing math delimiter pair, outermost first."""
    text = expression.strip()
    changed = True
    while changed:
        changed = False
        for pattern in _DELIMITER_PATTERNS:
            match = pattern.match(text)
            if match:
                text = match.group(1).strip()
                changed = True
                break
    return text


# ============================================================================
# Step 2: Subscripts
# ============================================================================

_SUBSCRIPT = re.compile(r'([A-Za-z0-9)}\u0370-\u03FF])_([A-Za-z0-9]+)')


def _convert_subscripts(text: str) -> str:
    return _SUBSCRIPT.sub(r'\1_{\2}', text)


# ============================================================================
# Step 3: Glyphs and macro aliases
# ============================================================================

GREEK_MACROS: Dict[str, str] = {
    'α': r'\alpha', 'β': r'\beta', 'γ': r'\gamma', 'δ': r'\delta',
    'ε': r'\epsilon', 'ϵ': r'\epsilon', 'ζ': r'\zeta', 'η': r'\eta',
    'θ': r'\theta', 'ϑ': r'\vartheta', 'ι': r'\iota', 'κ': r'\kappa',
    'λ': r'\lambda', 'μ': r'\mu', 'ν': r'\nu', 'ξ': r'\xi',
    'ο': 'o', 'π': r'\pi', 'ρ': r'\rho', 'σ': r'\sigma', 'ς': r'\varsigma',
    'τ': r'\tau', 'υ': r'\upsilon', 'φ': r'\phi', 'ϕ': r'\phi',
    'χ': r'\chi', 'ψ': r'\psi', 'ω': r'\omega',
    'Α': 'A', 'Β': 'B', 'Γ': r'\Gamma', 'Δ': r'\Delta', 'Ε': 'E',
    'Ζ': 'Z', 'Η': 'H', 'Θ': r'\Theta', 'Ι': 'I', 'Κ': 'K',
    'Λ': r'\Lambda', 'Μ': 'M', 'Ν': 'N', 'Ξ': r'\Xi', 'Ο': 'O',
    'Π': r'\Pi', 'Ρ': 'P', 'Σ': r'\Sigma', 'Τ': 'T', 'Υ': r'\Upsilon',
    'Φ': r'\Phi', 'Χ': 'X', 'Ψ': r'\Psi', 'Ω': r'\Omega',
}

SYMBOL_MACROS: Dict[str, str] = {
    # arithmetic and relations
    '×': r'\times', '÷': r'\div', '·': r'\cdot', '±': r'\pm', '∓': r'\mp',
    '≤': r'\leq', '≥': r'\geq', '≠': r'\neq', '≈': r'\approx',
    '≡': r'\equiv', '∝': r'\propto', '∞': r'\infty',
    # big operators and calculus
    '∑': r'\sum', '∏': r'\prod', '∫': r'\int', '∮': r'\oint',
    '∂': r'\partial', '∇': r'\nabla',
    # arrows
    '→': r'\rightarrow', '←': r'\leftarrow', '↔': r'\leftrightarrow',
    '⇒': r'\Rightarrow', '⇐': r'\Leftarrow', '⇔': r'\Leftrightarrow',
    '↦': r'\mapsto',
    # sets and logic
    '∈': r'\in', '∉': r'\notin', '⊂': r'\subset', '⊃': r'\supset',
    '⊆': r'\subseteq', '⊇': r'\supseteq', '∪': r'\cup', '∩': r'\cap',
    '∅': r'\emptyset', '∀': r'\forall', '∃': r'\exists', '¬': r'\neg',
    '∧': r'\wedge', '∨': r'\vee', '⊕': r'\oplus', '⊗': r'\otimes',
    '⊥': r'\perp', '∥': r'\parallel', '∠': r'\angle', '°': r'^{\circ}',
}

_GLYPH_MACROS: Dict[str, str] = {**GREEK_MACROS, **SYMBOL_MACROS}
_GLYPH = re.compile('[' + ''.join(re.escape(g) for g in _GLYPH_MACROS) + ']')

_SUPERSCRIPT_DIGITS = str.maketrans('⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻', '0123456789+-')
_SUBSCRIPT_DIGITS = str.maketrans('₀₁₂₃₄₅₆₇₈₉₊₋', '0123456789+-')
_SUPERSCRIPT_RUN = re.compile('[⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻]+')
_SUBSCRIPT_RUN = re.compile('[₀₁₂₃₄₅₆₇₈₉₊₋]+')

_ROOT_GLYPHS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r'√\s*\(([^()]*)\)'), r'\\sqrt{\1}'),
    (re.compile(r'√\s*\{'), r'\\sqrt{'),
    (re.compile(r'√\s*(\d+(?:\.\d+)?|[A-Za-z])'), r'\\sqrt{\1}'),
    (re.compile(r'√'), r'\\sqrt'),
]

MACRO_ALIASES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r'\\le(?![A-Za-z])'), r'\\leq'),
    (re.compile(r'\\ge(?![A-Za-z])'), r'\\geq'),
    (re.compile(r'\\ne(?![A-Za-z])'), r'\\neq'),
    (re.compile(r'\\[dt]frac(?![A-Za-z])'), r'\\frac'),
    (re.compile(r'\\to(?![A-Za-z])'), r'\\rightarrow'),
    (re.compile(r'\\gets(?![A-Za-z])'), r'\\leftarrow'),
    (re.compile(r'\\lt(?![A-Za-z])'), '<'),
    (re.compile(r'\\gt(?![A-Za-z])'), '>'),
    (re.compile(r'\\ast(?![A-Za-z])'), '*'),
]


def _glyph_replacement(match: re.Match) -> str:
    macro = _GLYPH_MACROS[match.group(0)]
    following = match.string[match.end():match.end() + 1]
    # \alphax would read as one unknown macro
    if macro.startswith('\\') and macro[-1].isalpha() and following.isalpha():
        return macro + ' '
    return macro


def _expand_macros(text: str) -> str:
    text = _SUPERSCRIPT_RUN.sub(lambda m: '^{' + m.group(0).translate(_SUPERSCRIPT_DIGITS) + '}', text)
    text = _SUBSCRIPT_RUN.sub(lambda m: '_{' + m.group(0).translate(_SUBSCRIPT_DIGITS) + '}', text)
    for pattern, replacement in _ROOT_GLYPHS:
        text = pattern.sub(replacement, text)
    text = _GLYPH.sub(_glyph_replacement, text)
    for pattern, replacement in MACRO_ALIASES:
        text = pattern.sub(replacement, text)
    return text


# ============================================================================
# Step 4: ASCII operators
# ============================================================================

# Named shapes, checked in this order
_SUM_OF_SQUARES = re.compile(r'\d+\s*\^\s*\d+\s*[+\-]\s*\d+\s*\^\s*\d+\s*=')
_ROOT_RESULT = re.compile(
    r'[a-z]\s*\^\s*2\s*=\s*\d+'
    r'|[a-z]\s*=\s*\\?sqrt\s*[({]?\s*\d+\s*[)}]?'
)
_SIMPLE_ARITHMETIC = re.compile(r'^[\d\s.+\-*/=()]+$')
_SIMPLE_EQUATION = re.compile(r'\d+\s*[+\-*/]\s*\d+.*=\s*-?\d')

# Generic rewrites
_DOUBLE_STAR_GROUP = re.compile(r'\s*\*\*\s*\(([^()]*)\)')
_DOUBLE_STAR = re.compile(r'\s*\*\*\s*(\d+(?:\.\d+)?|[A-Za-z])')
_SQRT_CALL = re.compile(r'(?<![\\A-Za-z])sqrt\s*\(([^()]*)\)')
_SQRT_BRACE = re.compile(r'(?<![\\A-Za-z])sqrt\s*\{')
_SQRT_BARE = re.compile(r'(?<![\\A-Za-z])sqrt\s*(\d+(?:\.\d+)?)')
_SQUARE_ROOT_OF = re.compile(r'square root of\s+(\d+(?:\.\d+)?|[A-Za-z])', re.IGNORECASE)
_FRACTION = re.compile(
    r'(?<![\\\w.{])(\d+(?:\.\d+)?|[A-Za-z])\s*/\s*(\d+(?:\.\d+)?|[A-Za-z])(?![\w.])'
)
_SLASH = re.compile(r'\s*/\s*')
_STAR = re.compile(r'\s*\*\s*')
_FUNCTION_CALL = re.compile(r'(?<![\\A-Za-z])(sin|cos|tan|cot|sec|csc|log|ln|exp)\s*\(')
_POWER_GROUP = re.compile(r'([A-Za-z0-9)}])\s*\^\s*\(([^()]*)\)')
_POWER = re.compile(r'([A-Za-z0-9)}])\s*\^\s*(\d+(?:\.\d+)?|[A-Za-z])')
_PI = re.compile(r'(?<![\\A-Za-z])pi(?![A-Za-z])', re.IGNORECASE)
_SPACES = re.compile(r'[ \t]{2,}')


def _convert_powers(text: str) -> str:
    text = _POWER_GROUP.sub(r'\1^{\2}', text)
    return _POWER.sub(r'\1^{\2}', text)


def _convert_roots(text: str) -> str:
    text = _SQRT_CALL.sub(r'\\sqrt{\1}', text)
    text = _SQRT_BRACE.sub(r'\\sqrt{', text)
    text = _SQRT_BARE.sub(r'\\sqrt{\1}', text)
    return _SQUARE_ROOT_OF.sub(r'\\sqrt{\1}', text)


def _convert_sum_of_squares(text: str) -> str:
    return _convert_powers(text)


def _convert_root_result(text: str) -> str:
    text = _STAR.sub(r' \\times ', text)
    return _convert_roots(_convert_powers(text))


def _convert_simple_arithmetic(text: str) -> str:
    text = _STAR.sub(r' \\times ', text)
    return _SLASH.sub(r' \\div ', text)


def _convert_generic(text: str) -> str:
    text = _DOUBLE_STAR_GROUP.sub(r'^{\1}', text)
    text = _DOUBLE_STAR.sub(r'^{\1}', text)
    text = _convert_roots(text)
    text = _FRACTION.sub(r'\\frac{\1}{\2}', text)
    text = _SLASH.sub(r' \\div ', text)
    text = _STAR.sub(r' \\times ', text)
    text = _FUNCTION_CALL.sub(r'\\\1(', text)
    text = _convert_powers(text)
    return _PI.sub(r'\\pi', text)


def _is_simple_arithmetic(text: str) -> bool:
    if '**' in text:
        return False
    return bool(_SIMPLE_ARITHMETIC.match(text) and _SIMPLE_EQUATION.search(text))


_SHAPES: List[Tuple[Callable[[str], bool], Callable[[str], str]]] = [
    (lambda t: bool(_SUM_OF_SQUARES.search(t)), _convert_sum_of_squares),
    (lambda t: bool(_ROOT_RESULT.search(t)), _convert_root_result),
    (_is_simple_arithmetic, _convert_simple_arithmetic),
]


def _convert_operators(text: str) -> str:
    for matches, convert in _SHAPES:
        if matches(text):
            return convert(text)
    return _convert_generic(text)


# ============================================================================
# Public API
# ============================================================================

def _single_pass(expression: str) -> str:
    text = strip_delimiters(expression)
    text = _convert_subscripts(text)
    text = _expand_macros(text)
    text = _convert_operators(text)
    return _SPACES.sub(' ', text).strip()


def to_canonical(expression: str) -> str:
    """Rewrite a raw math expression into canonical LaTeX markup.

    Args:
        expression: Math text in any of the supported notations, with or
            without enclosing delimiters

    Returns:
        str: Canonical markup without delimiters

    Examples:
        >>> to_canonical("sqrt(16) = 4")
        '\\\\sqrt{16} = 4'
        >>> to_canonical("2 + 2 = 4")
        '2 + 2 = 4'
    """
    current = expression
    for _ in range(_MAX_PASSES):
        transcribed = _single_pass(current)
        if transcribed == current:
            return transcribed
        current = transcribed
    logger.debug("Math transcription did not settle after %d passes: %r", _MAX_PASSES, expression)
    return current
