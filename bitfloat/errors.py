#
# Error types raised by the bitfloat engine.
#
# Exceptional conditions in the IEEE-754 sense (overflow, underflow, invalid operation
# and friends) are never raised; operations return them as Flags alongside the result.
# The classes here are for configuration mistakes, caller misuse and bad input text.
#

__all__ = ('BitFloatError', 'ConfigurationError', 'PreconditionError', 'ParseError',
           'InvalidHexDigitError', 'InvalidBinaryDigitError', 'InvalidDecimalLiteralError',
           'TooManyBitsError', 'UnsupportedFormatError')


class BitFloatError(Exception):
    '''All errors raised by this package derive from this.'''


class ConfigurationError(BitFloatError, ValueError):
    '''Raised when a floating point format or environment is constructed with invalid
    parameters.  This is detected at construction and never arises mid-computation.'''


class PreconditionError(BitFloatError, ValueError):
    '''Raised when an operation is called in a way its contract forbids, for example
    asking for the logical significand of a NaN.'''


class ParseError(BitFloatError, ValueError):
    '''Base class of errors converting text to a floating point value.

    ParseError expects two arguments:

         def __init__(self, string, reason):

    string is the text that failed to parse, and reason a short human-readable
    explanation.
    '''

    default_reason = 'invalid float literal'

    def __init__(self, string, reason=None):
        super().__init__(string, reason or self.default_reason)

    @property
    def string(self):
        return self.args[0]

    @property
    def reason(self):
        return self.args[1]

    def __str__(self):
        return f'{self.reason}: {self.string!r}'


class InvalidHexDigitError(ParseError):
    '''A 0x literal contains a character that is not a hexadecimal digit.'''

    default_reason = 'invalid hex digit'


class InvalidBinaryDigitError(ParseError):
    '''A 0b literal contains a character other than 0 or 1.'''

    default_reason = 'invalid binary digit'


class InvalidDecimalLiteralError(ParseError):
    '''A decimal literal is not syntactically valid.'''

    default_reason = 'invalid decimal literal'


class TooManyBitsError(ParseError):
    '''A hex or binary literal has a set bit beyond the width of the format.'''

    default_reason = 'too many float bits'


class UnsupportedFormatError(ParseError):
    '''Decimal text was given for a format that has no decimal parser.  Only the built-in
    IEEE single and double formats can be parsed from decimal; use a hex or binary
    literal for custom formats.'''

    default_reason = 'must specify hex or binary for non-standard float format'
