#
# Conversion between BitFloats and text: 0x and 0b bit pattern literals, decimal
# literals for the built-in formats, and exact decimal output.
#

import logging
import re
from fractions import Fraction
from math import isfinite
from struct import Struct

from .errors import (InvalidHexDigitError, InvalidBinaryDigitError,
                     InvalidDecimalLiteralError, TooManyBitsError, UnsupportedFormatError,
                     PreconditionError)
from .floats import BitFloat, IEEEsingle, IEEEdouble

__all__ = ('from_string', 'to_exact_decimal_string', 'to_ulp_string')

logger = logging.getLogger(__name__)

pack_double = Struct('<d').pack
pack_single = Struct('<f').pack
unpack_uint64 = Struct('<Q').unpack
unpack_uint32 = Struct('<I').unpack

HEX_DIGITS_REGEX = re.compile('[0-9a-f]*', re.ASCII | re.IGNORECASE)
BINARY_DIGITS_REGEX = re.compile('[01]*', re.ASCII)
DEC_FLOAT_REGEX = re.compile(
    # sign[opt]
    '[-+]?('
    # (dec-integer[opt].fraction or dec-integer.[opt])
    '(([0-9]*)\\.([0-9]+)|([0-9]+)\\.?)'
    # e sign[opt]dec-exponent   [opt]
    '(e([-+]?[0-9]+))?|'
    # inf or infinity
    '(inf(inity)?)|'
    # nan
    '(nan))',
    re.ASCII | re.IGNORECASE
)

SINGLE_SIGN_BIT = 1 << 31
SINGLE_INFINITY = 0x7f800000
SINGLE_MAX_BEYOND = Fraction(1 << 128)


def from_string(fmt, string):
    '''Convert a literal to a BitFloat of format fmt.

    0x and 0b literals give the bit pattern directly, least significant digit last, and
    are zero-extended to the width of the format.  Other text is read as a decimal
    number, which is only possible for the built-in IEEE single and double formats.
    '''
    if not isinstance(string, str):
        raise TypeError('from_string requires a string')

    if string.startswith('0x'):
        digits = string[2:]
        if not HEX_DIGITS_REGEX.fullmatch(digits):
            raise InvalidHexDigitError(string)
        bits = int(digits or '0', 16)
        logger.debug('parsed %r as a hex bit pattern', string)
    elif string.startswith('0b'):
        digits = string[2:]
        if not BINARY_DIGITS_REGEX.fullmatch(digits):
            raise InvalidBinaryDigitError(string)
        bits = int(digits or '0', 2)
        logger.debug('parsed %r as a binary bit pattern', string)
    elif fmt == IEEEdouble:
        bits = _parse_double(string)
        logger.debug('parsed %r as a decimal double', string)
    elif fmt == IEEEsingle:
        bits = _parse_single(string)
        logger.debug('parsed %r as a decimal single', string)
    else:
        raise UnsupportedFormatError(string)

    # Padding on the left is implicit; truncation is not
    if bits.bit_length() > fmt.total_width:
        raise TooManyBitsError(string, f'more than {fmt.total_width} float bits')
    return BitFloat(fmt, bits)


def _host_float(string):
    if not DEC_FLOAT_REGEX.fullmatch(string):
        raise InvalidDecimalLiteralError(string)
    return float(string)


def _parse_double(string):
    '''Return the binary64 bit pattern the host parser gives for the decimal string.'''
    value = _host_float(string)
    return unpack_uint64(pack_double(value))[0]


def _parse_single(string):
    '''Return the bit pattern of the decimal string correctly rounded to binary32.

    The host parser only rounds to binary64.  Rounding that to binary32 gives the
    correctly rounded result except when the binary64 value lies exactly halfway between
    two binary32 values, in which case the decimal string itself decides.'''
    value = _host_float(string)
    try:
        bits = unpack_uint32(pack_single(value))[0]
    except OverflowError:
        # Too large even after rounding
        bits = SINGLE_INFINITY | (SINGLE_SIGN_BIT if value < 0 else 0)

    if not isfinite(value):
        return bits

    sign_bit = bits & SINGLE_SIGN_BIT
    magnitude = bits & ~SINGLE_SIGN_BIT
    target = abs(Fraction(value))
    rounded = _single_magnitude(magnitude)
    if rounded == target:
        return bits
    if rounded > target:
        other = magnitude - 1
    elif magnitude == SINGLE_INFINITY:
        # Beyond the largest finite single
        return bits
    else:
        other = magnitude + 1
    if rounded + _single_magnitude(other) != 2 * target:
        return bits

    exact = abs(Fraction(string))
    if exact == target:
        return bits
    if exact > target:
        return sign_bit | max(magnitude, other)
    return sign_bit | min(magnitude, other)


def _single_magnitude(magnitude):
    '''The value of a non-negative binary32 pattern, taking infinity as 2^128.'''
    if magnitude == SINGLE_INFINITY:
        return SINGLE_MAX_BEYOND
    return Fraction(*BitFloat(IEEEsingle, magnitude).as_integer_ratio())


def _trailing_zeros(value):
    return (value & -value).bit_length() - 1


def _decimal_digits(value):
    '''Return str(value) for a non-negative integer of any size.  The interpreter limits
    the number of digits str() converts, and large formats exceed it.'''
    chunk_digits = 1000
    chunk = 10 ** chunk_digits
    parts = []
    while value >= chunk:
        value, remainder = divmod(value, chunk)
        parts.append(f'{remainder:0{chunk_digits}d}')
    parts.append(str(value))
    return ''.join(reversed(parts))


def to_exact_decimal_string(value):
    '''Return the exact value of a finite BitFloat in decimal, without an exponent.

    Every binary fraction has a terminating decimal expansion, so no rounding takes
    place: the value is logical_significand * 2^(logical_exponent - significand_width)
    and that many digits are printed as are needed.
    '''
    if not value.is_finite():
        raise PreconditionError(f'{value.classify()} has no decimal value')

    significand_width = value.fmt.significand_width
    significand = value.logical_significand()
    exponent = value.logical_exponent()

    if exponent >= significand_width:
        # An integer
        digits = _decimal_digits(significand << (exponent - significand_width))
    else:
        # significand / 2^required.  Each factor of 10 supplies a factor of 2, so once
        # there are required trailing zero bits the division is exact; the number of
        # multiplications is the number of decimal places.
        required = significand_width - exponent
        if significand:
            places = max(0, required - _trailing_zeros(significand))
        else:
            places = 0
        digits = _decimal_digits((significand * 10 ** places) >> required)
        if places:
            digits = digits.rjust(places + 1, '0')
            digits = f'{digits[:-places]}.{digits[-places:]}'

    return '-' + digits if value.sign() else digits


def to_ulp_string(value):
    '''Return the unit in the last place of value as a power of two.'''
    if not value.is_finite():
        return 'Undefined'
    return f'2^{value.logical_exponent() - value.fmt.significand_width}'
