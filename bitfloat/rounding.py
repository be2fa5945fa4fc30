#
# Rounding of infinitely precise results to a destination format.
#

from .environment import (Flags, ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_CEILING,
                          ROUND_FLOOR, ROUND_DOWN)
from .floats import BitFloat

__all__ = ('LF_EXACTLY_ZERO', 'LF_LESS_THAN_HALF', 'LF_EXACTLY_HALF', 'LF_MORE_THAN_HALF',
           'lost_bits_from_rshift', 'shift_right', 'round_up', 'round_to_format',
           'overflow_value', 'Rounded')


# When precision is lost during a calculation these indicate what fraction of the LSB the
# lost bits represented.  It essentially combines the roles of 'guard' and 'sticky' bits.
LF_EXACTLY_ZERO = 0           # 000000
LF_LESS_THAN_HALF = 1         # 0xxxxx  x's not all zero
LF_EXACTLY_HALF = 2           # 100000
LF_MORE_THAN_HALF = 3         # 1xxxxx  x's not all zero

LOST_FRACTION_NAMES = {
    LF_EXACTLY_ZERO: 'exactly zero',
    LF_LESS_THAN_HALF: 'less than half an ULP',
    LF_EXACTLY_HALF: 'exactly half an ULP',
    LF_MORE_THAN_HALF: 'more than half an ULP',
}


def lost_bits_from_rshift(significand, bits):
    '''Return what the lost bits would be were the significand shifted right the given number
    of bits (negative is a left shift).
    '''
    if bits <= 0:
        return LF_EXACTLY_ZERO
    # Prevent over-large shifts consuming memory
    bits = min(bits, significand.bit_length() + 2)
    bit_mask = 1 << (bits - 1)
    first_bit = bool(significand & bit_mask)
    second_bit = bool(significand & (bit_mask - 1))
    return first_bit * 2 + second_bit


def shift_right(significand, bits):
    '''Return the significand shifted right a given number of bits (left if bits is negative),
    and the fraction that is lost doing so.
    '''
    if bits <= 0:
        result = significand << -bits
    else:
        result = significand >> bits

    return result, lost_bits_from_rshift(significand, bits)


def round_up(rounding, lost_fraction, sign, is_odd):
    '''Return True if, when an operation is inexact, the result should be rounded up (i.e.,
    away from zero by incrementing the significand).

    sign is the sign of the number, and is_odd indicates if the LSB of the new
    significand is set, which is needed for ties-to-even rounding.
    '''
    if lost_fraction == LF_EXACTLY_ZERO:
        return False

    if rounding == ROUND_HALF_EVEN:
        if lost_fraction == LF_EXACTLY_HALF:
            return is_odd
        return lost_fraction == LF_MORE_THAN_HALF
    if rounding == ROUND_HALF_UP:
        return lost_fraction != LF_LESS_THAN_HALF
    if rounding == ROUND_CEILING:
        return not sign
    if rounding == ROUND_FLOOR:
        return bool(sign)
    if rounding == ROUND_DOWN:
        return False
    raise ValueError(f'unknown rounding mode: {rounding!r}')


def overflow_value(fmt, rounding, sign):
    '''Return the value to deliver when a result of the given sign is too large for fmt.'''
    if round_up(rounding, LF_MORE_THAN_HALF, sign, False):
        return fmt.make_infinity(sign)
    return fmt.make_largest_finite(sign)


class Rounded:
    '''What round_to_format() did, for callers that want to explain it.'''

    __slots__ = ('exponent', 'significand', 'lost_fraction', 'rounded_away', 'is_tiny',
                 'overflow')

    def __init__(self):
        self.exponent = None
        self.significand = None
        self.lost_fraction = LF_EXACTLY_ZERO
        self.rounded_away = False
        self.is_tiny = False
        self.overflow = False


def round_to_format(fmt, sign, exponent, significand, environment, details=None):
    '''Return a (BitFloat, Flags) pair.  The floating point number is the correctly-rounded
    (according to environment) value of the infinitely precise result

           ± 2^exponent * significand

    in the format fmt.  significand is a non-negative integer of any size.  If details is
    a Rounded instance it is filled in with what happened.
    '''
    details = details or Rounded()
    if significand == 0:
        return fmt.make_zero(sign), Flags(0)

    precision = fmt.significand_width + 1
    size = significand.bit_length()

    # Shifting the significand so the MSB is the implicit bit gives us the natural shift.
    # That bit is followed by the binary point, so the exponent must be adjusted to
    # compensate.  However we cannot fully shift if the exponent would fall below
    # min_exponent; such results are subnormal.
    exponent += precision - 1
    rshift = max(size - precision, fmt.min_exponent - exponent)

    # Shift the significand and update the exponent
    significand, lost_fraction = shift_right(significand, rshift)
    exponent += rshift

    is_tiny = significand < fmt.implicit_bit

    # Round
    rounded_away = round_up(environment.rounding, lost_fraction, sign, bool(significand & 1))
    if rounded_away:
        # Increment the significand
        significand += 1
        # If the significand now overflows, halve it and increment the exponent
        if significand >> precision:
            significand >>= 1
            exponent += 1

    details.exponent = exponent
    details.significand = significand
    details.lost_fraction = lost_fraction
    details.rounded_away = rounded_away

    # If the new exponent would be too big, then we overflow.  Subnormal results are
    # never too big, even in a format without normal numbers.
    if exponent > fmt.max_exponent and significand >= fmt.implicit_bit:
        details.overflow = True
        return (overflow_value(fmt, environment.rounding, sign),
                Flags.OVERFLOW | Flags.INEXACT)

    if environment.tininess_after:
        is_tiny = significand < fmt.implicit_bit
    details.is_tiny = is_tiny

    flags = Flags(0)
    if lost_fraction != LF_EXACTLY_ZERO:
        flags |= Flags.INEXACT
        if is_tiny:
            flags |= Flags.UNDERFLOW

    if significand >= fmt.implicit_bit:
        result = BitFloat.from_parts(fmt, sign, exponent, significand - fmt.implicit_bit)
    else:
        # Subnormal (or a zero after rounding down): exponent field zero, which is read
        # back with logical exponent min_exponent.
        result = BitFloat.from_fields(fmt, sign, 0, significand)
    return result, flags
