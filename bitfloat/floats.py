#
# Binary floating point formats of arbitrary width, and bit patterns interpreted
# under them.
#

from collections import namedtuple
from enum import IntEnum

import attr

from .errors import ConfigurationError, PreconditionError

__all__ = ('FloatFormat', 'FloatClass', 'BitFloat', 'IEEEsingle', 'IEEEdouble')


class FloatClass(IntEnum):
    sNaN = 0          # Signalling NaN
    qNaN = 1          # Quiet NaN
    nInf = 2          # Negative infinity
    nNormal = 3       # Negative normal
    nSubnormal = 4    # Negative subnormal
    nZero = 5         # Negative zero
    pZero = 6         # Positive zero
    pSubnormal = 7    # Positive subnormal
    pNormal = 8       # Positive normal
    pInf = 9          # Positive infinity

    def is_finite(self):
        return self.is_normal() or self.is_subnormal() or self.is_zero()

    def is_infinite(self):
        return self in {FloatClass.nInf, FloatClass.pInf}

    def is_nan(self):
        return self in {FloatClass.sNaN, FloatClass.qNaN}

    def is_normal(self):
        return self in {FloatClass.nNormal, FloatClass.pNormal}

    def is_subnormal(self):
        return self in {FloatClass.nSubnormal, FloatClass.pSubnormal}

    def is_zero(self):
        return self in {FloatClass.nZero, FloatClass.pZero}

    def is_positive(self):
        return FloatClass.pZero <= self <= FloatClass.pInf

    def is_negative(self):
        return FloatClass.nInf <= self <= FloatClass.nZero

    def __str__(self):
        return _class_names[self]


_class_names = {
    FloatClass.sNaN: 'sNaN',
    FloatClass.qNaN: 'NaN',
    FloatClass.nInf: '-Infinity',
    FloatClass.nNormal: '-Normal',
    FloatClass.nSubnormal: '-Subnormal',
    FloatClass.nZero: '-Zero',
    FloatClass.pZero: '+Zero',
    FloatClass.pSubnormal: '+Subnormal',
    FloatClass.pNormal: '+Normal',
    FloatClass.pInf: '+Infinity',
}


@attr.s(slots=True, frozen=True)
class FloatFormat:
    '''A binary floating point format: a sign bit, an exponent field of exponent_width
    bits stored with a bias of exponent_bias, and a significand field of
    significand_width bits with an implicit integer bit.

    The largest finite number is 2^max_exponent * (2 - 2^-significand_width) and the
    smallest normal number 2^min_exponent.  Formats are immutable and shared by every
    value created in them.
    '''

    exponent_width = attr.ib()
    exponent_bias = attr.ib()
    significand_width = attr.ib()

    def __attrs_post_init__(self):
        self.validate()

    @classmethod
    def from_widths(cls, exponent_width, significand_width, exponent_bias=None):
        '''Construct from the field widths.  The bias defaults to the IEEE-754 interchange
        format bias 2^(exponent_width - 1) - 1.'''
        if exponent_bias is None:
            if not isinstance(exponent_width, int) or exponent_width < 1:
                raise ConfigurationError('exponent width must be a positive integer')
            exponent_bias = (1 << (exponent_width - 1)) - 1
        return cls(exponent_width, exponent_bias, significand_width)

    @staticmethod
    def parse(name):
        '''Return the built-in format with the given C or Rust type name, or None.'''
        if name in ('double', 'f64'):
            return IEEEdouble
        if name in ('float', 'f32'):
            return IEEEsingle
        return None

    def validate(self):
        '''Raise ConfigurationError if the parameters do not describe a format.'''
        if not all(isinstance(arg, int) and not isinstance(arg, bool)
                   for arg in (self.exponent_width, self.exponent_bias,
                               self.significand_width)):
            raise ConfigurationError('exponent width, bias and significand width must be '
                                     'integers')
        if self.exponent_width < 1:
            raise ConfigurationError('exponent width must be greater than 0')
        if self.exponent_width >= 64:
            raise ConfigurationError('exponent width must be smaller than 64')
        if not 0 <= self.exponent_bias < (1 << self.exponent_width):
            raise ConfigurationError(f'exponent bias {self.exponent_bias} out of range for '
                                     f'a {self.exponent_width}-bit exponent')
        if self.significand_width < 1:
            raise ConfigurationError('significand width must be greater than 0')
        if self.significand_width >= (1 << 63):
            raise ConfigurationError('significand width must be smaller than 2^63')

    @property
    def total_width(self):
        return self.exponent_width + self.significand_width + 1

    @property
    def max_exponent(self):
        return (1 << self.exponent_width) - 2 - self.exponent_bias

    @property
    def min_exponent(self):
        return 1 - self.exponent_bias

    @property
    def exponent_mask(self):
        '''The all-ones exponent field of infinities and NaNs.'''
        return (1 << self.exponent_width) - 1

    @property
    def implicit_bit(self):
        '''The integer bit of a logical significand.'''
        return 1 << self.significand_width

    @property
    def quiet_bit(self):
        '''The top bit of the significand field, set in quiet NaNs.'''
        return 1 << (self.significand_width - 1)

    def is_builtin(self):
        '''Return True if this is IEEE single or double precision.'''
        return self in (IEEEsingle, IEEEdouble)

    def make_zero(self, sign):
        '''Return a zero of the given sign.'''
        return BitFloat.from_fields(self, sign, 0, 0)

    def make_infinity(self, sign):
        '''Return an infinity of the given sign.'''
        return BitFloat.from_fields(self, sign, self.exponent_mask, 0)

    def make_nan(self):
        '''Return the canonical NaN, all of whose bits are set.'''
        return BitFloat(self, (1 << self.total_width) - 1)

    def make_largest_finite(self, sign):
        '''Return the finite number of maximal magnitude with the given sign.'''
        return BitFloat.from_fields(self, sign, self.exponent_mask - 1, self.implicit_bit - 1)

    def make_smallest_normal(self, sign):
        '''Return the smallest normal number with the given sign.'''
        if self.exponent_width == 1:
            raise PreconditionError('a 1-bit exponent has no normal numbers')
        return BitFloat.from_fields(self, sign, 1, 0)

    def make_smallest_subnormal(self, sign):
        '''Return the smallest subnormal number with the given sign.'''
        return BitFloat.from_fields(self, sign, 0, 1)


class BitFloat(namedtuple('BitFloat', 'fmt bits')):
    '''A bit pattern interpreted as a floating point number of the format fmt.

    bits is a non-negative integer less than 2^fmt.total_width.  Bit 0 is the least
    significant bit of the significand field, which is followed by the exponent field
    and finally the sign bit.  Everything else, including the number's class, is derived
    from the bits on demand.

    Two BitFloats are equal if and only if they have equal formats and bit patterns, so
    a NaN equals itself and +0 does not equal -0.
    '''

    def __new__(cls, fmt, bits):
        if not isinstance(fmt, FloatFormat):
            raise TypeError('fmt must be a FloatFormat')
        if not isinstance(bits, int):
            raise TypeError('bits must be an integer')
        if not 0 <= bits < (1 << fmt.total_width):
            raise PreconditionError(f'bit pattern {bits:#x} does not fit in '
                                    f'{fmt.total_width} bits')
        return super().__new__(cls, fmt, bits)

    @classmethod
    def zero(cls, fmt, sign=False):
        '''Return a zero of the given sign.'''
        return fmt.make_zero(sign)

    @classmethod
    def nan(cls, fmt):
        '''Return the all-ones NaN.  It has the quiet bit set.'''
        return fmt.make_nan()

    @classmethod
    def infinity(cls, fmt, sign):
        '''Return an infinity of the given sign.'''
        return fmt.make_infinity(sign)

    @classmethod
    def from_fields(cls, fmt, sign, exponent_field, significand):
        '''Assemble a value from the raw contents of its three fields.'''
        if not 0 <= exponent_field <= fmt.exponent_mask:
            raise PreconditionError(f'exponent field {exponent_field} out of range')
        if not 0 <= significand < fmt.implicit_bit:
            raise PreconditionError(f'significand must be exactly {fmt.significand_width} '
                                    f'bits wide')
        bits = (exponent_field << fmt.significand_width) | significand
        if sign:
            bits |= 1 << (fmt.total_width - 1)
        return cls(fmt, bits)

    @classmethod
    def from_parts(cls, fmt, sign, exponent, significand):
        '''Assemble a value from a sign, an unbiased exponent and the significand field
        (without the implicit bit).  The exponent field is stored as exponent plus the
        bias.'''
        return cls.from_fields(fmt, sign, exponent + fmt.exponent_bias, significand)

    ##
    ## Field access.  These never fail.
    ##

    def sign(self):
        '''Return True if the sign bit is set.'''
        return bool(self.bits >> (self.fmt.total_width - 1))

    def exponent_field_int(self):
        '''Return the raw (biased) exponent field as an integer.'''
        return (self.bits >> self.fmt.significand_width) & self.fmt.exponent_mask

    def exponent_field(self):
        '''Return the raw exponent field as a string of bits, most significant first.'''
        return f'{self.exponent_field_int():0{self.fmt.exponent_width}b}'

    def significand_field_int(self):
        '''Return the raw significand field, without the implicit bit, as an integer.'''
        return self.bits & (self.fmt.implicit_bit - 1)

    def significand_field(self):
        '''Return the raw significand field as a string of bits, most significant first.'''
        return f'{self.significand_field_int():0{self.fmt.significand_width}b}'

    def logical_exponent(self):
        '''Return the power of two of the implicit bit as used in computation.

        Subnormals and zeroes share the exponent of the smallest normal numbers, one more
        than their raw unbiased exponent field.'''
        e_field = self.exponent_field_int()
        if e_field == 0:
            return self.fmt.min_exponent
        return e_field - self.fmt.exponent_bias

    def logical_significand(self):
        '''Return the significand with its implicit bit made explicit: set for normal numbers,
        clear for subnormals and zeroes.  The result is logical_significand_width() bits
        wide.  Raises PreconditionError if the value is not finite.'''
        number_class = self.classify()
        if not number_class.is_finite():
            raise PreconditionError(f'{number_class} has no logical significand')
        significand = self.significand_field_int()
        if number_class.is_normal():
            significand |= self.fmt.implicit_bit
        return significand

    def logical_significand_width(self):
        return self.fmt.significand_width + 1

    ##
    ## Classification.  Always derived from the fields, never cached.
    ##

    def classify(self):
        '''Return the FloatClass of this number.'''
        e_field = self.exponent_field_int()
        significand = self.significand_field_int()
        sign = self.sign()

        if e_field == self.fmt.exponent_mask:
            if significand == 0:
                return FloatClass.nInf if sign else FloatClass.pInf
            if significand & self.fmt.quiet_bit:
                return FloatClass.qNaN
            return FloatClass.sNaN

        if e_field == 0:
            if significand == 0:
                return FloatClass.nZero if sign else FloatClass.pZero
            return FloatClass.nSubnormal if sign else FloatClass.pSubnormal

        return FloatClass.nNormal if sign else FloatClass.pNormal

    def is_negative(self):
        '''Return True if the sign bit is set.'''
        return self.sign()

    def is_finite(self):
        return self.classify().is_finite()

    def is_normal(self):
        return self.classify().is_normal()

    def is_subnormal(self):
        return self.classify().is_subnormal()

    def is_zero(self):
        return self.classify().is_zero()

    def is_infinite(self):
        return self.classify().is_infinite()

    def is_nan(self):
        return self.classify().is_nan()

    def is_qnan(self):
        return self.classify() == FloatClass.qNaN

    def is_snan(self):
        return self.classify() == FloatClass.sNaN

    ##
    ## Quiet operations
    ##

    def flush_subnormals(self):
        '''Return a zero of the same sign if this is subnormal, otherwise self.'''
        if self.is_subnormal():
            return self.fmt.make_zero(self.sign())
        return self

    def as_integer_ratio(self):
        '''Return a pair (n, d) of integers that represent the floating point value as a
        fraction in lowest terms and with a positive denominator.'''
        number_class = self.classify()
        if number_class.is_nan():
            raise ValueError('cannot convert a NaN to an integer ratio')
        if number_class.is_infinite():
            raise OverflowError('cannot convert an infinity to an integer ratio')
        significand = self.logical_significand()
        if significand == 0:
            return (0, 1)
        exp = self.logical_exponent() - self.fmt.significand_width
        while exp < 0 and not (significand & 1):
            significand >>= 1
            exp += 1

        if exp >= 0:
            n, d = significand << exp, 1
        else:
            n, d = significand, 1 << -exp
        return (-n if self.sign() else n), d

    def to_hex(self):
        '''Return the bit pattern as a 0x literal padded to the width of the format.'''
        digits = (self.fmt.total_width + 3) // 4
        return f'0x{self.bits:0{digits}x}'

    def to_binary(self):
        '''Return the bit pattern as a 0b literal padded to the width of the format.'''
        return f'0b{self.bits:0{self.fmt.total_width}b}'

    def __repr__(self):
        return f'<BitFloat {self.to_hex()} {self.classify()}>'


IEEEsingle = FloatFormat(8, 127, 23)
IEEEdouble = FloatFormat(11, 1023, 52)
