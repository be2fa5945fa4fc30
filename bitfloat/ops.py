#
# Arithmetic operations.  Each computes a correctly rounded result and its status flags,
# and can narrate how it got there.
#

import logging

import attr

from .environment import Flags, ROUND_FLOOR, describe_flags
from .errors import PreconditionError
from .rounding import LOST_FRACTION_NAMES, Rounded, round_to_format

__all__ = ('Operation', 'AddSub', 'Derivation', 'Step', 'collect_operations')

logger = logging.getLogger(__name__)


@attr.s(slots=True)
class Step:
    '''One numbered stage of a derivation.'''

    title = attr.ib()
    lines = attr.ib(factory=list)


class Derivation:
    '''A step-by-step account of an operation.

    A disabled derivation records nothing.  Operations always narrate into one, so that
    the numeric path is the same whether or not anyone is listening.
    '''

    def __init__(self, enabled=True):
        self.enabled = enabled
        self.steps = []

    def step(self, title):
        '''Begin a new numbered step.'''
        if self.enabled:
            self.steps.append(Step(title))

    def note(self, message, *args):
        '''Add a bullet point to the current step.  As with logging, message is only
        %-formatted with args if the derivation is enabled.'''
        if self.enabled:
            self.steps[-1].lines.append('- ' + (message % args if args else message))

    def figure(self, lines):
        '''Add preformatted lines to the current step.'''
        if self.enabled:
            self.steps[-1].lines.extend(lines)

    def render(self):
        '''Return the derivation as a list of lines of text.'''
        result = []
        for n, step in enumerate(self.steps, start=1):
            if result:
                result.append('')
            result.append(f'{n}. {step.title}')
            result.append('')
            result.extend(step.lines)
        return result

    def __str__(self):
        return '\n'.join(self.render())


class Operation:
    '''An arithmetic operation on num_operands floating point operands.'''

    name = None
    description = None
    num_operands = None

    def execute(self, environment, operands, output_format):
        '''Return a (BitFloat, Flags) pair: the result in output_format and the flags the
        operation raised.'''
        result, flags = self._run(environment, operands, output_format,
                                  Derivation(enabled=False))
        return result, flags

    def explain(self, environment, operands, output_format):
        '''Return a (BitFloat, Flags, Derivation) triple.  The result and flags are those
        execute() returns.'''
        derivation = Derivation()
        result, flags = self._run(environment, operands, output_format, derivation)
        return result, flags, derivation

    def _run(self, environment, operands, output_format, derivation):
        if len(operands) != self.num_operands:
            raise PreconditionError(f'{self.name} takes {self.num_operands} operands; '
                                    f'got {len(operands)}')
        return self._compute(environment, operands, output_format, derivation)

    def _compute(self, environment, operands, output_format, derivation):
        raise NotImplementedError


class AddSub(Operation):
    '''Addition, or subtraction if is_subtract is True.'''

    num_operands = 2

    def __init__(self, is_subtract):
        self.is_subtract = bool(is_subtract)
        self.name = 'sub' if self.is_subtract else 'add'
        self.description = ('Subtracts the second operand from the first' if self.is_subtract
                            else 'Adds two operands')

    def __repr__(self):
        return f'AddSub({self.is_subtract})'

    def _compute(self, environment, operands, fmt, derivation):
        lhs, rhs = operands
        op_char = '-' if self.is_subtract else '+'
        lhs_class = lhs.classify()
        rhs_class = rhs.classify()
        logger.debug('%s: %s %s %s', self.name, lhs_class, op_char, rhs_class)

        derivation.step('Classify inputs')
        derivation.note('Input A is %s, input B is %s', lhs_class, rhs_class)

        # NaNs propagate, whether quiet or signalling
        if lhs_class.is_nan():
            derivation.note('Input A is NaN, return NaN')
            return fmt.make_nan(), Flags.INVALID
        if rhs_class.is_nan():
            derivation.note('Input B is NaN, return NaN')
            return fmt.make_nan(), Flags.INVALID

        # Do the operands' magnitudes effectively get subtracted?
        is_sub = lhs.sign() ^ rhs.sign() ^ self.is_subtract

        if lhs_class.is_infinite() and rhs_class.is_infinite():
            if is_sub:
                derivation.note('Operation simplifies to Infinity - Infinity, return NaN')
                return fmt.make_nan(), Flags.INVALID
            sign = lhs.sign()
            derivation.note('Operation simplifies to %sInfinity + Infinity), return %sInfinity',
                            '-(' if sign else '(', '-' if sign else '+')
            return fmt.make_infinity(sign), Flags(0)

        if lhs_class.is_infinite() or rhs_class.is_infinite():
            if lhs_class.is_infinite():
                sign = lhs.sign()
            else:
                sign = rhs.sign() ^ self.is_subtract
            inf_text = '-Infinity' if sign else '+Infinity'
            derivation.note('Operation simplifies to %s +/- Finite, return %s',
                            inf_text, inf_text)
            return fmt.make_infinity(sign), Flags(0)

        return self._add_sub_finite(environment, lhs, rhs, is_sub, fmt, derivation)

    def _add_sub_finite(self, environment, lhs, rhs, is_sub, fmt, derivation):
        # Both operands are finite.  Give each term its effective sign; if the first term is
        # negative in an effective subtraction swap them, so the subtraction is always
        # positive term less negative term.
        first, second = lhs, rhs
        first_sign = lhs.sign()
        second_sign = rhs.sign() ^ self.is_subtract

        derivation.step('Determine the effective operation')
        derivation.note('The magnitudes are effectively %s',
                        'subtracted' if is_sub else 'added')
        if is_sub and first_sign:
            first, second = rhs, lhs
            first_sign, second_sign = second_sign, first_sign
            derivation.note('A is the negative term; swap to compute |B| - |A|')
        elif not is_sub and first_sign:
            derivation.note('Both terms are negative; add magnitudes and negate the result')

        a_parts = _operand_parts(first)
        b_parts = _operand_parts(second)
        a_parts, a_far = _sticky_stand_in(a_parts, b_parts, fmt.significand_width)
        b_parts, b_far = _sticky_stand_in(b_parts, a_parts, fmt.significand_width)
        a_sig, a_len, a_lsb = a_parts
        b_sig, b_len, b_lsb = b_parts

        # The binary point position of the most significant input digit, and the one below
        # the least significant input digit.
        left_digit = max(a_lsb + a_len, b_lsb + b_len) - 1
        right_digit = min(a_lsb, b_lsb) - 1

        # Bring both significands to a common scale, 2^(right_digit + 1) per unit.  Only
        # shifts are needed so nothing that affects rounding is lost.
        a_shift = a_lsb - right_digit - 1
        b_shift = b_lsb - right_digit - 1
        a_int = a_sig << a_shift
        b_int = b_sig << b_shift

        if is_sub:
            difference = a_int - b_int
            sign = difference < 0
            magnitude = abs(difference)
        else:
            sign = first_sign
            magnitude = a_int + b_int

        derivation.step(f'Align significands and {"subtract" if is_sub else "add"}')
        if a_far or b_far:
            derivation.note('The %s term lies wholly below the rounding position; only its '
                            'sticky bit is kept', 'first' if a_far else 'second')
        if derivation.enabled:
            width = left_digit - right_digit + 1
            derivation.figure(self._alignment_figure(
                width, (a_sig, a_len, left_digit - a_lsb - a_len + 2, a_shift),
                (b_sig, b_len, left_digit - b_lsb - b_len + 2, b_shift), magnitude, is_sub))
            derivation.note('The leftmost column has weight 2^%d and the rightmost 2^%d',
                            left_digit + 1, right_digit + 1)
            if sign:
                derivation.note('The difference is negative; the result takes a minus sign')

        derivation.step('Round to destination format')
        derivation.note('The current rounding mode is: %s', environment.rounding)

        if magnitude == 0:
            # An exact zero is positive, except when rounding towards -infinity, unless two
            # like-signed zeroes were added in which case it keeps their sign.
            if is_sub or not (lhs.is_zero() and rhs.is_zero()):
                sign = environment.rounding == ROUND_FLOOR
            derivation.note('The exact result is zero, returning %s0', '-' if sign else '+')
            return fmt.make_zero(sign), Flags(0)

        # Trailing zero bits are exact; discard them.
        stripped = (magnitude & -magnitude).bit_length() - 1
        result_exponent = right_digit + magnitude.bit_length()
        magnitude >>= stripped

        derivation.note('There are %d significant digits in the exact result',
                        magnitude.bit_length())
        derivation.note('The exact result has exponent %d; the destination format keeps %d '
                        'digits with exponents %d to %d', result_exponent,
                        fmt.significand_width + 1, fmt.min_exponent, fmt.max_exponent)

        details = Rounded()
        result, flags = round_to_format(fmt, sign, right_digit + 1 + stripped, magnitude,
                                        environment, details)

        derivation.note('The discarded bits are %s', LOST_FRACTION_NAMES[details.lost_fraction])
        if details.rounded_away:
            derivation.note('Rounding away from zero')
        if details.overflow:
            derivation.note('The output is too large, returning %s', result.classify())
        elif result.is_zero():
            derivation.note('The output is too small to represent, returning %s',
                            result.classify())
        elif result.is_subnormal():
            derivation.note('The exponent of the output is below the minimum %d, encoding '
                            'as subnormal', fmt.min_exponent)
        else:
            derivation.note('The exponent of the output is %d, encoding as normal',
                            details.exponent)
        derivation.note('Flags raised: %s', describe_flags(flags))

        logger.debug('%s: result %s flags %s', self.name, result.to_hex(), describe_flags(flags))
        return result, flags

    @staticmethod
    def _alignment_figure(width, a_parts, b_parts, magnitude, is_sub):
        '''Return the two aligned significands and their sum or difference as lines of bit
        strings, right-aligned at the least significant input digit.'''
        def operand_line(significand, length, prepad, postpad):
            bits = f'{significand:0{length}b}'
            return ' ' * prepad + bits + '0' * postpad

        a_line = operand_line(*a_parts)
        b_line = operand_line(*b_parts)
        result_line = f'{magnitude:b}'.rjust(width)
        return [
            '  ' + a_line,
            ('- ' if is_sub else '+ ') + b_line,
            '  ' + '-' * width,
            '= ' + result_line,
        ]


def _operand_parts(value):
    '''Return (significand, length, lsb) of a finite value, which is worth
    significand * 2^lsb.'''
    length = value.logical_significand_width()
    return (value.logical_significand(), length,
            value.logical_exponent() - length + 1)


def _sticky_stand_in(parts, other, significand_width):
    '''Return a pair (parts, replaced).

    A zero term contributes nothing, so it moves to the other term's least significant
    digit.  A nonzero term lying more than two places below both the other term's least
    significant digit and the last digit a result of significand_width fraction bits can
    keep is only ever seen as a sticky bit, so a single bit two places below that point
    stands in for it.  Either way the aligned integers stay a few bits wider than the
    operands whatever the exponent range.
    '''
    significand, _, lsb = parts
    other_significand, _, other_lsb = other
    if not significand:
        return (0, 1, other_lsb), False
    if not other_significand:
        return parts, False
    other_top = other_lsb + other_significand.bit_length() - 1
    # Subtracting a term this small loses at most one leading digit
    floor = min(other_lsb, other_top - 1 - significand_width)
    if lsb + significand.bit_length() - 1 <= floor - 2:
        return (1, 1, floor - 2), True
    return parts, False


_operations = {
    'add': AddSub(False),
    'sub': AddSub(True),
}


def collect_operations():
    '''Return a mapping from operation name to operation.'''
    return dict(_operations)
