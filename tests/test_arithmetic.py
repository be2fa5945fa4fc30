import os
from itertools import product

import attr
import pytest

from bitfloat import *
from bitfloat.rounding import (LF_EXACTLY_ZERO, LF_LESS_THAN_HALF, LF_EXACTLY_HALF,
                               LF_MORE_THAN_HALF, lost_bits_from_rshift, shift_right,
                               round_up, overflow_value, Rounded)


all_roundings = ROUNDING_MODES

tininess_after_codes = {
    'A': True,
    'B': False
}

format_codes = {
    'S': IEEEsingle,
    'D': IEEEdouble,
    'h': FloatFormat(5, 15, 10),
    'm': FloatFormat(2, 1, 1),
}

rounding_codes = {
    'E': ROUND_HALF_EVEN,
    'C': ROUND_CEILING,
    'F': ROUND_FLOOR,
    'D': ROUND_DOWN,
    'u': ROUND_HALF_UP,
}

status_codes = {
    'K': 0,
    'VI': Flags.OVERFLOW | Flags.INEXACT,
    'U': Flags.UNDERFLOW | Flags.INEXACT,
    'I': Flags.INEXACT,
    'X': Flags.INVALID,
}

add = collect_operations()['add']
sub = collect_operations()['sub']

# A spread of single precision values across every class
single_values = [from_string(IEEEsingle, hex_str) for hex_str in (
    '0x00000000', '0x80000000', '0x00000001', '0x80000001', '0x007fffff', '0x00800000',
    '0x3f800000', '0xbf800000', '0x3f800001', '0x40490fdb', '0xc2f60000', '0x33800000',
    '0x7f7fffff', '0xff7fffff', '0x7f800000', '0xff800000',
)]


def read_lines(filename):
    result = []
    with open(os.path.join(os.path.dirname(__file__), 'data', filename)) as f:
        for line in f:
            hash_pos = line.find('#')
            if hash_pos != -1:
                line = line[:hash_pos]
            line = line.strip()
            if line:
                result.append(line)
    return result


def rounding_string_to_environment(rounding):
    tininess_after = True
    if len(rounding) == 2:
        tininess_after = tininess_after_codes[rounding[1]]
        rounding = rounding[0]
    return Environment(rounding=rounding_codes[rounding], tininess_after=tininess_after)


def binary_operation(line, operation):
    parts = line.split()
    if len(parts) != 8:
        assert False, f'bad line: {line}'
    environment, lhs_fmt, lhs, rhs_fmt, rhs, dst_fmt, status, answer = parts
    environment = rounding_string_to_environment(environment)
    dst_fmt = format_codes[dst_fmt]

    lhs = from_string(format_codes[lhs_fmt], lhs)
    rhs = from_string(format_codes[rhs_fmt], rhs)
    answer = from_string(dst_fmt, answer)
    status = status_codes[status]

    result, flags = operation.execute(environment, (lhs, rhs), dst_fmt)
    assert result.fmt is dst_fmt
    assert result == answer
    assert flags == status

    # The narrated computation must agree
    assert operation.explain(environment, (lhs, rhs), dst_fmt)[:2] == (result, flags)


class TestEnvironment:

    def test_default(self):
        assert DefaultEnvironment.rounding == ROUND_HALF_EVEN
        assert DefaultEnvironment.flush_subnormals_to_zero is False
        assert DefaultEnvironment.tininess_after is True
        assert DefaultEnvironment.round_to_nearest()

    @pytest.mark.parametrize('rounding', all_roundings)
    def test_roundings(self, rounding):
        environment = Environment(rounding=rounding)
        assert environment.round_to_nearest() is (rounding in (ROUND_HALF_EVEN, ROUND_HALF_UP))

    @pytest.mark.parametrize('rounding', ('ROUND_UP', 'even', None))
    def test_bad_rounding(self, rounding):
        with pytest.raises(ConfigurationError):
            Environment(rounding=rounding)

    def test_immutable(self):
        with pytest.raises(attr.exceptions.FrozenInstanceError):
            DefaultEnvironment.rounding = ROUND_DOWN

    def test_keyword_only(self):
        with pytest.raises(TypeError):
            Environment(ROUND_DOWN)

    @pytest.mark.parametrize('flags, text', (
        (Flags(0), 'none'),
        (Flags.INVALID, 'INVALID'),
        (Flags.OVERFLOW | Flags.INEXACT, 'OVERFLOW | INEXACT'),
        (Flags.UNDERFLOW | Flags.INEXACT, 'UNDERFLOW | INEXACT'),
    ))
    def test_describe_flags(self, flags, text):
        assert describe_flags(flags) == text


class TestRounding:

    @pytest.mark.parametrize('significand, bits, answer', (
        (0b1000, 0, LF_EXACTLY_ZERO),
        (0b1000, -3, LF_EXACTLY_ZERO),
        (0b1000, 3, LF_EXACTLY_ZERO),
        (0b1001, 3, LF_LESS_THAN_HALF),
        (0b1100, 3, LF_EXACTLY_HALF),
        (0b1101, 3, LF_MORE_THAN_HALF),
        (0b1, 1, LF_EXACTLY_HALF),
        (0b1, 2, LF_LESS_THAN_HALF),
        (0b1, 1000, LF_LESS_THAN_HALF),
    ))
    def test_lost_bits_from_rshift(self, significand, bits, answer):
        assert lost_bits_from_rshift(significand, bits) == answer

    def test_shift_right(self):
        assert shift_right(0b1011, 2) == (0b10, LF_MORE_THAN_HALF)
        assert shift_right(0b1011, -2) == (0b101100, LF_EXACTLY_ZERO)

    @pytest.mark.parametrize('rounding, lost_fraction, sign, is_odd, answer', (
        (ROUND_HALF_EVEN, LF_EXACTLY_HALF, False, False, False),
        (ROUND_HALF_EVEN, LF_EXACTLY_HALF, False, True, True),
        (ROUND_HALF_EVEN, LF_LESS_THAN_HALF, True, True, False),
        (ROUND_HALF_EVEN, LF_MORE_THAN_HALF, True, False, True),
        (ROUND_HALF_UP, LF_EXACTLY_HALF, False, False, True),
        (ROUND_HALF_UP, LF_LESS_THAN_HALF, False, True, False),
        (ROUND_CEILING, LF_LESS_THAN_HALF, False, False, True),
        (ROUND_CEILING, LF_MORE_THAN_HALF, True, False, False),
        (ROUND_FLOOR, LF_LESS_THAN_HALF, True, False, True),
        (ROUND_FLOOR, LF_MORE_THAN_HALF, False, False, False),
        (ROUND_DOWN, LF_MORE_THAN_HALF, False, True, False),
    ))
    def test_round_up(self, rounding, lost_fraction, sign, is_odd, answer):
        assert round_up(rounding, lost_fraction, sign, is_odd) is answer

    @pytest.mark.parametrize('rounding', all_roundings)
    def test_round_up_exact(self, rounding):
        assert not round_up(rounding, LF_EXACTLY_ZERO, False, True)

    def test_round_up_bad(self):
        with pytest.raises(ValueError):
            round_up('ROUND_SIDEWAYS', LF_EXACTLY_HALF, False, False)

    @pytest.mark.parametrize('rounding, sign, answer', (
        (ROUND_HALF_EVEN, False, '0x7f800000'),
        (ROUND_HALF_EVEN, True, '0xff800000'),
        (ROUND_HALF_UP, True, '0xff800000'),
        (ROUND_CEILING, False, '0x7f800000'),
        (ROUND_CEILING, True, '0xff7fffff'),
        (ROUND_FLOOR, False, '0x7f7fffff'),
        (ROUND_FLOOR, True, '0xff800000'),
        (ROUND_DOWN, False, '0x7f7fffff'),
        (ROUND_DOWN, True, '0xff7fffff'),
    ))
    def test_overflow_value(self, rounding, sign, answer):
        assert overflow_value(IEEEsingle, rounding, sign) == from_string(IEEEsingle, answer)

    def test_round_to_format_zero(self):
        result, flags = round_to_format(IEEEsingle, True, 5, 0, DefaultEnvironment)
        assert result == IEEEsingle.make_zero(True)
        assert flags == 0

    @pytest.mark.parametrize('exponent, significand, answer', (
        (0, 1, '0x3f800000'),
        (-1, 3, '0x3fc00000'),
        (-149, 1, '0x00000001'),
        (-150, 2, '0x00000001'),
        (-126, 1, '0x00800000'),
        (127, 1, '0x7f000000'),
    ))
    def test_round_to_format_exact(self, exponent, significand, answer):
        result, flags = round_to_format(IEEEsingle, False, exponent, significand,
                                        DefaultEnvironment)
        assert result == from_string(IEEEsingle, answer)
        assert flags == 0

    def test_round_to_format_details(self):
        details = Rounded()
        # 1 + 2^-24 + 2^-30 is more than half an ULP above 1
        significand = (1 << 30) + (1 << 6) + 1
        result, flags = round_to_format(IEEEsingle, False, -30, significand,
                                        DefaultEnvironment, details)
        assert result == from_string(IEEEsingle, '0x3f800001')
        assert flags == Flags.INEXACT
        assert details.lost_fraction == LF_MORE_THAN_HALF
        assert details.rounded_away
        assert not details.overflow
        assert details.exponent == 0

    def test_round_to_format_huge(self):
        result, flags = round_to_format(IEEEsingle, False, 1000, 1, DefaultEnvironment)
        assert result == IEEEsingle.make_infinity(False)
        assert flags == Flags.OVERFLOW | Flags.INEXACT

    def test_round_to_format_tiny(self):
        result, flags = round_to_format(IEEEsingle, True, -1000, 12345, DefaultEnvironment)
        assert result == IEEEsingle.make_zero(True)
        assert flags == Flags.UNDERFLOW | Flags.INEXACT


class TestAddSub:

    @pytest.mark.parametrize('line', read_lines('add.txt'))
    def test_add(self, line):
        binary_operation(line, add)

    @pytest.mark.parametrize('line', read_lines('subtract.txt'))
    def test_subtract(self, line):
        binary_operation(line, sub)

    def test_registry(self):
        operations = collect_operations()
        assert sorted(operations) == ['add', 'sub']
        assert operations['add'].num_operands == 2
        assert not operations['add'].is_subtract
        assert operations['sub'].is_subtract
        assert all(key == operation.name for key, operation in operations.items())
        assert all(operation.description for operation in operations.values())

    def test_concrete_scenarios(self):
        # A custom format equal to IEEE single precision parses decimal text
        fmt = FloatFormat(8, 127, 23)
        one = from_string(fmt, '1.0')
        assert add.execute(DefaultEnvironment, (one, one), fmt) == (
            from_string(fmt, '2.0'), Flags(0))
        inf = from_string(fmt, '0x7F800000')
        assert add.execute(DefaultEnvironment, (inf, from_string(fmt, '0x3F800000')), fmt) == (
            inf, Flags(0))
        result, flags = add.execute(DefaultEnvironment, (from_string(fmt, '0x7FC00000'), one),
                                    fmt)
        assert result.is_nan()
        assert flags == Flags.INVALID

    @pytest.mark.parametrize('rounding', all_roundings)
    def test_commutative(self, rounding):
        environment = Environment(rounding=rounding)
        for lhs, rhs in product(single_values, repeat=2):
            assert (add.execute(environment, (lhs, rhs), IEEEsingle)
                    == add.execute(environment, (rhs, lhs), IEEEsingle))

    def test_identity(self):
        minus_zero = IEEEsingle.make_zero(True)
        for value in single_values:
            assert add.execute(DefaultEnvironment, (value, minus_zero), IEEEsingle) == (
                value, Flags(0))

    @pytest.mark.parametrize('rounding', all_roundings)
    def test_add_plus_zero(self, rounding):
        environment = Environment(rounding=rounding)
        plus_zero = IEEEsingle.make_zero(False)
        for value in single_values:
            if value.is_finite() and not value.is_zero():
                assert add.execute(environment, (value, plus_zero), IEEEsingle) == (
                    value, Flags(0))
                assert add.execute(environment, (plus_zero, value), IEEEsingle) == (
                    value, Flags(0))

    @pytest.mark.parametrize('rounding', all_roundings)
    def test_self_subtraction(self, rounding):
        environment = Environment(rounding=rounding)
        zero = IEEEsingle.make_zero(rounding == ROUND_FLOOR)
        for value in single_values:
            if value.is_finite():
                assert sub.execute(environment, (value, value), IEEEsingle) == (zero, Flags(0))

    def test_subtraction_is_negated_addition(self):
        for lhs, rhs in product(single_values, repeat=2):
            if rhs.is_nan():
                continue
            negated = BitFloat(rhs.fmt, rhs.bits ^ (1 << 31))
            assert (sub.execute(DefaultEnvironment, (lhs, rhs), IEEEsingle)
                    == add.execute(DefaultEnvironment, (lhs, negated), IEEEsingle))

    @pytest.mark.parametrize('operation', (add, sub))
    def test_nan_operand(self, operation):
        snan = from_string(IEEEsingle, '0x7f800001')
        for value in single_values:
            for operands in ((snan, value), (value, snan)):
                result, flags = operation.execute(DefaultEnvironment, operands, IEEEdouble)
                assert result == IEEEdouble.make_nan()
                assert flags == Flags.INVALID

    @pytest.mark.parametrize('operands', ((), (IEEEsingle.make_zero(False), )))
    def test_operand_count(self, operands):
        with pytest.raises(PreconditionError):
            add.execute(DefaultEnvironment, operands, IEEEsingle)
        with pytest.raises(PreconditionError):
            add.explain(DefaultEnvironment, operands, IEEEsingle)

    def test_wide_exponent_gap(self):
        # The smallest double subnormal added to the largest double is exact work for
        # unbounded integers, and rounds back to the largest double.
        big = IEEEdouble.make_largest_finite(False)
        tiny = IEEEdouble.make_smallest_subnormal(False)
        assert add.execute(DefaultEnvironment, (big, tiny), IEEEdouble) == (big, Flags.INEXACT)
        result, flags = add.execute(Environment(rounding=ROUND_CEILING), (big, tiny),
                                    IEEEdouble)
        assert result == IEEEdouble.make_infinity(False)
        assert flags == Flags.OVERFLOW | Flags.INEXACT

    def test_huge_exponent_range(self):
        # Operands 2^40 binades apart must not be aligned bit for bit
        fmt = FloatFormat.from_widths(40, 10)
        big = fmt.make_largest_finite(False)
        tiny = fmt.make_smallest_subnormal(False)
        zero = fmt.make_zero(False)
        assert add.execute(DefaultEnvironment, (big, tiny), fmt) == (big, Flags.INEXACT)
        assert add.execute(DefaultEnvironment, (tiny, big), fmt) == (big, Flags.INEXACT)
        assert add.execute(Environment(rounding=ROUND_CEILING), (big, tiny), fmt) == (
            fmt.make_infinity(False), Flags.OVERFLOW | Flags.INEXACT)
        assert sub.execute(Environment(rounding=ROUND_DOWN), (big, tiny), fmt) == (
            BitFloat(fmt, big.bits - 1), Flags.INEXACT)
        assert sub.execute(DefaultEnvironment, (tiny, big), fmt) == (
            fmt.make_largest_finite(True), Flags.INEXACT)
        assert add.execute(DefaultEnvironment, (big, zero), fmt) == (big, Flags(0))
        assert sub.execute(DefaultEnvironment, (zero, tiny), fmt) == (
            fmt.make_smallest_subnormal(True), Flags(0))

    def test_huge_exponent_range_derivation(self):
        fmt = FloatFormat.from_widths(40, 10)
        big = fmt.make_largest_finite(False)
        tiny = fmt.make_smallest_subnormal(True)
        result, flags, derivation = add.explain(DefaultEnvironment, (big, tiny), fmt)
        assert (result, flags) == add.execute(DefaultEnvironment, (big, tiny), fmt)
        lines = derivation.steps[2].lines
        assert 'The second term lies wholly below the rounding position' in lines[0]
        result_line = [line for line in lines if line.startswith('= ')]
        assert len(result_line) == 1
        assert len(result_line[0]) < 32


class TestDerivation:

    def test_finite(self):
        one = from_string(IEEEsingle, '1.0')
        result, flags, derivation = add.explain(DefaultEnvironment, (one, one), IEEEsingle)
        assert result == from_string(IEEEsingle, '2.0')
        titles = [step.title for step in derivation.steps]
        assert titles == ['Classify inputs', 'Determine the effective operation',
                          'Align significands and add', 'Round to destination format']
        text = str(derivation)
        assert text.startswith('1. Classify inputs\n\n- Input A is +Normal, input B is +Normal')
        assert 'ROUND_HALF_EVEN' in text
        assert 'Flags raised: none' in text
        assert 'encoding as normal' in text

    def test_alignment_figure(self):
        # 1.5 + 0.5 in the 4-bit format
        fmt = format_codes['m']
        lhs = from_string(fmt, '0x3')
        rhs = from_string(fmt, '0x1')
        _, _, derivation = add.explain(DefaultEnvironment, (lhs, rhs), fmt)
        assert derivation.steps[2].lines[:4] == [
            '   11',
            '+  01',
            '  ---',
            '= 100',
        ]

    def test_subtract_swap(self):
        lhs = from_string(IEEEsingle, '-1.0')
        rhs = from_string(IEEEsingle, '2.0')
        result, _, derivation = add.explain(DefaultEnvironment, (lhs, rhs), IEEEsingle)
        assert result == from_string(IEEEsingle, '1.0')
        assert derivation.steps[2].title == 'Align significands and subtract'
        assert any('swap' in line for line in derivation.steps[1].lines)

    def test_nan(self):
        nan = IEEEsingle.make_nan()
        _, flags, derivation = sub.explain(DefaultEnvironment, (nan, nan), IEEEsingle)
        assert flags == Flags.INVALID
        assert len(derivation.steps) == 1
        assert derivation.render() == ['1. Classify inputs', '', '- Input A is NaN, input B '
                                       'is NaN', '- Input A is NaN, return NaN']

    def test_overflow(self):
        big = IEEEsingle.make_largest_finite(False)
        _, _, derivation = add.explain(DefaultEnvironment, (big, big), IEEEsingle)
        text = str(derivation)
        assert 'The output is too large, returning +Infinity' in text
        assert 'Flags raised: OVERFLOW | INEXACT' in text

    def test_subnormal(self):
        tiny = IEEEsingle.make_smallest_subnormal(False)
        _, _, derivation = add.explain(DefaultEnvironment, (tiny, tiny), IEEEsingle)
        assert 'encoding as subnormal' in str(derivation)

    def test_disabled(self):
        derivation = Derivation(enabled=False)
        derivation.step('Ignored')
        derivation.note('%d', 1)
        assert derivation.render() == []
