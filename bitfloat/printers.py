#
# Printers render a BitFloat in a human-facing form.  They only read a value's fields,
# its class and its exact decimal expansion; none does any arithmetic of its own.
#

from .floats import FloatClass
from .text import to_exact_decimal_string, to_ulp_string

__all__ = ('Printer', 'BinaryPrinter', 'ExactDecimalPrinter', 'UlpPrinter', 'ClassPrinter',
           'collect_printers')


class Printer:
    '''Renders a BitFloat as one or more lines of text.'''

    name = None
    description = None

    def render(self, value):
        '''Return a non-empty list of lines.'''
        raise NotImplementedError


def _int_length(n):
    return len(str(n))


class BinaryPrinter(Printer):
    '''The sign, exponent and significand fields as separate groups of bits, above a guide
    line giving the bit index at each end of each field.'''

    name = 'Binary'
    description = 'Prints the binary representation with guide markers'

    def render(self, value):
        return [self.fields_line(value), self.guide_line(value.fmt)]

    @staticmethod
    def fields_line(value):
        # Indent so the sign bit lines up with the last digit of the top bit index
        indent = ' ' * (_int_length(value.fmt.total_width - 1) - 1)
        sign = '1' if value.sign() else '0'
        return f'{indent}{sign} {value.exponent_field()} {value.significand_field()}'

    @staticmethod
    def guide_line(fmt):
        def field(upper, lower):
            width = upper - lower + 1
            spaces = width - _int_length(upper) - _int_length(lower)
            if spaces > 0:
                return f' {upper}{" " * spaces}{lower}'
            # No room for the markers
            return ' ' * (width + 1)

        sig_width = fmt.significand_width
        parts = [str(fmt.total_width - 1),
                 field(fmt.total_width - 2, sig_width),
                 field(sig_width - 1, 0)]
        return ''.join(parts).rstrip()


class ExactDecimalPrinter(Printer):

    name = 'Exact Decimal'
    description = 'Prints the exact value in decimal'

    special_names = {
        FloatClass.pInf: '+Inf',
        FloatClass.nInf: '-Inf',
        FloatClass.qNaN: 'NaN',
        FloatClass.sNaN: 'sNaN',
    }

    def render(self, value):
        number_class = value.classify()
        if not number_class.is_finite():
            return [self.special_names[number_class]]
        text = to_exact_decimal_string(value)
        if number_class.is_subnormal():
            text += ' (subnormal)'
        return [text]


class UlpPrinter(Printer):

    name = 'ULP'
    description = 'Prints the value of a unit in the last place as a power of two'

    def render(self, value):
        return [to_ulp_string(value)]


class ClassPrinter(Printer):

    name = 'Class'
    description = 'Prints the class of the value, e.g. +Normal or sNaN'

    def render(self, value):
        return [str(value.classify())]


_printers = {
    'binary': BinaryPrinter(),
    'exact': ExactDecimalPrinter(),
    'ulp': UlpPrinter(),
    'class': ClassPrinter(),
}


def collect_printers():
    '''Return a mapping from printer key to printer, in key order.'''
    return dict(sorted(_printers.items()))
