#
# Command line front end: shows a value through the printers, or runs an operation on
# two values and narrates it.
#

import argparse
import logging
import re
import sys

from .environment import (Environment, describe_flags, ROUND_HALF_EVEN, ROUND_HALF_UP,
                          ROUND_CEILING, ROUND_FLOOR, ROUND_DOWN)
from .errors import BitFloatError, ConfigurationError
from .floats import FloatFormat
from .ops import collect_operations
from .printers import collect_printers
from .text import from_string

__all__ = ('CommandError', 'find_operation', 'main', 'parse_format', 'selected_printers')

logger = logging.getLogger(__name__)

ROUNDING_CHOICES = {
    'even': ROUND_HALF_EVEN,
    'away': ROUND_HALF_UP,
    'up': ROUND_CEILING,
    'down': ROUND_FLOOR,
    'zero': ROUND_DOWN,
}

DEFAULT_PRINTERS = ('binary', 'exact', 'ulp')

CUSTOM_FORMAT_REGEX = re.compile(r'(\d+)\s*,\s*(\d+)\s*(?:,\s*(\d+)\s*)?', re.ASCII)


def parse_format(text):
    '''Return the FloatFormat named by text: a C or Rust type name such as double or f32,
    or the widths of a custom format written E,S or E,S,BIAS, optionally wrapped as
    custom(...).  The bias of a custom format defaults to the IEEE one.'''
    fmt = FloatFormat.parse(text)
    if fmt is not None:
        return fmt

    inner = text.strip()
    if inner.startswith('custom(') and inner.endswith(')'):
        inner = inner[len('custom('):-1]
    match = CUSTOM_FORMAT_REGEX.fullmatch(inner.strip())
    if not match:
        raise ConfigurationError(f'unknown float type {text!r}')
    exponent_width, significand_width, bias = match.groups()
    return FloatFormat.from_widths(int(exponent_width), int(significand_width),
                                   None if bias is None else int(bias))


def print_value(value, printers):
    '''Print value with each printer, continuation lines indented under the first.'''
    for printer in printers:
        lines = printer.render(value)
        print(f'{printer.name}: {lines[0]}')
        indent = ' ' * (len(printer.name) + 2)
        for line in lines[1:]:
            print(indent + line)


class CommandError(BitFloatError):
    '''Raised when the command line names a printer or operation that does not exist.'''


def selected_printers(names):
    '''Return the printers with the given names, in order.'''
    printers = collect_printers()
    result = []
    for name in names:
        if name not in printers:
            raise CommandError(f'unknown printer {name!r}; see the printers command')
        result.append(printers[name])
    return result


def find_operation(name):
    operation = collect_operations().get(name)
    if operation is None:
        raise CommandError(f'unknown operation {name!r}; see the ops command')
    return operation


def _environment(args):
    return Environment(rounding=ROUNDING_CHOICES[args.rounding],
                       tininess_after=args.tininess == 'after')


def command_show(args):
    printers = selected_printers(args.show or DEFAULT_PRINTERS)
    fmt = parse_format(args.type)
    value = from_string(fmt, args.value)
    print_value(value, printers)


def command_op(args):
    printers = selected_printers(args.show or DEFAULT_PRINTERS)
    operation = find_operation(args.name)

    lhs = from_string(parse_format(args.type_a), args.value_a)
    rhs = from_string(parse_format(args.type_b), args.value_b)
    output_format = lhs.fmt if args.to is None else parse_format(args.to)
    environment = _environment(args)
    logger.info('%s in %s', operation.name, environment)

    result, flags, derivation = operation.explain(environment, (lhs, rhs), output_format)

    print('Input A')
    print_value(lhs, printers)
    print()
    print('Input B')
    print_value(rhs, printers)
    print()
    print('---')
    print(derivation)
    print('---')
    print('Result')
    print_value(result, printers)
    print(f'Flags: {describe_flags(flags)}')


def command_printers(args):
    for key, printer in collect_printers().items():
        print(f'{key}: {printer.description}')


def command_ops(args):
    for key, operation in collect_operations().items():
        print(f'{key}: {operation.description}')


def make_parser():
    parser = argparse.ArgumentParser(
        prog='bitfloat',
        description='Inspect floating point numbers of any width, and explain arithmetic '
        'on them step by step.')
    parser.add_argument('-s', '--show', action='append', metavar='PRINTER',
                        help='a representation to print values in; may be repeated '
                        f'(default: {" ".join(DEFAULT_PRINTERS)})')
    parser.add_argument('-r', '--rounding', choices=ROUNDING_CHOICES, default='even',
                        help='the rounding mode (default: even)')
    parser.add_argument('--tininess', choices=('after', 'before'), default='after',
                        help='detect tininess after or before rounding (default: after)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='log debugging information to stderr')

    type_help = ('the float type: float, double, f32, f64, or a custom type E,S[,BIAS] '
                 'or custom(E,S[,BIAS])')
    value_help = ('a decimal number (0.34), or a bit pattern prefixed with 0x or 0b')

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND', required=True)

    show = subparsers.add_parser('show', help='print information about a float')
    show.add_argument('type', metavar='TYPE', help=type_help)
    show.add_argument('value', metavar='VALUE', help=value_help)
    show.set_defaults(func=command_show)

    op = subparsers.add_parser('op', help='perform an operation on two floats')
    op.add_argument('name', metavar='NAME', help='the operation; see the ops command')
    op.add_argument('type_a', metavar='TYPE_A', help=type_help)
    op.add_argument('value_a', metavar='VALUE_A', help=value_help)
    op.add_argument('type_b', metavar='TYPE_B', help=type_help)
    op.add_argument('value_b', metavar='VALUE_B', help=value_help)
    op.add_argument('--to', metavar='TYPE',
                    help='the type of the result (default: TYPE_A)')
    op.set_defaults(func=command_op)

    printers = subparsers.add_parser('printers', help='list the printers --show accepts')
    printers.set_defaults(func=command_printers)

    ops = subparsers.add_parser('ops', help='list the supported operations')
    ops.set_defaults(func=command_ops)

    return parser


def main(argv=None):
    '''Run the command line interface and return the exit status.'''
    parser = make_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s:%(name)s: %(message)s')

    try:
        args.func(args)
    except BitFloatError as e:
        print(f'error: {e}', file=sys.stderr)
        return 1
    return 0
