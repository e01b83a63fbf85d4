#!/usr/bin/env python3

"""
Name: modespec
Description: parse chmod-style permission modes
License: perl
"""

import sys
import os
import argparse
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Union

# Constants
EX_SUCCESS = 0
EX_FAILURE = 1
VERSION = '1.0'

# Absolute modes are 32-bit unsigned values
MAX_ABSOLUTE = 0xFFFFFFFF
OCTAL_DIGITS = frozenset('01234567')


class Op(Enum):
    ADD = '+'
    REMOVE = '-'
    SET = '='


@dataclass
class Action:
    """One operator and the bits it works on, either copied or literal."""
    op: Op = Op.SET

    copy_user: bool = False
    copy_group: bool = False
    copy_others: bool = False

    read: bool = False
    write: bool = False
    execute: bool = False
    execute_dir: bool = False
    setid: bool = False
    sticky: bool = False

    touched: bool = field(default=False, compare=False, repr=False)


@dataclass
class Clause:
    """Target subjects plus the actions applied to them, in order."""
    user: bool = False
    group: bool = False
    others: bool = False
    actions: List[Action] = field(default_factory=list)

    touched: bool = field(default=False, compare=False, repr=False)


@dataclass(frozen=True)
class Absolute:
    value: int


@dataclass(frozen=True)
class Symbolic:
    clauses: List[Clause] = field(default_factory=list)


Mode = Union[Absolute, Symbolic]


class ModeSyntaxError(ValueError):
    """Raised when a clause is followed by something other than a comma."""

    def __init__(self, char: str, position: int):
        self.char = char
        self.position = position
        super().__init__(f"unexpected character '{char}' at position {position}")


# Parser states
WHOLIST = 'wholist'
ACTIONLIST = 'actionlist'
LIST_OR_COPY = 'list_or_copy'
PERM_COPY = 'perm_copy'
PERM_LIST = 'perm_list'
NEXT_CLAUSE = 'next_clause'

# Each state is visited at most once per character
MAX_DISPATCH = 6

SUBJECTS = {
    'u': ('user',),
    'g': ('group',),
    'o': ('others',),
    'a': ('user', 'group', 'others'),
}
COPY_SOURCES = {'u': 'copy_user', 'g': 'copy_group', 'o': 'copy_others'}
PERMISSIONS = {
    'r': 'read',
    'w': 'write',
    'x': 'execute',
    'X': 'execute_dir',
    's': 'setid',
    't': 'sticky',
}
OPERATORS = {op.value: op for op in Op}


def parse_absolute(mode: str):
    """Returns the octal value of mode, or None if it is not a valid octal numeral."""
    if not mode or not set(mode) <= OCTAL_DIGITS:
        return None
    value = int(mode, 8)
    if value > MAX_ABSOLUTE:
        return None
    return value


def parse(mode: str) -> Mode:
    """
    Parses a mode string into an Absolute or Symbolic mode.

    A string made only of octal digits that fits in 32 bits is always
    absolute. Anything else goes through the symbolic grammar:

        clause  := who* action*
        who     := 'u' | 'g' | 'o' | 'a'
        action  := op ( copy+ | perm* )
        op      := '+' | '-' | '='
        copy    := 'u' | 'g' | 'o'
        perm    := 'r' | 'w' | 'x' | 'X' | 's' | 't'

    Clauses are separated by commas. Characters that fit no rule end the
    current phase and are looked at again by the next one; only a stray
    character where a comma belongs is an error (ModeSyntaxError).
    """
    value = parse_absolute(mode)
    if value is not None:
        return Absolute(value)

    clauses = []
    clause = Clause()
    action = Action()
    state = WHOLIST

    for pos, c in enumerate(mode):
        # A character is re-dispatched until some state consumes it
        for _ in range(MAX_DISPATCH):
            if state == WHOLIST:
                if c in SUBJECTS:
                    for name in SUBJECTS[c]:
                        setattr(clause, name, True)
                    clause.touched = True
                    break
                state = ACTIONLIST

            elif state == ACTIONLIST:
                if c in OPERATORS:
                    action.op = OPERATORS[c]
                    action.touched = True
                    state = LIST_OR_COPY
                    break
                if clause.touched:
                    clauses.append(clause)
                clause = Clause()
                state = NEXT_CLAUSE

            elif state == LIST_OR_COPY:
                state = PERM_COPY if c in COPY_SOURCES else PERM_LIST

            elif state == PERM_COPY:
                if c in COPY_SOURCES:
                    setattr(action, COPY_SOURCES[c], True)
                    break
                clause.actions.append(action)
                clause.touched = True
                action = Action()
                state = ACTIONLIST

            elif state == PERM_LIST:
                if c in PERMISSIONS:
                    setattr(action, PERMISSIONS[c], True)
                    break
                clause.actions.append(action)
                clause.touched = True
                action = Action()
                state = ACTIONLIST

            elif state == NEXT_CLAUSE:
                if c != ',':
                    raise ModeSyntaxError(c, pos)
                state = WHOLIST
                break
        else:
            raise RuntimeError(f"parser did not consume {c!r} at position {pos}")

    if action.touched:
        clause.actions.append(action)
        clause.touched = True
    if clause.touched:
        clauses.append(clause)

    return Symbolic(clauses)


def format_action(action: Action) -> str:
    text = action.op.value
    for c, name in COPY_SOURCES.items():
        if getattr(action, name):
            text += c
    for c, name in PERMISSIONS.items():
        if getattr(action, name):
            text += c
    return text


def format_clause(clause: Clause) -> str:
    who = ''.join(c for c, on in (('u', clause.user), ('g', clause.group), ('o', clause.others)) if on)
    return who + ''.join(format_action(a) for a in clause.actions)


def format_mode(mode: Mode) -> str:
    """Renders a parsed mode in canonical form, e.g. '0755' or 'u=rwX,go=rX'."""
    if isinstance(mode, Absolute):
        return f"{mode.value:04o}"
    if isinstance(mode, Symbolic):
        return ','.join(format_clause(c) for c in mode.clauses)
    raise TypeError(f"not a mode: {mode!r}")


def describe(mode: Mode) -> str:
    if isinstance(mode, Absolute):
        return f"absolute {format_mode(mode)}"
    if isinstance(mode, Symbolic):
        return f"symbolic {format_mode(mode)}"
    raise TypeError(f"not a mode: {mode!r}")


def main():
    """Parses each mode operand and prints what it means."""
    parser = argparse.ArgumentParser(
        description="Parse chmod-style permission modes.",
        usage="%(prog)s [-q] mode ..."
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Only report invalid modes.'
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {VERSION}")
    parser.add_argument(
        'modes',
        nargs='+',
        help='Octal (e.g., 755) or symbolic (e.g., u=rwX,go=rX) modes.'
    )

    args = parser.parse_args()
    program_name = os.path.basename(sys.argv[0])
    rc = EX_SUCCESS

    for text in args.modes:
        try:
            mode = parse(text)
        except ModeSyntaxError as e:
            sys.stderr.write(f"{program_name}: invalid mode: '{text}': {e}\n")
            rc = EX_FAILURE
            continue
        if not args.quiet:
            print(f"{text}: {describe(mode)}")

    sys.exit(rc)


if __name__ == '__main__':
    main()
