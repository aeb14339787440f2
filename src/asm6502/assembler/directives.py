"""
Assembler Directive Table
=========================

Every directive is described by a static DirectiveInfo entry: the kind of
effect it has, how many values it accepts and which value types are legal.
The resolver validates directive arguments against this table; the code
generator dispatches on DirectiveKind.

| Directive     | Arity    | Value types              |
|---------------|----------|--------------------------|
| ORG           | 1        | word                     |
| INCBIN        | 1        | string                   |
| BYTE, DB      | >= 1     | byte, string             |
| WORD, DW      | >= 1     | byte, word, label        |
| ASCII         | >= 1     | string                   |
| ASCIIZ        | >= 1     | string                   |
| WARNING       | >= 1     | string, byte, word       |
| FAIL          | 1        | string, byte, word       |
| INCLUDE       | 1        | string                   |
| PAD           | 1        | word                     |
| FILLVALUE     | 1        | byte                     |
| DSB           | 1 to 2   | byte, word               |
| DSW           | 1 to 2   | byte, word               |
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional


# =============================================================================
# Values
# =============================================================================

class ValueType(Enum):
    """Type of a value in a directive or assignment value list."""
    BYTE = "byte"
    WORD = "word"
    STRING = "string"
    REFERENCE = "reference"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Value:
    """
    A typed value.

    Attributes:
        type: BYTE, WORD, STRING or REFERENCE
        value: int for BYTE/WORD, str for STRING and REFERENCE (symbol name)
    """
    type: ValueType
    value: int | str

    @property
    def is_number(self) -> bool:
        return self.type in (ValueType.BYTE, ValueType.WORD)

    def render(self) -> str:
        """Render the value the way it would be written in source."""
        if self.type == ValueType.BYTE:
            return f"${self.value:02X}"
        if self.type == ValueType.WORD:
            return f"${self.value:04X}"
        return str(self.value)


# =============================================================================
# Directive Kinds and Arity
# =============================================================================

class DirectiveKind(Enum):
    """Effect of a directive; aliases (DB, DW) share a kind."""
    ORG = auto()
    INCBIN = auto()
    BYTE = auto()
    WORD = auto()
    ASCII = auto()
    ASCIIZ = auto()
    WARNING = auto()
    FAIL = auto()
    INCLUDE = auto()
    PAD = auto()
    FILLVALUE = auto()
    DSB = auto()
    DSW = auto()


class ArityKind(Enum):
    NONE = auto()    # any number of values, including none
    MIN = auto()     # at least `count` values
    EXACT = auto()   # exactly `count` values


@dataclass(frozen=True)
class Arity:
    """
    Argument count policy.

    Attributes:
        kind: NONE, MIN or EXACT
        count: The minimum (MIN) or exact (EXACT) number of values
        maximum: Optional upper bound for MIN policies
    """
    kind: ArityKind
    count: int = 0
    maximum: Optional[int] = None

    def accepts(self, count: int) -> bool:
        if self.kind == ArityKind.EXACT:
            return count == self.count
        if self.kind == ArityKind.MIN:
            return count >= self.count and (self.maximum is None or count <= self.maximum)
        return True

    def describe(self) -> str:
        if self.kind == ArityKind.EXACT:
            return f"exactly {self.count} value{'s' if self.count != 1 else ''}"
        if self.kind == ArityKind.MIN:
            if self.maximum is not None:
                return f"{self.count} to {self.maximum} values"
            return f"at least {self.count} value{'s' if self.count != 1 else ''}"
        return "any number of values"


def exactly(count: int) -> Arity:
    return Arity(ArityKind.EXACT, count)


def at_least(count: int, maximum: Optional[int] = None) -> Arity:
    return Arity(ArityKind.MIN, count, maximum)


# =============================================================================
# Directive Table
# =============================================================================

@dataclass(frozen=True)
class DirectiveInfo:
    """
    Static description of one directive name.

    Attributes:
        name: Upper-case directive name (without the leading '.')
        kind: The effect (aliases share a kind)
        arity: Argument count policy
        value_types: Accepted value types
    """
    name: str
    kind: DirectiveKind
    arity: Arity
    value_types: frozenset[ValueType] = field(default_factory=frozenset)


_B, _W, _S, _R = ValueType.BYTE, ValueType.WORD, ValueType.STRING, ValueType.REFERENCE

SYSTEM_DIRECTIVES: tuple[DirectiveInfo, ...] = (
    DirectiveInfo("ORG", DirectiveKind.ORG, exactly(1), frozenset({_W})),
    DirectiveInfo("INCBIN", DirectiveKind.INCBIN, exactly(1), frozenset({_S})),
    DirectiveInfo("BYTE", DirectiveKind.BYTE, at_least(1), frozenset({_B, _S})),
    DirectiveInfo("DB", DirectiveKind.BYTE, at_least(1), frozenset({_B, _S})),
    DirectiveInfo("WORD", DirectiveKind.WORD, at_least(1), frozenset({_B, _W, _R})),
    DirectiveInfo("DW", DirectiveKind.WORD, at_least(1), frozenset({_B, _W, _R})),
    DirectiveInfo("ASCII", DirectiveKind.ASCII, at_least(1), frozenset({_S})),
    DirectiveInfo("ASCIIZ", DirectiveKind.ASCIIZ, at_least(1), frozenset({_S})),
    DirectiveInfo("WARNING", DirectiveKind.WARNING, at_least(1), frozenset({_S, _B, _W})),
    DirectiveInfo("FAIL", DirectiveKind.FAIL, exactly(1), frozenset({_S, _B, _W})),
    DirectiveInfo("INCLUDE", DirectiveKind.INCLUDE, exactly(1), frozenset({_S})),
    DirectiveInfo("PAD", DirectiveKind.PAD, exactly(1), frozenset({_W})),
    DirectiveInfo("FILLVALUE", DirectiveKind.FILLVALUE, exactly(1), frozenset({_B})),
    DirectiveInfo("DSB", DirectiveKind.DSB, at_least(1, maximum=2), frozenset({_B, _W})),
    DirectiveInfo("DSW", DirectiveKind.DSW, at_least(1, maximum=2), frozenset({_B, _W})),
)

del _B, _W, _S, _R

DIRECTIVES: dict[str, DirectiveInfo] = {info.name: info for info in SYSTEM_DIRECTIVES}


def get_directive(name: str) -> Optional[DirectiveInfo]:
    """Look up a directive by name (case-insensitive, without the '.')."""
    return DIRECTIVES.get(name.upper())
