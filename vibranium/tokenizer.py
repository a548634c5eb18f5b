"""
Turns the string constructor arguments of the deployment manifest into typed
tokens that can be ABI-encoded into a contract-creation transaction.
"""

import typing
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

from eth_abi import encode, is_encodable
from eth_abi.exceptions import ABITypeError, ParseError
from eth_abi.grammar import ABIType, TupleType, normalize, parse
from eth_utils import decode_hex, to_checksum_address

from vibranium.constants import ADDRESS_TYPE
from vibranium.exceptions import (
    DeploymentError,
    InvalidParamTypeError,
    TokenizeParamError,
    TooManyConstructorArgsError,
)
from vibranium.manifest import ArgSpec

TRUE_VALUES = ("true", "1")
FALSE_VALUES = ("false", "0")

ENCODABLE_BASES = ("address", "bool", "bytes", "fixed", "int", "string", "ufixed", "uint")

# 2**256 has 78 decimal digits
MAX_INT_DIGITS = 78

OPENERS = {"[": "]", "(": ")"}
QUOTE = '"'


class Token(typing.NamedTuple):
    """A constructor argument coerced to the python value of its canonical ABI type."""

    kind: str
    value: Any

    def __str__(self) -> str:
        return _canonical(parse(self.kind), self.value)


def _canonical(abi_type: ABIType, value: Any) -> str:
    if abi_type.is_array:
        return "[" + ",".join(_canonical(abi_type.item_type, v) for v in value) + "]"
    if isinstance(abi_type, TupleType):
        items = zip(abi_type.components, value)
        return "(" + ",".join(_canonical(t, v) for t, v in items) + ")"

    base = abi_type.base
    if base == ADDRESS_TYPE:
        return value[2:].lower()
    if base == "bool":
        return "true" if value else "false"
    if base in ("uint", "int"):
        return f"-{-value:x}" if value < 0 else f"{value:x}"
    if base == "bytes":
        return value.hex()
    return str(value)


def _base_types(abi_type: ABIType) -> List[str]:
    if isinstance(abi_type, TupleType):
        return [base for c in abi_type.components for base in _base_types(c)]
    return [abi_type.base]


def parse_param_type(kind: str) -> ABIType:
    """Parses an ABI type name, e.g. 'uint', 'address[2]' or '(bool,string)'."""
    try:
        abi_type = parse(normalize(kind))
        abi_type.validate()
    except (ParseError, ABITypeError) as err:
        raise InvalidParamTypeError(kind, str(err)) from err
    for base in _base_types(abi_type):
        if base not in ENCODABLE_BASES:
            raise InvalidParamTypeError(kind, f"unknown base type '{base}'")
    return abi_type


def _split_sequence(raw: str) -> List[str]:
    """Splits '[a,b,[c,d]]' or '(a,b)' into its top-level items."""
    raw = raw.strip()
    if len(raw) < 2 or raw[0] not in OPENERS or OPENERS[raw[0]] != raw[-1]:
        raise ValueError(f"expected a bracketed sequence, got {raw!r}")

    body = raw[1:-1]
    if not body.strip():
        return []

    items, current, closers, quoted = [], [], [], False
    for char in body:
        if char == QUOTE:
            quoted = not quoted
        elif not quoted and char in OPENERS:
            closers.append(OPENERS[char])
        elif not quoted and closers and char == closers[-1]:
            closers.pop()
        elif not quoted and not closers and char == ",":
            items.append("".join(current))
            current = []
            continue
        current.append(char)
    if quoted or closers:
        raise ValueError(f"unbalanced sequence {raw!r}")
    items.append("".join(current))

    result = []
    for item in items:
        item = item.strip()
        if len(item) >= 2 and item[0] == QUOTE and item[-1] == QUOTE:
            item = item[1:-1]
        result.append(item)
    return result


def _coerce_int(raw: str) -> int:
    raw = raw.strip()
    negative = raw.startswith("-")
    digits = raw[1:] if negative else raw
    if digits.lower().startswith("0x"):
        value = int(digits, 16)
    else:
        try:
            value = int(digits, 10)
        except ValueError:
            # scientific notation, e.g. 1e18
            decimal = Decimal(digits)
            if decimal.adjusted() > MAX_INT_DIGITS:
                raise ValueError(f"{raw!r} is out of range")
            if decimal != decimal.to_integral_value():
                raise ValueError(f"{raw!r} is not an integer")
            value = int(decimal)
    return -value if negative else value


def _coerce(abi_type: ABIType, raw: str) -> Any:
    if abi_type.is_array:
        return [_coerce(abi_type.item_type, item) for item in _split_sequence(raw)]

    if isinstance(abi_type, TupleType):
        items = _split_sequence(raw)
        if len(items) != len(abi_type.components):
            raise ValueError(
                f"expected {len(abi_type.components)} tuple components, got {len(items)}"
            )
        return tuple(_coerce(t, item) for t, item in zip(abi_type.components, items))

    base = abi_type.base
    if base == ADDRESS_TYPE:
        raw = raw.strip()
        if not raw.lower().startswith("0x"):
            raw = f"0x{raw}"
        return to_checksum_address(raw)
    if base == "bool":
        flag = raw.strip().lower()
        if flag in TRUE_VALUES:
            return True
        if flag in FALSE_VALUES:
            return False
        raise ValueError(f"{raw!r} is not a boolean")
    if base in ("uint", "int"):
        return _coerce_int(raw)
    if base == "bytes":
        return decode_hex(raw.strip())
    if base in ("fixed", "ufixed"):
        return Decimal(raw.strip())
    return raw


def tokenize_param(arg: ArgSpec, deployed: Dict[str, str]) -> Token:
    """
    Tokenizes a single constructor argument. References ('$Name') to contracts
    deployed earlier in the run are replaced with their addresses.
    """
    abi_type = parse_param_type(arg.kind)
    type_str = abi_type.to_type_str()

    if arg.is_reference:
        try:
            address = deployed[arg.reference]
        except KeyError:
            raise DeploymentError(
                f"Couldn't resolve the address of '{arg.reference}': "
                "it has not been deployed in this run."
            )
        return Token(kind=type_str, value=to_checksum_address(address))

    try:
        value = _coerce(abi_type, arg.value)
    except (ValueError, ArithmeticError, InvalidOperation) as err:
        raise TokenizeParamError(type_str, arg.value) from err

    if not is_encodable(type_str, value):
        raise TokenizeParamError(type_str, arg.value)

    return Token(kind=type_str, value=value)


def tokenize_args(
    args: Sequence[ArgSpec],
    deployed: Dict[str, str],
    contract_name: str = "",
    max_args: Optional[int] = None,
) -> List[Token]:
    """Tokenizes the constructor arguments of a contract, in order."""
    if max_args is not None and len(args) > max_args:
        raise TooManyConstructorArgsError(contract_name, max_args)
    return [tokenize_param(arg, deployed) for arg in args]


def encode_tokens(tokens: Sequence[Token]) -> bytes:
    """ABI-encodes tokens as constructor arguments."""
    return encode([token.kind for token in tokens], [token.value for token in tokens])


def describe_tokens(tokens: Sequence[Token]) -> str:
    return ", ".join(f"{token.kind}={token.value!r}" for token in tokens) or "no arguments"
