"""Parser for message template files describing the UDP message catalogue."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

_HEX_RE = re.compile(r"\+?[0-9A-Fa-f]+")
_DEC_RE = re.compile(r"\+?[0-9]+")
_U32_MAX = 0xFFFFFFFF


class TemplateParseError(ValueError):
    """Raised when a message template cannot be parsed."""


def _lookup(enum_cls, text, label):
    try:
        return enum_cls(text)
    except ValueError:
        raise ValueError(f"Unknown {label}: {text}") from None


class Frequency(Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    FIXED = "Fixed"

    @classmethod
    def from_name(cls, text):
        """Return the frequency whose name in the template is ``text``."""
        return _lookup(cls, text, "frequency")


class TrustLevel(Enum):
    NOT_TRUSTED = "NotTrusted"
    TRUSTED = "Trusted"

    @classmethod
    def from_name(cls, text):
        """Return the trust level whose name in the template is ``text``."""
        return _lookup(cls, text, "trust level")


class Encoding(Enum):
    UNENCODED = "Unencoded"
    ZEROCODED = "Zerocoded"

    @classmethod
    def from_name(cls, text):
        """Return the encoding whose name in the template is ``text``."""
        return _lookup(cls, text, "encoding")


class Cardinality(Enum):
    SINGLE = "Single"
    MULTIPLE = "Multiple"
    VARIABLE = "Variable"

    @classmethod
    def from_name(cls, text):
        """Return the cardinality whose name in the template is ``text``."""
        return _lookup(cls, text, "cardinality")


@dataclass
class FieldDefinition:
    name: str
    type_name: str


@dataclass
class BlockDefinition:
    name: str
    cardinality: Cardinality
    count: int | None = None
    fields: list[FieldDefinition] = field(default_factory=list)


@dataclass
class MessageDefinition:
    name: str
    frequency: Frequency
    id: int
    trust: TrustLevel
    encoding: Encoding
    flags: list[str] = field(default_factory=list)
    blocks: list[BlockDefinition] = field(default_factory=list)


@dataclass
class MessageTemplate:
    messages: list[MessageDefinition] = field(default_factory=list)

    def find(self, name):
        """Return the first message definition called ``name``, or None."""
        return next((m for m in self.messages if m.name == name), None)


class _State(Enum):
    TOP_LEVEL = 0
    IN_MESSAGE = 1
    IN_BLOCK = 2


def _parse_u32(text: str, pattern: re.Pattern, base: int) -> int:
    if not pattern.fullmatch(text):
        raise ValueError(f"invalid digit found in string: {text!r}")
    value = int(text, base)
    if value > _U32_MAX:
        raise ValueError(f"number too large to fit in target type: {text!r}")
    return value


def _parse_named(enum_cls, text: str, what: str, line_num: int):
    try:
        return enum_cls.from_name(text)
    except ValueError as exc:
        raise TemplateParseError(f"Error parsing {what} at line {line_num}: {exc}") from None


def _parse_message_header(line: str, line_num: int) -> MessageDefinition:
    parts = line.split()
    if len(parts) < 5:
        raise TemplateParseError(
            f"Invalid message header at line {line_num}: "
            f"expected at least 5 parts, got {len(parts)}"
        )
    name, freq_text, id_text, trust_text, enc_text, *flags = parts
    frequency = _parse_named(Frequency, freq_text, "frequency", line_num)
    is_hex = id_text.startswith(("0x", "0X"))
    try:
        if is_hex:
            msg_id = _parse_u32(id_text[2:], _HEX_RE, 16)
        else:
            msg_id = _parse_u32(id_text, _DEC_RE, 10)
    except ValueError as exc:
        kind = "hex message ID" if is_hex else "message ID"
        raise TemplateParseError(f"Error parsing {kind} at line {line_num}: {exc}") from None
    trust = _parse_named(TrustLevel, trust_text, "trust level", line_num)
    encoding = _parse_named(Encoding, enc_text, "encoding", line_num)
    return MessageDefinition(name, frequency, msg_id, trust, encoding, list(flags))


def _parse_block_header(line: str, line_num: int) -> BlockDefinition:
    parts = line.split()
    if len(parts) < 2:
        raise TemplateParseError(
            f"Invalid block header at line {line_num}: expected at least 2 parts"
        )
    cardinality = _parse_named(Cardinality, parts[1], "cardinality", line_num)
    count = None
    if cardinality is Cardinality.MULTIPLE and len(parts) > 2:
        try:
            count = _parse_u32(parts[2], _DEC_RE, 10)
        except ValueError as exc:
            raise TemplateParseError(
                f"Error parsing block count at line {line_num}: {exc}"
            ) from None
    return BlockDefinition(parts[0], cardinality, count)


def parse(content):
    """Parse the text of a message template file into a MessageTemplate."""
    messages: list[MessageDefinition] = []
    state = _State.TOP_LEVEL
    current_message: MessageDefinition | None = None
    current_block: BlockDefinition | None = None
    depth = 0

    for line_num, raw in enumerate(content.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("//") or line.startswith("version"):
            continue

        if state is _State.TOP_LEVEL:
            if line == "{":
                depth += 1
                state = _State.IN_MESSAGE
            else:
                raise TemplateParseError(f"Unexpected content at line {line_num}: {line}")

        elif state is _State.IN_MESSAGE:
            if line == "{":
                depth += 1
                state = _State.IN_BLOCK
            elif line == "}":
                depth -= 1
                if depth == 0:
                    if current_message is not None:
                        messages.append(current_message)
                        current_message = None
                    state = _State.TOP_LEVEL
            else:
                current_message = _parse_message_header(line, line_num)

        else:
            if line == "{":
                depth += 1
            elif line == "}":
                depth -= 1
                if depth == 1:
                    if current_message is not None and current_block is not None:
                        current_message.blocks.append(current_block)
                    current_block = None
                    state = _State.IN_MESSAGE
            elif "{" in line and "}" in line:
                field_parts = line.lstrip("{").rstrip("}").split()
                if len(field_parts) >= 2 and current_block is not None:
                    current_block.fields.append(
                        FieldDefinition(field_parts[0], " ".join(field_parts[1:]))
                    )
            elif not line.startswith("{") and not line.endswith("}"):
                current_block = _parse_block_header(line, line_num)

    if depth != 0:
        raise TemplateParseError(f"Unmatched braces: depth {depth} at end of file")
    return MessageTemplate(messages)